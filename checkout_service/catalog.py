"""
catalog.py — Read-only Product Catalog

The catalog is a fixed fixture held in memory. It supplies product listings
and the name/price/image lookups the cart ledger snapshots at add time.
"""

from decimal import Decimal
from typing import Iterable, List, Optional

from .errors import ProductNotFound
from .models import Product, ProductSummary

SUIT_SIZES = ("36R", "38R", "40R", "42R", "44R", "46R")
SHIRT_SIZES = ("14.5", "15", "15.5", "16", "16.5", "17")

PRODUCTS = (
    Product(
        id="suit-001",
        name="Navy Blue Wool Suit",
        category="suits",
        price=Decimal("599.00"),
        description="Impeccably tailored from pure Italian wool, this navy suit features a modern "
                    "slim fit with natural shoulders and a two-button closure.",
        details=("100% Italian Wool", "Half Canvas Construction", "Slim Fit", "Two-Button Closure"),
        sizes=SUIT_SIZES,
        image="https://images.unsplash.com/photo-1594938298603-c8148c4dae35?w=800",
        images=(
            "https://images.unsplash.com/photo-1594938298603-c8148c4dae35?w=800",
            "https://images.unsplash.com/photo-1593030761757-71fae45fa0e7?w=800",
        ),
    ),
    Product(
        id="suit-002",
        name="Charcoal Grey Suit",
        category="suits",
        price=Decimal("649.00"),
        description="A versatile charcoal grey suit crafted from Super 120s wool. "
                    "Perfect for both business and formal occasions.",
        details=("Super 120s Wool", "Full Canvas Construction", "Classic Fit", "Notch Lapel"),
        sizes=SUIT_SIZES,
        image="https://images.unsplash.com/photo-1507679799987-c73779587ccf?w=800",
        images=("https://images.unsplash.com/photo-1507679799987-c73779587ccf?w=800",),
    ),
    Product(
        id="suit-003",
        name="Black Tuxedo",
        category="suits",
        price=Decimal("799.00"),
        description="A classic black tuxedo with satin peak lapels. "
                    "The epitome of formal elegance for black-tie events.",
        details=("Wool & Mohair Blend", "Satin Peak Lapels", "Single Button Closure", "Satin Stripe Trousers"),
        sizes=SUIT_SIZES,
        image="https://images.unsplash.com/photo-1555069519-127aadedf1ee?w=800",
        images=("https://images.unsplash.com/photo-1555069519-127aadedf1ee?w=800",),
    ),
    Product(
        id="jacket-001",
        name="Navy Blazer",
        category="jackets",
        price=Decimal("399.00"),
        description="A timeless navy blazer with gold buttons. The essential piece for smart-casual occasions.",
        details=("100% Wool", "Half Lined", "Patch Pockets", "Gold Buttons"),
        sizes=SUIT_SIZES,
        image="https://images.unsplash.com/photo-1592878904946-b3cd8ae243d0?w=800",
        images=("https://images.unsplash.com/photo-1592878904946-b3cd8ae243d0?w=800",),
    ),
    Product(
        id="shirt-001",
        name="White Dress Shirt",
        category="shirts",
        price=Decimal("129.00"),
        description="A crisp white dress shirt in Egyptian cotton. The foundation of every gentleman's wardrobe.",
        details=("Egyptian Cotton", "Mother of Pearl Buttons", "Spread Collar", "French Cuffs"),
        sizes=SHIRT_SIZES,
        image="https://images.unsplash.com/photo-1620012253295-c15cc3e65df4?w=800",
        images=("https://images.unsplash.com/photo-1620012253295-c15cc3e65df4?w=800",),
    ),
    Product(
        id="shirt-002",
        name="Light Blue Shirt",
        category="shirts",
        price=Decimal("139.00"),
        description="A refined light blue shirt perfect for business or casual wear. Crafted from premium cotton.",
        details=("100% Cotton", "Semi-Spread Collar", "Single Cuff", "Slim Fit"),
        sizes=SHIRT_SIZES,
        image="https://images.unsplash.com/photo-1596755094514-f87e34085b2c?w=800",
        images=("https://images.unsplash.com/photo-1596755094514-f87e34085b2c?w=800",),
    ),
    Product(
        id="pants-001",
        name="Grey Wool Trousers",
        category="pants",
        price=Decimal("199.00"),
        description="Elegant grey wool trousers with a flat front and tailored fit.",
        details=("100% Wool", "Flat Front", "Tailored Fit", "Unfinished Hem"),
        sizes=("30", "32", "34", "36", "38", "40"),
        image="https://images.unsplash.com/photo-1624378439575-d8705ad7ae80?w=800",
        images=("https://images.unsplash.com/photo-1624378439575-d8705ad7ae80?w=800",),
    ),
    Product(
        id="coat-001",
        name="Camel Overcoat",
        category="coats",
        price=Decimal("549.00"),
        description="A luxurious camel overcoat in wool-cashmere blend. Timeless elegance for the colder months.",
        details=("Wool-Cashmere Blend", "Single Breasted", "Notch Lapel", "Two Interior Pockets"),
        sizes=("S", "M", "L", "XL"),
        image="https://images.unsplash.com/photo-1544923246-77307dd628b5?w=800",
        images=("https://images.unsplash.com/photo-1544923246-77307dd628b5?w=800",),
    ),
)


class Catalog:
    """In-memory product catalog."""

    def __init__(self, products: Iterable[Product] = PRODUCTS):
        self._products = tuple(products)

    def list_products(self, category: Optional[str] = None) -> List[ProductSummary]:
        result = self._products
        if category:
            result = [p for p in result if p.category == category]
        return [
            ProductSummary(id=p.id, name=p.name, category=p.category, price=p.price, image=p.image)
            for p in result
        ]

    def get(self, product_id: str) -> Product:
        for product in self._products:
            if product.id == product_id:
                return product
        raise ProductNotFound()

    def categories(self) -> List[str]:
        # Order of first appearance
        return list(dict.fromkeys(p.category for p in self._products))
