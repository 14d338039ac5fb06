from decimal import Decimal

import pytest

from checkout_service.catalog import Catalog
from checkout_service.errors import ProductNotFound


def test_catalog_listing_and_filter():
    catalog = Catalog()
    assert len(catalog.list_products()) == 8
    suits = catalog.list_products("suits")
    assert [p.id for p in suits] == ["suit-001", "suit-002", "suit-003"]
    assert catalog.list_products("hats") == []


def test_catalog_lookup():
    catalog = Catalog()
    product = catalog.get("coat-001")
    assert product.price == Decimal("549.00")
    assert product.sizes == ("S", "M", "L", "XL")
    with pytest.raises(ProductNotFound):
        catalog.get("hat-001")


def test_catalog_categories():
    assert Catalog().categories() == ["suits", "jackets", "shirts", "pants", "coats"]
