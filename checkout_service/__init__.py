"""Secure checkout service: catalog, cart, orders and an HMAC-protected payment confirmation."""
