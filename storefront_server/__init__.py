"""Storefront pricing: variant prices, cart totals, and MCP/HTTP servers exposing them."""

from .cart import Cart, calculate_cart_summary, format_price, round_money
from .variants import (
    calculate_variant_price,
    check_variant_availability,
    format_variant_selection,
    generate_variant_sku,
    get_all_variant_combinations,
    get_default_variant_selection,
    parse_variant_config,
    validate_variant_config,
)

__version__ = "0.1.0"

__all__ = [
    "Cart",
    "calculate_cart_summary",
    "calculate_variant_price",
    "check_variant_availability",
    "format_price",
    "format_variant_selection",
    "generate_variant_sku",
    "get_all_variant_combinations",
    "get_default_variant_selection",
    "parse_variant_config",
    "round_money",
    "validate_variant_config",
]
