"""MCP Server for storefront pricing."""

import asyncio
import json
import logging
import os
from decimal import Decimal
from typing import Any

from mcp.server import Server
from mcp.types import Resource, Tool, TextContent
from pydantic import AnyUrl

from .cart import Cart, calculate_cart_summary, format_price
from .models import CartLineItem, CartSummary, StoreSettings, VariantPriceCalculation
from .settings import SettingsManager
from .variants import (
    check_variant_availability,
    calculate_variant_price,
    format_variant_selection,
    generate_variant_sku,
    get_default_variant_selection,
    parse_variant_config,
    validate_variant_config,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("storefront-mcp-server")

# Initialize server
app = Server("storefront-mcp-server")

# Global state
settings_manager: SettingsManager
cart = Cart()

VARIANTS_SCHEMA = {
    "type": ["object", "string", "null"],
    "description": "Product variant config ({groups: [...]}) as an object or JSON string",
}
SELECTED_SCHEMA = {
    "type": "object",
    "description": "Selected options as {groupId: optionId}",
    "additionalProperties": {"type": "string"},
}


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _format_calculation(calculation: VariantPriceCalculation, currency: str) -> str:
    lines = [
        f"Base price: {format_price(calculation.base_price, currency)}",
        f"Modifiers: {calculation.total_modifier:+}",
        f"Final price: {format_price(calculation.final_price, currency)}",
    ]
    if calculation.applied_rules:
        lines.append("\nApplied:")
        for rule in calculation.applied_rules:
            lines.append(f"  - {rule.group_id}={rule.option_id}: {rule.modifier:+}")
    return "\n".join(lines)


def _format_summary(summary: CartSummary, currency: str) -> str:
    lines = [
        f"Items: {summary.item_count}",
        f"Subtotal: {format_price(summary.subtotal, currency)}",
        f"Shipping: {format_price(summary.shipping, currency)}",
    ]
    if summary.tax_enabled:
        lines.append(f"Tax ({summary.tax_rate}%): {format_price(summary.tax, currency)}")
    lines.append(f"Total: {format_price(summary.total, currency)}")
    return "\n".join(lines)


def _format_cart(settings: StoreSettings) -> str:
    if not cart.items:
        return "Your cart is empty"

    currency = settings.currency
    result_lines = [f"Shopping Cart ({cart.item_count} items):\n"]
    for line_id, item in zip(cart.line_ids, cart.items):
        result_lines.append(f"  - {item.product_name} x{item.quantity} @ {format_price(item.unit_price, currency)}")
        result_lines.append(f"    Line: {line_id}")
    result_lines.append("")
    result_lines.append(_format_summary(cart.summary(settings), currency))
    return "\n".join(result_lines)


@app.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    return [
        Resource(
            uri=AnyUrl("storefront://cart"),
            name="Shopping Cart",
            mimeType="application/json",
            description="Current shopping cart contents and summary",
        ),
        Resource(
            uri=AnyUrl("storefront://settings"),
            name="Store Settings",
            mimeType="application/json",
            description="Currency, flat shipping and tax configuration",
        ),
    ]


@app.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource by URI."""
    uri_str = str(uri)

    if uri_str == "storefront://cart":
        summary = cart.summary(settings_manager.settings)
        return json.dumps(
            {
                "items": [item.model_dump(mode="json", by_alias=True) for item in cart.items],
                "summary": summary.model_dump(mode="json", by_alias=True),
            },
            indent=2,
        )

    elif uri_str == "storefront://settings":
        return settings_manager.settings.model_dump_json(by_alias=True, indent=2)

    raise ValueError(f"Unknown resource: {uri}")


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="storefront_calculate_variant_price",
            description="Calculate a product's unit price for the selected variant options",
            inputSchema={
                "type": "object",
                "properties": {
                    "base_price": {"type": "number", "minimum": 0, "description": "Product base price"},
                    "selected_variants": SELECTED_SCHEMA,
                    "variants": VARIANTS_SCHEMA,
                },
                "required": ["base_price"],
            },
        ),
        Tool(
            name="storefront_default_variants",
            description="Get the default variant selection of a product",
            inputSchema={
                "type": "object",
                "properties": {"variants": VARIANTS_SCHEMA},
            },
        ),
        Tool(
            name="storefront_variant_sku",
            description="Generate the SKU of a variant from the base SKU and selected options",
            inputSchema={
                "type": "object",
                "properties": {
                    "base_sku": {"type": "string", "description": "Product base SKU"},
                    "selected_variants": SELECTED_SCHEMA,
                },
                "required": ["base_sku"],
            },
        ),
        Tool(
            name="storefront_check_variant",
            description="Check whether a variant selection is complete and available",
            inputSchema={
                "type": "object",
                "properties": {
                    "selected_variants": SELECTED_SCHEMA,
                    "variants": VARIANTS_SCHEMA,
                },
            },
        ),
        Tool(
            name="storefront_validate_variants",
            description="Validate a product variant configuration before saving it",
            inputSchema={
                "type": "object",
                "properties": {"variants": VARIANTS_SCHEMA},
                "required": ["variants"],
            },
        ),
        Tool(
            name="storefront_cart_summary",
            description="Calculate subtotal, shipping, tax and total for a list of line items",
            inputSchema={
                "type": "object",
                "properties": {
                    "items": {
                        "type": "array",
                        "description": "Line items ({productId, productName, quantity, unitPrice})",
                        "items": {"type": "object"},
                    },
                    "settings": {
                        "type": "object",
                        "description": "Store settings (default: configured store settings)",
                    },
                },
                "required": ["items"],
            },
        ),
        Tool(
            name="storefront_add_to_cart",
            description="Add a product to the cart, freezing its variant price",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string", "description": "Product ID"},
                    "product_name": {"type": "string", "description": "Product name"},
                    "base_price": {"type": "number", "minimum": 0, "description": "Product base price"},
                    "quantity": {
                        "type": "integer",
                        "description": "Quantity to add (default: 1)",
                        "default": 1,
                    },
                    "selected_variants": SELECTED_SCHEMA,
                    "variants": VARIANTS_SCHEMA,
                },
                "required": ["product_id", "product_name", "base_price"],
            },
        ),
        Tool(
            name="storefront_update_cart_quantity",
            description="Update the quantity of a cart line (0 removes it)",
            inputSchema={
                "type": "object",
                "properties": {
                    "line_id": {"type": "string", "description": "Cart line ID"},
                    "quantity": {"type": "integer", "description": "New quantity to set"},
                },
                "required": ["line_id", "quantity"],
            },
        ),
        Tool(
            name="storefront_remove_from_cart",
            description="Remove a line from the cart",
            inputSchema={
                "type": "object",
                "properties": {
                    "line_id": {"type": "string", "description": "Cart line ID"},
                },
                "required": ["line_id"],
            },
        ),
        Tool(
            name="storefront_get_cart",
            description="Get current cart contents with totals",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_clear_cart",
            description="Remove all items from the cart",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_get_settings",
            description="Get the store currency, shipping and tax settings",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_update_settings",
            description="Update the store currency, flat shipping cost or tax settings",
            inputSchema={
                "type": "object",
                "properties": {
                    "currency": {"type": "string", "description": "ISO currency code"},
                    "shipping_cost": {"type": "number", "description": "Flat shipping fee per order"},
                    "tax_enabled": {"type": "boolean", "description": "Charge tax on the subtotal"},
                    "tax_rate": {"type": "number", "description": "Tax rate in percent"},
                },
            },
        ),
    ]


def _decimal_arg(arguments: dict[str, Any], key: str) -> Any:
    value = arguments.get(key)
    return None if value is None else Decimal(str(value))


def _base_price_arg(arguments: dict[str, Any]) -> Decimal:
    base_price = _decimal_arg(arguments, "base_price")
    if base_price is None:
        raise ValueError("base_price is required")
    if base_price < 0:
        raise ValueError(f"base_price must be >= 0, got {base_price}")
    return base_price


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    currency = settings_manager.settings.currency

    try:
        if name == "storefront_calculate_variant_price":
            config = parse_variant_config(arguments.get("variants"))
            selected = arguments.get("selected_variants") or {}
            calculation = calculate_variant_price(_base_price_arg(arguments), selected, config)
            return _text(_format_calculation(calculation, currency))

        elif name == "storefront_default_variants":
            config = parse_variant_config(arguments.get("variants"))
            selection = get_default_variant_selection(config)

            if not selection:
                return _text("No default variants configured")

            return _text(f"Default selection: {format_variant_selection(selection, config)}")

        elif name == "storefront_variant_sku":
            sku = generate_variant_sku(arguments["base_sku"], arguments.get("selected_variants") or {})
            return _text(f"SKU: {sku}")

        elif name == "storefront_check_variant":
            config = parse_variant_config(arguments.get("variants"))
            availability = check_variant_availability(arguments.get("selected_variants"), config)

            if availability.is_available:
                return _text("✅ Selection is available")
            return _text(f"❌ {availability.reason}")

        elif name == "storefront_validate_variants":
            config = parse_variant_config(arguments.get("variants"))
            if config is None:
                return _text("Error: No variant configuration provided")

            validation = validate_variant_config(config)
            if validation.is_valid:
                return _text("✅ Variant configuration is valid")

            result_lines = [f"❌ Found {len(validation.errors)} problem(s):"]
            result_lines.extend(f"  - {error}" for error in validation.errors)
            return _text("\n".join(result_lines))

        elif name == "storefront_cart_summary":
            items = [CartLineItem.model_validate(item) for item in arguments.get("items", [])]
            settings = settings_manager.settings
            if arguments.get("settings") is not None:
                settings = StoreSettings.model_validate(arguments["settings"])

            summary = calculate_cart_summary(items, settings)
            return _text(_format_summary(summary, settings.currency))

        elif name == "storefront_add_to_cart":
            quantity = arguments.get("quantity", 1)
            line_id, item = cart.add_product(
                product_id=arguments["product_id"],
                product_name=arguments["product_name"],
                base_price=_base_price_arg(arguments),
                quantity=quantity,
                selected_variants=arguments.get("selected_variants"),
                variants=arguments.get("variants"),
            )
            return _text(
                f"✅ Added {item.product_name} (quantity: {quantity}) to cart\n"
                f"Unit price: {format_price(item.unit_price, currency)}\n"
                f"Line: {line_id}"
            )

        elif name == "storefront_update_cart_quantity":
            line_id = arguments["line_id"]
            item = cart.update_quantity(line_id, int(arguments["quantity"]))

            if item is None:
                return _text(f"✅ Removed {line_id} from cart")
            return _text(f"✅ Updated {line_id} to quantity {item.quantity}")

        elif name == "storefront_remove_from_cart":
            item = cart.remove_item(arguments["line_id"])
            return _text(f"✅ Removed {item.product_name} from cart")

        elif name == "storefront_get_cart":
            return _text(_format_cart(settings_manager.settings))

        elif name == "storefront_clear_cart":
            cart.clear()
            return _text("✅ Cart cleared")

        elif name == "storefront_get_settings":
            return _text(settings_manager.settings.model_dump_json(by_alias=True, indent=2))

        elif name == "storefront_update_settings":
            settings = settings_manager.update(
                currency=arguments.get("currency"),
                shipping_cost=_decimal_arg(arguments, "shipping_cost"),
                tax_enabled=arguments.get("tax_enabled"),
                tax_rate=_decimal_arg(arguments, "tax_rate"),
            )
            return _text(f"✅ Store settings updated\n{settings.model_dump_json(by_alias=True, indent=2)}")

        else:
            return _text(f"Unknown tool: {name}")

    except Exception as e:
        logger.error(f"Error executing tool {name}: {e}", exc_info=True)
        return [
            TextContent(
                type="text",
                text=f"Error: {str(e)}",
            )
        ]


async def main() -> None:
    """Main entry point."""
    global settings_manager

    # Load configuration from file and environment
    settings_manager = SettingsManager(settings_file=os.environ.get("STOREFRONT_SETTINGS_FILE"))
    settings = settings_manager.apply_env_overrides()

    logger.info(
        f"Store settings: currency={settings.currency}, shipping={settings.shipping_cost}, "
        f"tax_enabled={settings.checkout_settings.tax_enabled if settings.checkout_settings else False}"
    )
    logger.info("Starting Storefront MCP Server...")

    # Import and run the server
    from mcp.server.stdio import stdio_server

    async with stdio_server() as (read_stream, write_stream):
        await app.run(
            read_stream,
            write_stream,
            app.create_initialization_options(),
        )


if __name__ == "__main__":
    asyncio.run(main())
