"""Tests for the MCP server tool and resource handlers."""

import asyncio
import json

import pytest

from storefront_server import server
from storefront_server.cart import Cart
from storefront_server.settings import SettingsManager


@pytest.fixture(autouse=True)
def server_state(monkeypatch, tmp_path):
    manager = SettingsManager(settings_file=str(tmp_path / "settings.json"))
    manager.update(currency="USD", shipping_cost=25, tax_enabled=True, tax_rate=10, persist=False)
    monkeypatch.setattr(server, "settings_manager", manager, raising=False)
    monkeypatch.setattr(server, "cart", Cart())
    return manager


def call(name, arguments=None) -> str:
    result = asyncio.run(server.call_tool(name, arguments))
    assert len(result) == 1
    return result[0].text


def test_list_tools_names():
    tools = asyncio.run(server.list_tools())
    names = {tool.name for tool in tools}

    assert "storefront_calculate_variant_price" in names
    assert "storefront_cart_summary" in names
    assert all(name.startswith("storefront_") for name in names)


def test_calculate_variant_price_tool(raw_config):
    text = call(
        "storefront_calculate_variant_price",
        {"base_price": 100, "selected_variants": {"color": "blue"}, "variants": json.dumps(raw_config)},
    )

    assert "Final price: $110.00" in text
    assert "color=blue: +10" in text


def test_calculate_variant_price_invalid_config():
    text = call("storefront_calculate_variant_price", {"base_price": 10, "variants": "{oops"})
    assert text.startswith("Error:")


def test_negative_base_price_is_rejected(raw_config):
    text = call("storefront_calculate_variant_price", {"base_price": -5, "variants": raw_config})
    assert text.startswith("Error:")
    assert "base_price must be >= 0" in text

    text = call(
        "storefront_add_to_cart",
        {"product_id": "tee", "product_name": "T-Shirt", "base_price": -1},
    )
    assert text.startswith("Error:")
    assert len(server.cart) == 0


def test_base_price_schema_has_minimum():
    tools = {tool.name: tool for tool in asyncio.run(server.list_tools())}

    for name in ("storefront_calculate_variant_price", "storefront_add_to_cart"):
        assert tools[name].inputSchema["properties"]["base_price"]["minimum"] == 0


def test_default_variants_tool(raw_config):
    assert call("storefront_default_variants", {"variants": raw_config}) == "Default selection: Color: Red"
    assert call("storefront_default_variants", {}) == "No default variants configured"


def test_variant_sku_tool():
    text = call("storefront_variant_sku", {"base_sku": "TEE", "selected_variants": {"size": "xl", "color": "red"}})
    assert text == "SKU: TEE-CRED-SXL"


def test_check_and_validate_tools(raw_config):
    assert call("storefront_check_variant", {"variants": raw_config}) == "❌ Please select: Color"
    assert call("storefront_check_variant", {"variants": raw_config, "selected_variants": {"color": "red"}}).startswith("✅")
    assert call("storefront_validate_variants", {"variants": raw_config}) == "✅ Variant configuration is valid"


def test_cart_summary_tool_uses_store_settings():
    items = [
        {"productId": "a", "productName": "A", "quantity": 2, "unitPrice": 20},
        {"productId": "b", "productName": "B", "quantity": 1, "unitPrice": 5},
        {"productId": "c", "productName": "C", "quantity": 3, "unitPrice": 0},
    ]
    text = call("storefront_cart_summary", {"items": items})

    assert "Items: 6" in text
    assert "Subtotal: $45.00" in text
    assert "Tax (10%): $4.50" in text
    assert "Total: $74.50" in text


def test_cart_flow(raw_config):
    text = call(
        "storefront_add_to_cart",
        {
            "product_id": "tee",
            "product_name": "T-Shirt",
            "base_price": 20,
            "quantity": 2,
            "selected_variants": {"color": "blue"},
            "variants": raw_config,
        },
    )
    assert "Unit price: $30.00" in text
    assert "Line: tee:color=blue" in text

    cart_text = call("storefront_get_cart")
    assert "T-Shirt x2" in cart_text
    assert "Total: $91.00" in cart_text

    assert call("storefront_update_cart_quantity", {"line_id": "tee:color=blue", "quantity": 1}).endswith("quantity 1")
    assert call("storefront_remove_from_cart", {"line_id": "tee:color=blue"}) == "✅ Removed T-Shirt from cart"
    assert call("storefront_get_cart") == "Your cart is empty"


def test_remove_unknown_line_reports_error():
    assert call("storefront_remove_from_cart", {"line_id": "nope"}) == "Error: Cart item not found: nope"


def test_update_settings_tool(server_state):
    text = call("storefront_update_settings", {"shipping_cost": 5, "tax_enabled": False})

    assert text.startswith("✅ Store settings updated")
    assert server_state.settings.shipping_cost == 5
    assert server_state.settings.checkout_settings.tax_enabled is False


def test_unknown_tool():
    assert call("storefront_nope") == "Unknown tool: storefront_nope"


def test_read_resources():
    server.cart.add_product("mug", "Mug", 8)

    cart_data = json.loads(asyncio.run(server.read_resource("storefront://cart")))
    assert cart_data["items"][0]["productId"] == "mug"
    assert cart_data["summary"]["itemCount"] == 1

    settings_data = json.loads(asyncio.run(server.read_resource("storefront://settings")))
    assert settings_data["currency"] == "USD"

    with pytest.raises(ValueError):
        asyncio.run(server.read_resource("storefront://unknown"))
