"""Shared fixtures for storefront pricing tests."""

from decimal import Decimal

import pytest

from storefront_server.models import (
    CheckoutSettings,
    ProductVariantConfig,
    StoreSettings,
)

COLOR_SIZE_CONFIG = {
    "groups": [
        {
            "id": "color",
            "name": "Color",
            "required": True,
            "options": [
                {"id": "red", "label": "Red", "priceModifier": 0, "default": True},
                {"id": "blue", "label": "Blue", "priceModifier": 10},
                {"id": "green", "label": "Green", "priceModifier": 5, "available": False},
            ],
        },
        {
            "id": "size",
            "name": "Size",
            "options": [
                {"id": "s", "label": "Small", "priceModifier": "-2.50"},
                {"id": "xl", "label": "Extra Large", "priceModifier": "7.25"},
            ],
        },
    ]
}


@pytest.fixture
def raw_config():
    return COLOR_SIZE_CONFIG


@pytest.fixture
def config():
    return ProductVariantConfig.model_validate(COLOR_SIZE_CONFIG)


@pytest.fixture
def store_settings():
    return StoreSettings(
        currency="USD",
        shipping_cost=Decimal("25"),
        checkout_settings=CheckoutSettings(tax_enabled=True, tax_rate=Decimal("10")),
    )


@pytest.fixture(autouse=True)
def clean_storefront_env(monkeypatch):
    for key in (
        "STOREFRONT_SETTINGS_FILE",
        "STOREFRONT_CURRENCY",
        "STOREFRONT_SHIPPING_COST",
        "STOREFRONT_TAX_ENABLED",
        "STOREFRONT_TAX_RATE",
    ):
        monkeypatch.delenv(key, raising=False)
