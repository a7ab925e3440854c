"""
Tests for the variant pricing engine.

Covers:
- Default selection
- Price calculation, including stale selections
- SKU generation
- Config parsing, availability, validation, combinations, display
"""

import json
from decimal import Decimal

import pytest

from storefront_server.errors import InvalidVariantConfigError
from storefront_server.models import ProductVariantConfig
from storefront_server.variants import (
    calculate_variant_price,
    check_variant_availability,
    format_variant_selection,
    generate_variant_sku,
    get_all_variant_combinations,
    get_default_variant_selection,
    parse_variant_config,
    validate_variant_config,
)


# -------------------
# Default selection
# -------------------

def test_default_selection_picks_default_options(config):
    assert get_default_variant_selection(config) == {"color": "red"}


def test_default_selection_without_config():
    assert get_default_variant_selection(None) == {}


def test_default_selection_without_defaults_is_empty():
    config = ProductVariantConfig.model_validate(
        {"groups": [{"id": "size", "name": "Size", "options": [{"id": "m", "label": "M"}]}]}
    )
    first = get_default_variant_selection(config)
    assert first == {}
    assert get_default_variant_selection(config) == first


# -------------------
# Price calculation
# -------------------

def test_price_with_modifier():
    config = ProductVariantConfig.model_validate(
        {
            "groups": [
                {
                    "id": "Color",
                    "name": "Color",
                    "options": [
                        {"id": "Red", "label": "Red", "priceModifier": 0},
                        {"id": "Blue", "label": "Blue", "priceModifier": 10},
                    ],
                }
            ]
        }
    )
    result = calculate_variant_price(Decimal("100"), {"Color": "Blue"}, config)

    assert result.final_price == Decimal("110")
    assert result.total_modifier == Decimal("10")
    assert [(r.group_id, r.option_id, r.modifier) for r in result.applied_rules] == [
        ("Color", "Blue", Decimal("10"))
    ]


def test_price_sums_multiple_groups(config):
    result = calculate_variant_price(Decimal("40"), {"color": "blue", "size": "s"}, config)

    assert result.total_modifier == Decimal("7.50")
    assert result.final_price == Decimal("47.50")
    assert len(result.applied_rules) == 2


def test_unknown_option_is_skipped(config):
    result = calculate_variant_price(Decimal("50"), {"size": "unknown-id"}, config)

    assert result.final_price == Decimal("50")
    assert result.total_modifier == 0
    assert result.applied_rules == []


def test_unknown_group_is_skipped_but_others_apply(config):
    result = calculate_variant_price(Decimal("50"), {"material": "cotton", "color": "blue"}, config)

    assert result.final_price == Decimal("60")
    assert [r.group_id for r in result.applied_rules] == ["color"]


@pytest.mark.parametrize("selected, use_config", [({}, True), ({"color": "blue"}, False), (None, True)])
def test_no_variants_returns_base_price(config, selected, use_config):
    result = calculate_variant_price(Decimal("19.99"), selected, config if use_config else None)

    assert result.base_price == Decimal("19.99")
    assert result.final_price == Decimal("19.99")
    assert result.total_modifier == 0
    assert result.applied_rules == []


def test_price_calculation_is_idempotent(config):
    selected = {"color": "blue", "size": "xl"}
    assert calculate_variant_price(Decimal("30"), selected, config) == calculate_variant_price(
        Decimal("30"), selected, config
    )


def test_negative_final_price_is_not_clamped(config):
    result = calculate_variant_price(Decimal("1"), {"size": "s"}, config)
    assert result.final_price == Decimal("-1.50")


def test_float_base_price_keeps_its_decimal_value(config):
    result = calculate_variant_price(19.99, {}, config)
    assert result.final_price == Decimal("19.99")


# -------------------
# SKU generation
# -------------------

def test_sku_without_selection_is_unchanged():
    assert generate_variant_sku("TSHIRT", {}) == "TSHIRT"


def test_sku_with_empty_base_is_unchanged():
    assert generate_variant_sku("", {"color": "blue"}) == ""


def test_sku_tokens():
    assert generate_variant_sku("TSHIRT", {"size": "x-l", "color": "blue"}) == "TSHIRT-CBLUE-SXL"


def test_sku_is_order_independent():
    first = generate_variant_sku("MUG", {"color": "red", "size": "s"})
    second = generate_variant_sku("MUG", {"size": "s", "color": "red"})
    assert first == second


# -------------------
# Config parsing
# -------------------

def test_parse_config_from_json_string(raw_config):
    config = parse_variant_config(json.dumps(raw_config))
    assert [g.id for g in config.groups] == ["color", "size"]
    assert config.find_group("size").find_option("xl").price_modifier == Decimal("7.25")


def test_parse_config_from_dict_and_model(raw_config, config):
    assert parse_variant_config(raw_config) == config
    assert parse_variant_config(config) is config


@pytest.mark.parametrize("raw", [None, "", "   ", "null"])
def test_parse_config_empty_values(raw):
    assert parse_variant_config(raw) is None


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", {"groups": [{"name": "missing id"}]}])
def test_parse_config_invalid(raw):
    with pytest.raises(InvalidVariantConfigError):
        parse_variant_config(raw)


# -------------------
# Availability
# -------------------

def test_availability_requires_required_groups(config):
    result = check_variant_availability({"size": "s"}, config)
    assert not result.is_available
    assert result.reason == "Please select: Color"


def test_availability_invalid_option(config):
    result = check_variant_availability({"color": "purple"}, config)
    assert not result.is_available
    assert result.reason == "Invalid selection for Color"


def test_availability_unavailable_option(config):
    result = check_variant_availability({"color": "green"}, config)
    assert not result.is_available
    assert result.reason == "Green is currently unavailable"


def test_availability_ok(config):
    assert check_variant_availability({"color": "blue", "size": "xl"}, config).is_available
    assert check_variant_availability({}, None).is_available


# -------------------
# Validation
# -------------------

def test_validate_valid_config(config):
    result = validate_variant_config(config)
    assert result.is_valid
    assert result.errors == []


def test_validate_reports_all_problems():
    config = ProductVariantConfig.model_validate(
        {
            "groups": [
                {"id": "color", "name": " ", "options": []},
                {
                    "id": "size",
                    "name": "Size",
                    "options": [
                        {"id": "m", "label": "M", "default": True},
                        {"id": "m", "label": "Medium", "default": True},
                    ],
                },
                {"id": "size", "name": "Size again", "options": [{"id": "l", "label": ""}]},
            ]
        }
    )
    result = validate_variant_config(config)

    assert not result.is_valid
    assert "Group 1: Name is required" in result.errors
    assert "Group 1: At least one option is required" in result.errors
    assert "Group 2: Duplicate option IDs found: m" in result.errors
    assert "Group 2: Only one option can be marked as default" in result.errors
    assert "Group 3, Option 1: id and label are required" in result.errors
    assert "Duplicate group IDs found: size" in result.errors


def test_validate_empty_config():
    result = validate_variant_config(ProductVariantConfig())
    assert result.errors == ["At least one variant group is required"]


# -------------------
# Combinations and display
# -------------------

def test_combinations_skip_unavailable_options(config):
    combinations = get_all_variant_combinations(config)

    assert len(combinations) == 4
    assert {"color": "red", "size": "s"} in combinations
    assert all(c["color"] != "green" for c in combinations)


def test_combinations_without_groups():
    assert get_all_variant_combinations(ProductVariantConfig()) == [{}]


def test_format_selection(config):
    text = format_variant_selection({"color": "blue", "size": "gone", "finish": "matte"}, config)
    assert text == "Color: Blue, Size: gone, finish: matte"
