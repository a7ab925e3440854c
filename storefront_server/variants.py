"""Variant pricing engine.

Pure functions over a product's variant configuration: default selection,
price calculation, SKU generation, plus the admin-side helpers used when
editing a product (availability checks, validation, combinations).

Stale selections (an option deleted after a customer picked it) are routine
data, so none of the pricing functions raise on unknown group or option IDs.
"""

import itertools
import json
import logging
import re
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import ValidationError

from .errors import InvalidVariantConfigError
from .models import (
    AppliedVariantRule,
    ProductVariantConfig,
    SelectedVariants,
    VariantAvailability,
    VariantConfigValidation,
    VariantOption,
    VariantPriceCalculation,
)

logger = logging.getLogger(__name__)

SKU_SEPARATOR = "-"

RawVariantConfig = Union[ProductVariantConfig, dict[str, Any], str, None]


def parse_variant_config(raw: RawVariantConfig) -> Optional[ProductVariantConfig]:
    """
    Normalize a stored variant configuration.

    Products store their variants either as a parsed object or as a JSON
    string. This is the only place that deals with that; the engine itself
    only accepts ProductVariantConfig or None.

    Args:
        raw: ProductVariantConfig, dict, JSON string, or None

    Returns:
        Parsed configuration, or None when the product has no variants

    Raises:
        InvalidVariantConfigError: Malformed JSON or invalid structure
    """
    if raw is None or isinstance(raw, ProductVariantConfig):
        return raw

    if isinstance(raw, str):
        if not raw.strip():
            return None
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidVariantConfigError(f"Variant config is not valid JSON: {e}") from e
        if raw is None:
            return None

    if not isinstance(raw, dict):
        raise InvalidVariantConfigError(
            f"Variant config must be an object, got {type(raw).__name__}"
        )

    try:
        return ProductVariantConfig.model_validate(raw)
    except ValidationError as e:
        raise InvalidVariantConfigError(f"Invalid variant config: {e}") from e


def get_default_variant_selection(config: Optional[ProductVariantConfig]) -> SelectedVariants:
    """Preselect the option marked as default in each group, if any."""
    if config is None:
        return {}

    selection: SelectedVariants = {}
    for group in config.groups:
        default_option = next((o for o in group.options if o.default), None)
        if default_option:
            selection[group.id] = default_option.id
    return selection


def _resolve_option(
    config: ProductVariantConfig, group_id: str, option_id: str
) -> Optional[VariantOption]:
    group = config.find_group(group_id)
    if group is None:
        return None
    return group.find_option(option_id)


def calculate_variant_price(
    base_price: Decimal,
    selected: Optional[SelectedVariants],
    config: Optional[ProductVariantConfig],
) -> VariantPriceCalculation:
    """
    Calculate the unit price of a product for the selected variants.

    Each resolvable (group, option) pair adds its price modifier; pairs that
    reference an unknown group or option contribute nothing. No rounding or
    clamping is applied here, callers do that at the boundary.

    Args:
        base_price: Product base price
        selected: Mapping of group ID to option ID
        config: Product variant configuration, or None

    Returns:
        VariantPriceCalculation with the applied modifiers
    """
    base_price = Decimal(str(base_price))

    if not selected or config is None:
        return VariantPriceCalculation(
            base_price=base_price,
            total_modifier=Decimal("0"),
            final_price=base_price,
            applied_rules=[],
        )

    total_modifier = Decimal("0")
    applied_rules: list[AppliedVariantRule] = []

    for group_id, option_id in selected.items():
        option = _resolve_option(config, group_id, option_id)
        if option is None:
            logger.debug(f"Skipping unresolved variant selection {group_id}={option_id}")
            continue

        total_modifier += option.price_modifier
        applied_rules.append(
            AppliedVariantRule(
                group_id=group_id,
                option_id=option_id,
                modifier=option.price_modifier,
            )
        )

    return VariantPriceCalculation(
        base_price=base_price,
        total_modifier=total_modifier,
        final_price=base_price + total_modifier,
        applied_rules=applied_rules,
    )


def _sku_token(group_id: str, option_id: str) -> str:
    prefix = group_id[:1].upper()
    clean_value = re.sub(r"[^A-Za-z0-9]", "", str(option_id)).upper()
    return f"{prefix}{clean_value}"


def generate_variant_sku(base_sku: str, selected: Optional[SelectedVariants]) -> str:
    """
    Build a variant SKU such as ``TSHIRT-CBLUE-SXL``.

    Entries are sorted by group ID so the same selection always yields the
    same SKU regardless of the order options were picked in.
    """
    if not base_sku or not selected:
        return base_sku

    parts = [_sku_token(group_id, selected[group_id]) for group_id in sorted(selected)]
    return SKU_SEPARATOR.join([base_sku, *parts])


def check_variant_availability(
    selected: Optional[SelectedVariants],
    config: Optional[ProductVariantConfig],
) -> VariantAvailability:
    """Check that a selection is complete and purchasable."""
    if config is None:
        return VariantAvailability(is_available=True)

    selected = selected or {}

    missing = [g.name for g in config.groups if g.required and not selected.get(g.id)]
    if missing:
        return VariantAvailability(
            is_available=False,
            reason=f"Please select: {', '.join(missing)}",
        )

    for group in config.groups:
        option_id = selected.get(group.id)
        if not option_id:
            continue

        option = group.find_option(option_id)
        if option is None:
            return VariantAvailability(
                is_available=False,
                reason=f"Invalid selection for {group.name}",
            )
        if not option.available:
            return VariantAvailability(
                is_available=False,
                reason=f"{option.label} is currently unavailable",
            )

    return VariantAvailability(is_available=True)


def _duplicates(values: list[str]) -> list[str]:
    seen: set[str] = set()
    duplicates: list[str] = []
    for value in values:
        if value in seen and value not in duplicates:
            duplicates.append(value)
        seen.add(value)
    return duplicates


def validate_variant_config(config: ProductVariantConfig) -> VariantConfigValidation:
    """
    Validate a variant configuration before it is saved on a product.

    Returns:
        VariantConfigValidation listing every problem found
    """
    errors: list[str] = []

    if not config.groups:
        errors.append("At least one variant group is required")

    for index, group in enumerate(config.groups, 1):
        if not group.name.strip():
            errors.append(f"Group {index}: Name is required")

        if not group.options:
            errors.append(f"Group {index}: At least one option is required")
            continue

        for option_index, option in enumerate(group.options, 1):
            if not option.id or not option.label:
                errors.append(f"Group {index}, Option {option_index}: id and label are required")

        duplicate_ids = _duplicates([o.id for o in group.options])
        if duplicate_ids:
            errors.append(f"Group {index}: Duplicate option IDs found: {', '.join(duplicate_ids)}")

        if sum(1 for o in group.options if o.default) > 1:
            errors.append(f"Group {index}: Only one option can be marked as default")

    duplicate_groups = _duplicates([g.id for g in config.groups])
    if duplicate_groups:
        errors.append(f"Duplicate group IDs found: {', '.join(duplicate_groups)}")

    return VariantConfigValidation(is_valid=not errors, errors=errors)


def get_all_variant_combinations(config: ProductVariantConfig) -> list[SelectedVariants]:
    """List every purchasable selection (Cartesian product of available options)."""
    if not config.groups:
        return [{}]

    group_ids = [g.id for g in config.groups]
    option_ids = [[o.id for o in g.options if o.available] for g in config.groups]

    return [dict(zip(group_ids, combination)) for combination in itertools.product(*option_ids)]


def format_variant_selection(
    selected: SelectedVariants,
    config: Optional[ProductVariantConfig],
) -> str:
    """Render a selection as ``"Color: Blue, Size: XL"``."""
    labels = []
    for group_id, option_id in selected.items():
        group = config.find_group(group_id) if config else None
        if group is None:
            labels.append(f"{group_id}: {option_id}")
            continue

        option = group.find_option(option_id)
        labels.append(f"{group.name}: {option.label if option else option_id}")

    return ", ".join(labels)
