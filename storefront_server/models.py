"""Data models for storefront pricing entities."""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Maps a variant group id to the chosen option id.
SelectedVariants = dict[str, str]


class StorefrontModel(BaseModel):
    """Base model accepting both camelCase (storage layer) and snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VariantOption(StorefrontModel):
    """One selectable choice within a variant group."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(description="Option ID, unique within its group")
    label: str = Field(description="Display label (e.g. 'Blue', 'XL')")
    price_modifier: Decimal = Field(default=Decimal("0"), description="Signed delta added to the base price")
    default: bool = Field(default=False, description="Preselected when the product is opened")
    available: bool = Field(default=True, description="Whether the option can currently be bought")


class VariantGroup(StorefrontModel):
    """A named axis of choice such as Color or Size."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(description="Group ID")
    name: str = Field(description="Group display name")
    required: bool = Field(default=False, description="Whether a selection is mandatory before checkout")
    options: list[VariantOption] = Field(default_factory=list, description="Selectable options")

    def find_option(self, option_id: str) -> Optional[VariantOption]:
        """Return the option with the given ID, or None."""
        for option in self.options:
            if option.id == option_id:
                return option
        return None


class ProductVariantConfig(StorefrontModel):
    """Variant configuration stored on a product."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    groups: list[VariantGroup] = Field(default_factory=list, description="Variant groups")

    def find_group(self, group_id: str) -> Optional[VariantGroup]:
        """Return the group with the given ID, or None."""
        for group in self.groups:
            if group.id == group_id:
                return group
        return None


class AppliedVariantRule(StorefrontModel):
    """A selected option that contributed to the final price."""

    group_id: str
    option_id: str
    modifier: Decimal


class VariantPriceCalculation(StorefrontModel):
    """Result of a variant price calculation."""

    base_price: Decimal
    total_modifier: Decimal = Decimal("0")
    final_price: Decimal
    applied_rules: list[AppliedVariantRule] = Field(default_factory=list)


class VariantAvailability(StorefrontModel):
    """Whether a variant selection can be purchased."""

    is_available: bool
    reason: Optional[str] = None


class VariantConfigValidation(StorefrontModel):
    """Outcome of validating a variant configuration."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)


class CartLineItem(StorefrontModel):
    """Represents one product entry in the cart."""

    product_id: str = Field(description="Product ID")
    product_name: str = Field(description="Product name")
    quantity: int = Field(default=1, ge=1, description="Quantity of the product")
    unit_price: Decimal = Field(ge=0, description="Unit price frozen at add-time")
    selected_variants: Optional[SelectedVariants] = Field(None, description="Chosen variant options")

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class CheckoutSettings(StorefrontModel):
    """Tax configuration of the store checkout."""

    tax_enabled: bool = False
    tax_rate: Optional[Decimal] = Field(None, ge=0, description="Tax rate in percent")


class StoreSettings(StorefrontModel):
    """Merchant-level configuration consumed by the summary calculator."""

    currency: str = Field(default="MAD", description="ISO currency code")
    shipping_cost: Decimal = Field(default=Decimal("0"), ge=0, description="Flat shipping fee per order")
    tax_rate: Optional[Decimal] = Field(
        None, ge=0, description="Store-level tax rate, used when the checkout settings set none"
    )
    checkout_settings: Optional[CheckoutSettings] = None


class CartSummary(StorefrontModel):
    """Derived cart totals."""

    item_count: int = 0
    subtotal: Decimal = Decimal("0")
    shipping: Decimal = Decimal("0")
    tax_enabled: bool = False
    tax_rate: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
