"""Cart and order summary calculation."""

import logging
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Iterable, Optional
from urllib.parse import quote

from .errors import CartItemNotFoundError
from .models import CartLineItem, CartSummary, SelectedVariants, StoreSettings
from .variants import (
    RawVariantConfig,
    calculate_variant_price,
    get_default_variant_selection,
    parse_variant_config,
)

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {
    "MAD": "DH",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "CAD": "C$",
    "AUD": "A$",
    "JPY": "¥",
    "CNY": "¥",
    "INR": "₹",
}
DEFAULT_CURRENCY = "MAD"


def round_money(amount: Decimal, places: int = 2) -> Decimal:
    """Round to specified decimal places using banker's rounding."""
    quantize_str = "0." + "0" * places if places > 0 else "1"
    return Decimal(str(amount)).quantize(Decimal(quantize_str), rounding=ROUND_HALF_EVEN)


def format_price(amount: Decimal, currency: str = DEFAULT_CURRENCY) -> str:
    """Format an amount for display, e.g. ``"12.50 DH"`` or ``"$12.50"``."""
    symbol = CURRENCY_SYMBOLS.get(currency, CURRENCY_SYMBOLS[DEFAULT_CURRENCY])
    value = round_money(amount)

    if currency == DEFAULT_CURRENCY:
        return f"{value:.2f} {symbol}"
    return f"{symbol}{value:.2f}"


def calculate_cart_summary(
    line_items: Iterable[CartLineItem],
    store_settings: Optional[StoreSettings],
) -> CartSummary:
    """
    Calculate cart totals.

    Shipping is a flat fee per order and is never taxed. Tax applies to the
    subtotal only, and only when the store enables it.

    Args:
        line_items: Cart lines with frozen unit prices
        store_settings: Store configuration, or None for no shipping and no tax

    Returns:
        CartSummary where total == subtotal + shipping + tax
    """
    item_count = 0
    subtotal = Decimal("0")
    for item in line_items:
        item_count += item.quantity
        subtotal += item.line_total

    shipping = Decimal("0")
    tax_enabled = False
    tax_rate = Decimal("0")

    if store_settings is not None:
        shipping = store_settings.shipping_cost
        checkout = store_settings.checkout_settings
        if checkout is not None:
            tax_enabled = checkout.tax_enabled
        if checkout is not None and checkout.tax_rate is not None:
            tax_rate = checkout.tax_rate
        elif store_settings.tax_rate is not None:
            tax_rate = store_settings.tax_rate

    tax = subtotal * (tax_rate / 100) if tax_enabled else Decimal("0")

    return CartSummary(
        item_count=item_count,
        subtotal=subtotal,
        shipping=shipping,
        tax_enabled=tax_enabled,
        tax_rate=tax_rate,
        tax=tax,
        total=subtotal + shipping + tax,
    )


class Cart:
    """In-memory shopping cart.

    Lines are keyed by product and variant selection, so adding the same
    product with the same options again increases the quantity of the
    existing line instead of creating a new one.
    """

    def __init__(self) -> None:
        self._lines: dict[str, CartLineItem] = {}

    @staticmethod
    def line_id_for(product_id: str, selected_variants: Optional[SelectedVariants] = None) -> str:
        """Build the line ID for a product and variant selection.

        Components are percent-encoded, so the ``:``, ``=`` and ``|``
        separators only ever come from the ID structure itself.
        """
        product_part = quote(product_id, safe="")
        if not selected_variants:
            return product_part
        parts = [
            f"{quote(group_id, safe='')}={quote(selected_variants[group_id], safe='')}"
            for group_id in sorted(selected_variants)
        ]
        return f"{product_part}:{'|'.join(parts)}"

    @property
    def items(self) -> list[CartLineItem]:
        return list(self._lines.values())

    @property
    def line_ids(self) -> list[str]:
        return list(self._lines)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._lines.values())

    def __len__(self) -> int:
        return len(self._lines)

    def get_item(self, line_id: str) -> CartLineItem:
        try:
            return self._lines[line_id]
        except KeyError:
            raise CartItemNotFoundError(line_id) from None

    def add_item(self, item: CartLineItem) -> tuple[str, CartLineItem]:
        """
        Add a line to the cart, merging with an identical existing line.

        The existing line keeps its original frozen unit price.

        Returns:
            (line_id, resulting line)
        """
        line_id = self.line_id_for(item.product_id, item.selected_variants)
        existing = self._lines.get(line_id)

        if existing is not None:
            merged = existing.model_copy(update={"quantity": existing.quantity + item.quantity})
            self._lines[line_id] = merged
            logger.info(f"Increased quantity of {line_id} to {merged.quantity}")
            return line_id, merged

        self._lines[line_id] = item
        logger.info(f"Added {line_id} (quantity: {item.quantity}) to cart")
        return line_id, item

    def add_product(
        self,
        product_id: str,
        product_name: str,
        base_price: Decimal,
        quantity: int = 1,
        selected_variants: Optional[SelectedVariants] = None,
        variants: RawVariantConfig = None,
    ) -> tuple[str, CartLineItem]:
        """
        Add a product, freezing its unit price from the variant pricing engine.

        When no selection is given, the product's default options are used.
        The frozen price is rounded to minor units and never goes below zero.

        Raises:
            InvalidVariantConfigError: Stored variant config cannot be parsed
            pydantic.ValidationError: Quantity below 1
        """
        config = parse_variant_config(variants)
        if selected_variants is None:
            selected_variants = get_default_variant_selection(config)

        calculation = calculate_variant_price(base_price, selected_variants, config)
        unit_price = round_money(calculation.final_price)
        if unit_price < 0:
            logger.warning(
                f"Variant price for {product_id} is negative ({unit_price}), clamping to 0"
            )
            unit_price = Decimal("0")

        item = CartLineItem(
            product_id=product_id,
            product_name=product_name,
            quantity=quantity,
            unit_price=unit_price,
            selected_variants=selected_variants or None,
        )
        return self.add_item(item)

    def update_quantity(self, line_id: str, quantity: int) -> Optional[CartLineItem]:
        """Set the quantity of a line. A quantity of 0 or less removes it."""
        if quantity <= 0:
            self.remove_item(line_id)
            return None

        updated = self.get_item(line_id).model_copy(update={"quantity": quantity})
        self._lines[line_id] = updated
        return updated

    def remove_item(self, line_id: str) -> CartLineItem:
        """Remove a line and return it."""
        item = self.get_item(line_id)
        del self._lines[line_id]
        logger.info(f"Removed {line_id} from cart")
        return item

    def clear(self) -> None:
        self._lines.clear()

    def summary(self, store_settings: Optional[StoreSettings]) -> CartSummary:
        return calculate_cart_summary(self._lines.values(), store_settings)
