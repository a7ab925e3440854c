"""Exceptions raised by the storefront pricing library."""


class InvalidVariantConfigError(ValueError):
    """Raised when a stored variant configuration cannot be parsed."""


class CartItemNotFoundError(KeyError):
    """Raised when a cart line ID does not exist."""

    def __init__(self, line_id: str) -> None:
        super().__init__(line_id)
        self.line_id = line_id

    def __str__(self) -> str:
        return f"Cart item not found: {self.line_id}"
