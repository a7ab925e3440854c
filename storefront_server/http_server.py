"""HTTP server for Storefront MCP Server."""

import logging
import os
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .cart import Cart, calculate_cart_summary, format_price
from .errors import CartItemNotFoundError
from .models import CartLineItem, SelectedVariants, StoreSettings
from .settings import SettingsManager
from .variants import (
    check_variant_availability,
    calculate_variant_price,
    generate_variant_sku,
    get_all_variant_combinations,
    get_default_variant_selection,
    parse_variant_config,
    validate_variant_config,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("storefront-http-server")

# Global state
settings_manager: SettingsManager
cart: Cart


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    global settings_manager, cart

    # Startup
    logger.info("Starting Storefront HTTP Server...")
    settings_manager = SettingsManager(settings_file=os.environ.get("STOREFRONT_SETTINGS_FILE"))
    settings_manager.apply_env_overrides()
    cart = Cart()

    yield

    # Shutdown
    logger.info("Shutting down Storefront HTTP Server...")


app = FastAPI(
    title="Storefront MCP Server",
    description="HTTP API for storefront variant pricing and cart totals",
    version="0.1.0",
    lifespan=lifespan,
)


# Request/Response Models
class VariantPriceRequest(BaseModel):
    base_price: Decimal = Field(ge=0)
    selected_variants: SelectedVariants = Field(default_factory=dict)
    variants: Any = None


class VariantConfigRequest(BaseModel):
    variants: Any = None


class VariantSelectionRequest(BaseModel):
    selected_variants: SelectedVariants = Field(default_factory=dict)
    variants: Any = None


class SkuRequest(BaseModel):
    base_sku: str
    selected_variants: SelectedVariants = Field(default_factory=dict)


class AddToCartRequest(BaseModel):
    product_id: str
    product_name: str
    base_price: Decimal = Field(ge=0)
    quantity: int = 1
    selected_variants: Optional[SelectedVariants] = None
    variants: Any = None


class UpdateQuantityRequest(BaseModel):
    line_id: str
    quantity: int


class RemoveFromCartRequest(BaseModel):
    line_id: str


class CartSummaryRequest(BaseModel):
    items: list[CartLineItem] = Field(default_factory=list)
    settings: Optional[StoreSettings] = None


class UpdateSettingsRequest(BaseModel):
    currency: Optional[str] = None
    shipping_cost: Optional[Decimal] = None
    tax_enabled: Optional[bool] = None
    tax_rate: Optional[Decimal] = None


def _cart_payload() -> dict[str, Any]:
    settings = settings_manager.settings
    summary = cart.summary(settings)
    return {
        "items": [
            {"lineId": line_id, **item.model_dump(mode="json", by_alias=True)}
            for line_id, item in zip(cart.line_ids, cart.items)
        ],
        "summary": summary.model_dump(mode="json", by_alias=True),
        "formattedTotal": format_price(summary.total, settings.currency),
    }


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Storefront MCP Server",
        "version": "0.1.0",
        "description": "HTTP API for storefront variant pricing and cart totals",
        "mcp_compatible": True,
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "variants": {
                "price": "POST /variants/price",
                "default": "POST /variants/default",
                "sku": "POST /variants/sku",
                "availability": "POST /variants/availability",
                "validate": "POST /variants/validate",
                "combinations": "POST /variants/combinations",
            },
            "cart": {
                "get": "GET /cart",
                "add": "POST /cart/add",
                "update": "POST /cart/update",
                "remove": "POST /cart/remove",
                "clear": "POST /cart/clear",
                "summary": "POST /cart/summary",
            },
            "settings": {"get": "GET /settings", "update": "POST /settings"},
        },
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "cart_items": cart.item_count}


# Variant endpoints
@app.post("/variants/price")
async def variant_price(request: VariantPriceRequest):
    """Calculate the unit price for a variant selection."""
    try:
        config = parse_variant_config(request.variants)
        calculation = calculate_variant_price(request.base_price, request.selected_variants, config)
        return calculation.model_dump(mode="json", by_alias=True)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Variant price error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/variants/default")
async def default_variants(request: VariantConfigRequest):
    """Get the default variant selection."""
    try:
        config = parse_variant_config(request.variants)
        return {"selectedVariants": get_default_variant_selection(config)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/variants/sku")
async def variant_sku(request: SkuRequest):
    """Generate a variant SKU."""
    return {"sku": generate_variant_sku(request.base_sku, request.selected_variants)}


@app.post("/variants/availability")
async def variant_availability(request: VariantSelectionRequest):
    """Check whether a variant selection can be purchased."""
    try:
        config = parse_variant_config(request.variants)
        availability = check_variant_availability(request.selected_variants, config)
        return availability.model_dump(by_alias=True)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/variants/validate")
async def validate_variants(request: VariantConfigRequest):
    """Validate a variant configuration."""
    try:
        config = parse_variant_config(request.variants)
        if config is None:
            raise HTTPException(status_code=400, detail="variants must be provided")
        return validate_variant_config(config).model_dump(by_alias=True)
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/variants/combinations")
async def variant_combinations(request: VariantConfigRequest):
    """List all purchasable variant combinations."""
    try:
        config = parse_variant_config(request.variants)
        combinations = get_all_variant_combinations(config) if config else [{}]
        return {"count": len(combinations), "combinations": combinations}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# Cart endpoints
@app.get("/cart")
async def get_cart():
    """Get current shopping cart."""
    return _cart_payload()


@app.post("/cart/add")
async def add_to_cart(request: AddToCartRequest):
    """Add a product to the cart."""
    try:
        line_id, item = cart.add_product(
            product_id=request.product_id,
            product_name=request.product_name,
            base_price=request.base_price,
            quantity=request.quantity,
            selected_variants=request.selected_variants,
            variants=request.variants,
        )
        return {
            "success": True,
            "lineId": line_id,
            "item": item.model_dump(mode="json", by_alias=True),
            "message": f"Added {request.product_name} (quantity: {request.quantity}) to cart",
        }
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Add to cart error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/cart/update")
async def update_cart_quantity(request: UpdateQuantityRequest):
    """Update the quantity of a cart line."""
    try:
        item = cart.update_quantity(request.line_id, request.quantity)
        if item is None:
            return {"success": True, "message": f"Removed {request.line_id} from cart"}
        return {"success": True, "item": item.model_dump(mode="json", by_alias=True)}
    except CartItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/cart/remove")
async def remove_from_cart(request: RemoveFromCartRequest):
    """Remove a line from the cart."""
    try:
        item = cart.remove_item(request.line_id)
        return {"success": True, "message": f"Removed {item.product_name} from cart"}
    except CartItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/cart/clear")
async def clear_cart():
    """Remove all items from the cart."""
    cart.clear()
    return {"success": True, "message": "Cart cleared"}


@app.post("/cart/summary")
async def cart_summary(request: CartSummaryRequest):
    """Calculate totals for the given line items."""
    settings = request.settings or settings_manager.settings
    summary = calculate_cart_summary(request.items, settings)
    return summary.model_dump(mode="json", by_alias=True)


# Settings endpoints
@app.get("/settings")
async def get_settings():
    """Get store settings."""
    return settings_manager.settings.model_dump(mode="json", by_alias=True)


@app.post("/settings")
async def update_settings(request: UpdateSettingsRequest):
    """Update store settings."""
    try:
        settings = settings_manager.update(
            currency=request.currency,
            shipping_cost=request.shipping_cost,
            tax_enabled=request.tax_enabled,
            tax_rate=request.tax_rate,
        )
        return settings.model_dump(mode="json", by_alias=True)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def run_http_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the HTTP server."""
    import uvicorn

    uvicorn.run(app, host=host, port=port, log_level="info")
