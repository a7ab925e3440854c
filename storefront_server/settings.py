"""Store settings loading and persistence."""

import json
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping, Optional
import logging

from .models import CheckoutSettings, StoreSettings

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "on"}


class SettingsManager:
    """Manages store settings and their persistence.

    ``stored_settings`` mirrors the settings file. ``settings`` is what the
    servers use: the stored settings with environment overrides applied on
    top. Overrides are never written to the file.
    """

    def __init__(self, settings_file: Optional[str] = None) -> None:
        """
        Initialize settings manager.

        Args:
            settings_file: Path to settings file (default: ~/.storefront_settings.json)
        """
        if settings_file is None:
            settings_file = str(Path.home() / ".storefront_settings.json")
        self.settings_file = settings_file
        self.stored_settings = StoreSettings()
        self.overrides: dict[str, Any] = {}
        self.settings = self.stored_settings
        self._load_settings()

    def _load_settings(self) -> None:
        """Load saved settings from file."""
        if not os.path.exists(self.settings_file):
            return

        try:
            with open(self.settings_file) as f:
                self.stored_settings = StoreSettings.model_validate(json.load(f))
            self.settings = self._with_overrides(self.stored_settings)
            logger.info(f"Loaded store settings from {self.settings_file}")
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load store settings: {e}")

    def save_settings(self, settings: StoreSettings) -> None:
        """Save settings to file, then re-apply environment overrides."""
        self.stored_settings = settings
        self.settings = self._with_overrides(settings)

        try:
            with open(self.settings_file, "w") as f:
                f.write(settings.model_dump_json(by_alias=True, indent=2))
            os.chmod(self.settings_file, 0o600)
            logger.info(f"Store settings saved to {self.settings_file}")
        except OSError as e:
            logger.error(f"Could not save store settings: {e}")

    @staticmethod
    def _merge(
        settings: StoreSettings,
        currency: Optional[str] = None,
        shipping_cost: Optional[Decimal] = None,
        tax_enabled: Optional[bool] = None,
        tax_rate: Optional[Decimal] = None,
    ) -> StoreSettings:
        data = settings.model_dump()
        checkout = data.get("checkout_settings") or CheckoutSettings().model_dump()

        if currency is not None:
            data["currency"] = currency.upper()
        if shipping_cost is not None:
            data["shipping_cost"] = shipping_cost
        if tax_enabled is not None:
            checkout["tax_enabled"] = tax_enabled
        if tax_rate is not None:
            checkout["tax_rate"] = tax_rate
        data["checkout_settings"] = checkout

        return StoreSettings.model_validate(data)

    def _with_overrides(self, settings: StoreSettings) -> StoreSettings:
        if not self.overrides:
            return settings
        return self._merge(settings, **self.overrides)

    def update(
        self,
        currency: Optional[str] = None,
        shipping_cost: Optional[Decimal] = None,
        tax_enabled: Optional[bool] = None,
        tax_rate: Optional[Decimal] = None,
        persist: bool = True,
    ) -> StoreSettings:
        """
        Update selected fields of the stored settings, keeping the others.

        Returns:
            The effective settings, environment overrides included

        Raises:
            pydantic.ValidationError: Negative shipping cost or tax rate
        """
        stored = self._merge(
            self.stored_settings,
            currency=currency,
            shipping_cost=shipping_cost,
            tax_enabled=tax_enabled,
            tax_rate=tax_rate,
        )
        if persist:
            self.save_settings(stored)
        else:
            self.stored_settings = stored
            self.settings = self._with_overrides(stored)
        return self.settings

    def apply_env_overrides(self, environ: Optional[Mapping[str, str]] = None) -> StoreSettings:
        """Override settings from STOREFRONT_* environment variables (not persisted)."""
        if environ is None:
            environ = os.environ

        overrides: dict[str, Any] = {
            "currency": environ.get("STOREFRONT_CURRENCY"),
            "shipping_cost": self._parse_decimal(environ, "STOREFRONT_SHIPPING_COST"),
            "tax_rate": self._parse_decimal(environ, "STOREFRONT_TAX_RATE"),
        }
        if environ.get("STOREFRONT_TAX_ENABLED") is not None:
            overrides["tax_enabled"] = environ["STOREFRONT_TAX_ENABLED"].strip().lower() in TRUE_VALUES
        overrides = {key: value for key, value in overrides.items() if value is not None}

        if overrides:
            logger.info(f"Applying store settings overrides from environment: {', '.join(sorted(overrides))}")

        # Overrides are kept only once they validate
        self.settings = self._merge(self.stored_settings, **overrides)
        self.overrides = overrides
        return self.settings

    @staticmethod
    def _parse_decimal(environ: Mapping[str, str], key: str) -> Optional[Decimal]:
        value = environ.get(key)
        if value is None:
            return None
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            logger.warning(f"Ignoring {key}: not a number ({value!r})")
            return None
