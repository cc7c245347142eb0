"""
Centralized access to settlement engine configuration.

Values are read lazily from ``settings.SETTLEMENT`` on first access so that
tests using ``override_settings`` can call ``reload()`` to pick up changes.
"""

from decimal import Decimal
from typing import Any, Optional
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
import logging

logger = logging.getLogger(__name__)

DEFAULTS = {
    "CARD_GATEWAY_BACKEND": "simulated",
    "SIMULATED_3DS_THRESHOLD": Decimal("100.00"),
    "ROUNDING_TOLERANCE": Decimal("0.01"),
    "MISSING_TAX_RATE_POLICY": "zero",
    "GATEWAY_TIMEOUT_SECONDS": 30,
}

GATEWAY_BACKENDS = ("simulated", "stripe")
MISSING_TAX_RATE_POLICIES = ("zero", "error")


class SettlementSettings:
    """
    A LAZY singleton over the ``SETTLEMENT`` settings dict.
    Settings are loaded and validated on the first attribute access.
    """

    _instance: Optional["SettlementSettings"] = None
    _initialized: bool = False

    def __new__(cls) -> "SettlementSettings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __getattr__(self, name: str) -> Any:
        if not self._initialized:
            self.load_settings()

        try:
            return self.__dict__[name]
        except KeyError:
            raise AttributeError(f"'SettlementSettings' object has no attribute '{name}'")

    def load_settings(self) -> None:
        """
        Merge ``settings.SETTLEMENT`` over the defaults and validate choices.
        """
        configured = getattr(settings, "SETTLEMENT", {}) or {}
        merged = {**DEFAULTS, **configured}

        backend = str(merged["CARD_GATEWAY_BACKEND"]).lower()
        if backend not in GATEWAY_BACKENDS:
            raise ImproperlyConfigured(
                f"CARD_GATEWAY_BACKEND must be one of {GATEWAY_BACKENDS}, got '{backend}'"
            )
        policy = str(merged["MISSING_TAX_RATE_POLICY"]).lower()
        if policy not in MISSING_TAX_RATE_POLICIES:
            raise ImproperlyConfigured(
                f"MISSING_TAX_RATE_POLICY must be one of {MISSING_TAX_RATE_POLICIES}, got '{policy}'"
            )

        self.__dict__.update(
            card_gateway_backend=backend,
            simulated_3ds_threshold=Decimal(str(merged["SIMULATED_3DS_THRESHOLD"])),
            rounding_tolerance=Decimal(str(merged["ROUNDING_TOLERANCE"])),
            missing_tax_rate_policy=policy,
            gateway_timeout_seconds=int(merged["GATEWAY_TIMEOUT_SECONDS"]),
        )
        type(self)._initialized = True
        logger.debug(f"Settlement settings loaded (gateway={backend}, tax policy={policy})")

    def reload(self) -> None:
        """
        Force a reload on next access. Used by tests after ``override_settings``.
        """
        for key in (
            "card_gateway_backend",
            "simulated_3ds_threshold",
            "rounding_tolerance",
            "missing_tax_rate_policy",
            "gateway_timeout_seconds",
        ):
            self.__dict__.pop(key, None)
        type(self)._initialized = False


settlement_settings = SettlementSettings()
