"""
Entitlement Service - boundary to the in-app billing SDK.

The billing SDK is an external collaborator. Implement BaseBillingClient on top
of it; this service turns purchase and restore results into tier changes:
- active "premium" entitlement with a TRIAL period -> start the trial
- active "premium" entitlement otherwise          -> premium tier
- no active entitlement                            -> tier unchanged
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from autosolve.core.exceptions import BillingException
from autosolve.core.logging import get_logger
from autosolve.services.usage_service import UsageService

logger = get_logger(__name__)

PREMIUM_ENTITLEMENT = "premium"
WEEKLY_PACKAGE = "$rc_weekly"
TRIAL_PERIOD = "TRIAL"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class Entitlement:
    """An active entitlement reported by the store."""

    identifier: str
    period_type: str = "NORMAL"  # NORMAL, TRIAL, INTRO


@dataclass
class BillingPackage:
    """A purchasable package from the current offering."""

    identifier: str
    product_id: str = ""
    price_string: str = ""
    intro_price: str | None = None
    raw: Any = None


@dataclass
class Offering:
    """The current set of packages."""

    identifier: str
    packages: list[BillingPackage] = field(default_factory=list)


@dataclass
class PurchaseResult:
    """Result of a purchase or restore."""

    ok: bool
    entitlements: dict[str, Entitlement] = field(default_factory=dict)
    error: str | None = None


class PurchaseStatus(StrEnum):
    """What a purchase or restore did to the subscription."""

    ACTIVATED_PREMIUM = "activated_premium"
    ACTIVATED_TRIAL = "activated_trial"
    NO_ENTITLEMENT = "no_entitlement"
    FAILED = "failed"


# =============================================================================
# Billing Client Interface
# =============================================================================


class BaseBillingClient(ABC):
    """Abstract billing SDK adapter."""

    @abstractmethod
    async def get_offerings(self) -> Offering | None:
        """Return the current offering, or None when nothing is configured."""

    @abstractmethod
    async def purchase(self, package: BillingPackage) -> PurchaseResult:
        """Buy ``package``."""

    @abstractmethod
    async def restore(self) -> PurchaseResult:
        """Restore previous purchases for this store account."""

    @abstractmethod
    async def has_entitlement(self, identifier: str) -> bool:
        """Whether ``identifier`` is currently active."""


# =============================================================================
# Entitlement Service
# =============================================================================


class EntitlementService:
    """
    Applies billing outcomes to the usage accounting tier.

    Usage:
        entitlements = EntitlementService(billing_client, usage_service)
        package = await entitlements.load_offering()
        status = await entitlements.purchase(package)
    """

    def __init__(self, client: BaseBillingClient, usage: UsageService):
        self.client = client
        self.usage = usage

    async def load_offering(self, package_identifier: str = WEEKLY_PACKAGE) -> BillingPackage | None:
        """Find a package in the current offering."""
        try:
            offering = await self.client.get_offerings()
        except Exception as e:
            logger.error(f"Failed to load offerings: {e}")
            raise BillingException("Unable to load subscription options", operation="get_offerings", original_error=e) from e

        if offering is None:
            return None
        for package in offering.packages:
            if package.identifier == package_identifier:
                return package
        return None

    @staticmethod
    def has_trial_offer(package: BillingPackage | None) -> bool:
        return package is not None and bool(package.intro_price)

    async def purchase(self, package: BillingPackage) -> PurchaseStatus:
        """Buy a package and apply the resulting entitlement."""
        try:
            result = await self.client.purchase(package)
        except Exception as e:
            logger.error(f"Purchase failed: {e}", extra={"event": "purchase_failed", "package": package.identifier})
            raise BillingException("Purchase failed", operation="purchase", original_error=e) from e
        return self._apply(result, operation="purchase")

    async def restore(self) -> PurchaseStatus:
        """Restore purchases and apply any active entitlement."""
        try:
            result = await self.client.restore()
        except Exception as e:
            logger.error(f"Restore failed: {e}", extra={"event": "restore_failed"})
            raise BillingException("Unable to restore purchases", operation="restore", original_error=e) from e
        return self._apply(result, operation="restore")

    async def is_premium_active(self) -> bool:
        try:
            return await self.client.has_entitlement(PREMIUM_ENTITLEMENT)
        except Exception as e:
            raise BillingException("Entitlement check failed", operation="has_entitlement", original_error=e) from e

    def _apply(self, result: PurchaseResult, operation: str) -> PurchaseStatus:
        if not result.ok:
            logger.warning(
                f"{operation.capitalize()} rejected by store",
                extra={"event": f"{operation}_rejected", "error": result.error},
            )
            return PurchaseStatus.FAILED

        entitlement = result.entitlements.get(PREMIUM_ENTITLEMENT)
        if entitlement is None:
            logger.info(f"{operation.capitalize()} returned no premium entitlement")
            return PurchaseStatus.NO_ENTITLEMENT

        if entitlement.period_type == TRIAL_PERIOD:
            self.usage.start_trial()
            return PurchaseStatus.ACTIVATED_TRIAL

        self.usage.set_subscription_tier("premium")
        return PurchaseStatus.ACTIVATED_PREMIUM
