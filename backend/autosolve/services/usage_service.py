"""
Usage Service - scan quotas, trial window and diagnostic history.

Quota rules:
- free / premium: weekly ceiling, implicitly reset when the stored week
  boundary is not the current one
- trial: absolute ceiling for the whole trial window, which also expires
  TRIAL_DURATION_DAYS after it started regardless of scans used

History is visible to trial and premium users only.

All methods are total: missing data yields False / 0 / [] rather than an
exception. Every mutation is written through to the repository.
"""

from __future__ import annotations

import math

from autosolve.core.clock import Clock, SystemClock, days_between, get_week_start, is_same_week
from autosolve.core.config import Settings, get_settings
from autosolve.core.logging import get_logger
from autosolve.db.repositories import SubscriptionRepository
from autosolve.schemas.subscription import (
    DiagnosticSession,
    SubscriptionState,
    SubscriptionTier,
    TrialStats,
)

logger = get_logger(__name__)


class UsageService:
    """
    Usage accounting over the persisted subscription state.

    Usage:
        usage = UsageService(SubscriptionRepository(store))
        if usage.can_scan():
            ...
            usage.increment_scan_usage()
    """

    def __init__(
        self,
        repository: SubscriptionRepository,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self._tz = self.settings.tzinfo
        self._state = repository.load()

        # First launch: anchor the usage counters to the current week
        if self._state.usage_stats.week_start_date is None:
            self._state.usage_stats.week_start_date = self._current_week_start()
            self._save()

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _save(self) -> None:
        self.repository.save(self._state)

    def _current_week_start(self):
        return get_week_start(self.clock.now(), self._tz)

    def _needs_weekly_reset(self) -> bool:
        return not is_same_week(
            self._state.usage_stats.week_start_date, self.clock.now(), self._tz
        )

    def _limit(self, tier: SubscriptionTier) -> int:
        return self.settings.weekly_limits[tier.value]

    def _trial_elapsed_days(self) -> float | None:
        start = self._state.trial_stats.trial_start_date
        if start is None:
            return None
        return days_between(start, self.clock.now())

    # =========================================================================
    # State access
    # =========================================================================

    @property
    def state(self) -> SubscriptionState:
        """Deep copy of the current state."""
        return self._state.model_copy(deep=True)

    @property
    def tier(self) -> SubscriptionTier:
        return self._state.tier

    @property
    def is_subscribed(self) -> bool:
        return self._state.is_subscribed

    # =========================================================================
    # Quota
    # =========================================================================

    def can_scan(self) -> bool:
        """Whether a new scan is allowed right now."""
        state = self._state

        if state.tier == SubscriptionTier.TRIAL:
            if self.is_trial_expired():
                logger.info("Scan denied: trial expired", extra={"event": "scan_denied", "tier": "trial"})
                return False
            allowed = state.trial_stats.trial_scans_used < self._limit(SubscriptionTier.TRIAL)
        elif self._needs_weekly_reset():
            return True
        else:
            allowed = state.usage_stats.scans_this_week < self._limit(state.tier)

        if not allowed:
            logger.info(
                "Scan denied: quota exhausted",
                extra={"event": "scan_denied", "tier": state.tier.value},
            )
        return allowed

    def get_remaining_scans(self) -> int:
        """Scans left in the current week (or trial window), never negative."""
        state = self._state

        if state.tier == SubscriptionTier.TRIAL:
            if self.is_trial_expired():
                return 0
            return max(0, self._limit(SubscriptionTier.TRIAL) - state.trial_stats.trial_scans_used)

        limit = self._limit(state.tier)
        if self._needs_weekly_reset():
            return limit
        return max(0, limit - state.usage_stats.scans_this_week)

    def increment_scan_usage(self) -> None:
        """
        Count one completed scan.

        Does not check the ceiling; callers gate with can_scan() first.
        """
        usage = self._state.usage_stats
        if self._needs_weekly_reset():
            logger.info(
                "Weekly scan counter rolled over",
                extra={"event": "week_rollover", "previous_count": usage.scans_this_week},
            )
            usage.scans_this_week = 1
        else:
            usage.scans_this_week += 1

        usage.week_start_date = self._current_week_start()
        usage.total_scans_all_time += 1

        if self._state.tier == SubscriptionTier.TRIAL:
            self._state.trial_stats.trial_scans_used += 1

        self._save()
        logger.debug(
            "Scan usage incremented",
            extra={
                "event": "scan_counted",
                "tier": self._state.tier.value,
                "scans_this_week": usage.scans_this_week,
                "total_scans": usage.total_scans_all_time,
            },
        )

    def reset_weekly_usage(self) -> None:
        """Zero the weekly counter and re-anchor it to the current week."""
        self._state.usage_stats.scans_this_week = 0
        self._state.usage_stats.week_start_date = self._current_week_start()
        self._save()

    # =========================================================================
    # Trial
    # =========================================================================

    def is_trial_expired(self) -> bool:
        """True when no trial was started or the trial window has elapsed."""
        elapsed = self._trial_elapsed_days()
        if elapsed is None:
            return True
        return elapsed >= self.settings.TRIAL_DURATION_DAYS

    def get_trial_days_remaining(self) -> int:
        """Whole days left in the trial, rounded up, never negative."""
        elapsed = self._trial_elapsed_days()
        if elapsed is None:
            return 0
        return max(0, math.ceil(self.settings.TRIAL_DURATION_DAYS - elapsed))

    def start_trial(self) -> None:
        """Begin a fresh trial window."""
        self._state.tier = SubscriptionTier.TRIAL
        self._state.is_subscribed = False
        self._state.trial_stats = TrialStats(
            is_in_trial=True,
            trial_start_date=self.clock.now(),
            trial_scans_used=0,
        )
        self._save()
        logger.info("Trial started", extra={"event": "trial_started"})

    def end_trial(self) -> None:
        """Revert to the free tier; the trial record is kept."""
        self._state.tier = SubscriptionTier.FREE
        self._state.is_subscribed = False
        self._state.trial_stats.is_in_trial = False
        self._save()
        logger.info(
            "Trial ended",
            extra={"event": "trial_ended", "trial_scans_used": self._state.trial_stats.trial_scans_used},
        )

    def expire_trial_if_needed(self) -> bool:
        """End an expired trial. Returns True if the tier changed."""
        if self._state.tier == SubscriptionTier.TRIAL and self.is_trial_expired():
            self.end_trial()
            return True
        return False

    # =========================================================================
    # Tier
    # =========================================================================

    def set_subscription_tier(self, tier: SubscriptionTier | str) -> None:
        """Switch tier; premium implies is_subscribed."""
        tier = SubscriptionTier(tier)
        previous = self._state.tier
        self._state.tier = tier
        self._state.is_subscribed = tier == SubscriptionTier.PREMIUM
        self._save()
        logger.info(
            f"Subscription tier changed: {previous.value} -> {tier.value}",
            extra={"event": "tier_changed", "previous_tier": previous.value, "tier": tier.value},
        )

    # =========================================================================
    # History
    # =========================================================================

    def add_to_history(self, session: DiagnosticSession) -> None:
        """Prepend a session, evicting the oldest beyond the history limit."""
        history = [session, *self._state.history]
        self._state.history = history[: self.settings.HISTORY_MAX_SESSIONS]
        self._save()

    def clear_history(self) -> None:
        self._state.history = []
        self._save()

    def get_history(self) -> list[DiagnosticSession]:
        """Sessions newest first; empty for the free tier."""
        if self._state.tier == SubscriptionTier.FREE:
            return []
        return [session.model_copy(deep=True) for session in self._state.history]
