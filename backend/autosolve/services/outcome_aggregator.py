"""
Repair outcome aggregation.

Pure functions turning a list of RepairSubmission into WhatFixedItStats, and
the cache key under which those stats are stored.

Rules:
- success means outcome == fixed; partial and not_fixed count as failures
- solutions are grouped by exact labor description ("Unknown repair" when empty)
- solutions are ranked by success rate, then number of attempts, then the
  order in which the description first appeared
- cost buckets: <100, [100, 500), [500, 1000), >=1000
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta

from autosolve.core.clock import ensure_aware
from autosolve.core.config import get_settings
from autosolve.core.logging import PerformanceLogger, get_logger
from autosolve.schemas.repair_outcome import (
    CostDistribution,
    RepairOutcome,
    RepairSolution,
    RepairSubmission,
    RepairType,
    WhatFixedItStats,
)

logger = get_logger(__name__)

UNKNOWN_REPAIR = "Unknown repair"
KEY_SEPARATOR = "|"
KEY_PREFIX = "stats_"


# =============================================================================
# Statistics
# =============================================================================


def empty_stats() -> WhatFixedItStats:
    """Zero-valued stats returned for an empty submission list."""
    return WhatFixedItStats()


def cost_bucket(total_cost: float) -> str:
    """Name of the CostDistribution field a cost falls into."""
    if total_cost < 100:
        return "under_100"
    if total_cost < 500:
        return "under_500"
    if total_cost < 1000:
        return "under_1000"
    return "over_1000"


def calculate_cost_distribution(submissions: Iterable[RepairSubmission]) -> CostDistribution:
    """Count submissions per cost bucket; every submission lands in exactly one."""
    counts = {"under_100": 0, "under_500": 0, "under_1000": 0, "over_1000": 0}
    for submission in submissions:
        counts[cost_bucket(submission.repair.total_cost)] += 1
    return CostDistribution(**counts)


def _success_count(submissions: Sequence[RepairSubmission]) -> int:
    return sum(1 for s in submissions if s.outcome == RepairOutcome.FIXED)


def group_by_description(
    submissions: Iterable[RepairSubmission],
) -> dict[str, list[RepairSubmission]]:
    """Group by labor description, keeping first-seen order of the groups."""
    groups: dict[str, list[RepairSubmission]] = {}
    for submission in submissions:
        key = submission.repair.labor_description or UNKNOWN_REPAIR
        groups.setdefault(key, []).append(submission)
    return groups


def build_solution(
    description: str,
    submissions: Sequence[RepairSubmission],
    recent_cutoff: datetime,
) -> RepairSolution:
    """Aggregate one non-empty group of submissions."""
    total_attempts = len(submissions)
    success_count = _success_count(submissions)

    parts_used: dict[str, None] = {}
    for submission in submissions:
        for part in submission.repair.parts_replaced:
            parts_used.setdefault(part.name, None)

    diy_count = sum(1 for s in submissions if s.repair.type == RepairType.DIY)

    return RepairSolution(
        description=description,
        parts_used=list(parts_used),
        success_count=success_count,
        total_attempts=total_attempts,
        success_rate=success_count / total_attempts * 100,
        average_cost=sum(s.repair.total_cost for s in submissions) / total_attempts,
        diy_friendly=diy_count > total_attempts / 2,
        recent_reports=sum(1 for s in submissions if ensure_aware(s.timestamp) >= recent_cutoff),
    )


def rank_solutions(solutions: Iterable[RepairSolution], limit: int) -> list[RepairSolution]:
    """Best success rate first; ties go to more attempts, then first seen."""
    ranked = sorted(solutions, key=lambda s: (-s.success_rate, -s.total_attempts))
    return ranked[:limit]


@PerformanceLogger.track("calculate_stats")
def calculate_stats(
    submissions: Sequence[RepairSubmission],
    now: datetime | None = None,
    top_limit: int | None = None,
    recent_window_days: int | None = None,
) -> WhatFixedItStats:
    """
    Compute community statistics for a list of submissions.

    Args:
        submissions: Any list, including empty. Never mutated.
        now: Evaluation instant for the recent-reports window (defaults to now).
        top_limit: Maximum number of solutions returned.
        recent_window_days: Width of the recent-reports window in days.

    Returns:
        WhatFixedItStats; the zero-valued object for empty input.
    """
    if not submissions:
        return empty_stats()

    settings = get_settings()
    if top_limit is None:
        top_limit = settings.TOP_SOLUTIONS_LIMIT
    if recent_window_days is None:
        recent_window_days = settings.RECENT_REPORT_WINDOW_DAYS
    if now is None:
        now = datetime.now(UTC)

    total = len(submissions)
    recent_cutoff = ensure_aware(now) - timedelta(days=recent_window_days)

    solutions = [
        build_solution(description, group, recent_cutoff)
        for description, group in group_by_description(submissions).items()
    ]

    return WhatFixedItStats(
        total_reports=total,
        success_rate=_success_count(submissions) / total * 100,
        average_cost=sum(s.repair.total_cost for s in submissions) / total,
        average_time=sum(s.repair.time_spent for s in submissions) / total,
        top_solutions=rank_solutions(solutions, top_limit),
        # Per-vehicle breakdown is not computed yet
        vehicle_specific=[],
        cost_distribution=calculate_cost_distribution(submissions),
    )


# =============================================================================
# Cache Keys
# =============================================================================


def _utf16_order(text: str) -> bytes:
    # Compare by UTF-16 code units; astral characters sort before U+E000-U+FFFF
    return text.encode("utf-16-be")


def normalize_key_input(symptoms: Iterable[str], dtc_codes: Iterable[str]) -> str:
    """Sorted symptoms followed by sorted codes, joined with the separator."""
    return KEY_SEPARATOR.join(
        [*sorted(symptoms, key=_utf16_order), *sorted(dtc_codes, key=_utf16_order)]
    )


def rolling_hash(text: str) -> int:
    """
    31-multiplier rolling hash over UTF-16 code units, wrapped to signed 32 bits.

    Matches keys already cached by earlier app versions.
    """
    data = text.encode("utf-16-le")
    value = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


def generate_stats_key(
    symptoms: Iterable[str],
    dtc_codes: Iterable[str],
    strategy: str | None = None,
) -> str:
    """
    Derive the cache key for a symptom/DTC combination.

    The input order of symptoms and codes does not matter. The "legacy"
    strategy can collide for distinct inputs; "sha256" uses a digest of the
    same normalized text.
    """
    strategy = strategy or get_settings().STATS_KEY_STRATEGY
    normalized = normalize_key_input(symptoms, dtc_codes)

    if strategy == "sha256":
        digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()
        return f"{KEY_PREFIX}{digest[:16]}"
    if strategy == "legacy":
        return f"{KEY_PREFIX}{abs(rolling_hash(normalized))}"
    raise ValueError(f"Unknown stats key strategy: {strategy}")
