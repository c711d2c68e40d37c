"""Capacity registry – the single source of truth for capacity tiers.

Maps each :class:`CapacityTier` to its :class:`CapacityProfile` and offers a
few pure lookups on top of that table.  The table is built once at import
time and exposed read-only; nothing here mutates state, so every function is
safe to call from any thread.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from du_foundation.models.capacity import (
    AdjacentTiers,
    AlertThresholds,
    CapacityProfile,
    CapacityTier,
    HardwareFit,
    Monitoring,
    Performance,
    Resources,
    UserRange,
)

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class UnknownTierError(ValueError):
    """Raised when a tier identifier is not one of the known tiers."""

    def __init__(self, tier: object) -> None:
        self.tier = tier
        known = ", ".join(t.value for t in CAPACITY_TIERS)
        super().__init__(f"Unknown capacity tier {tier!r} (expected one of: {known})")


# ---------------------------------------------------------------------------
# Static table
# ---------------------------------------------------------------------------

CAPACITY_TIERS: tuple[CapacityTier, ...] = tuple(CapacityTier)

_HARDWARE_FIT_LIMIT = 90.0


def _profile(
    tier: CapacityTier,
    users: tuple[int, int],
    resources: tuple[int, int, int, int],
    performance: tuple[int, int, float, float],
    monitoring: tuple[str, int, tuple[int, int, int]],
    description: str,
    use_cases: tuple[str, ...],
) -> CapacityProfile:
    ram, cpu, storage, bandwidth = resources
    response_ms, rps, availability, error_rate = performance
    scrape, retention, (cpu_alert, mem_alert, rt_alert) = monitoring
    return CapacityProfile(
        capacity=tier,
        userRange=UserRange(min=users[0], max=users[1]),
        resources=Resources(
            ramMB=ram, cpuCores=cpu, storageGB=storage, bandwidthMbps=bandwidth
        ),
        performance=Performance(
            responseTimeTargetMs=response_ms,
            throughputRps=rps,
            availabilityTarget=availability,
            errorRateThreshold=error_rate,
        ),
        monitoring=Monitoring(
            scrapeInterval=scrape,
            retentionDays=retention,
            alertThresholds=AlertThresholds(
                cpuPercent=cpu_alert, memoryPercent=mem_alert, responseTimeMs=rt_alert
            ),
        ),
        description=description,
        useCases=use_cases,
    )


CAPACITY_PROFILES: Mapping[CapacityTier, CapacityProfile] = MappingProxyType(
    {
        CapacityTier.nano: _profile(
            CapacityTier.nano,
            (1, 1_000),
            (512, 1, 10, 25),
            (200, 50, 99.0, 2.0),
            ("60s", 3, (85, 90, 1000)),
            "Ideal for small practices and individual businesses",
            ("Dentist", "Lawyer", "Freelancer", "Small shop"),
        ),
        CapacityTier.micro: _profile(
            CapacityTier.micro,
            (1_001, 10_000),
            (1024, 1, 25, 50),
            (150, 100, 99.5, 1.5),
            ("45s", 5, (80, 85, 750)),
            "Suited to clinics and small offices",
            ("Medical clinic", "Accounting office", "Small agency", "Online store"),
        ),
        CapacityTier.small: _profile(
            CapacityTier.small,
            (10_001, 50_000),
            (2048, 2, 50, 100),
            (100, 500, 99.5, 1.0),
            ("30s", 7, (75, 80, 500)),
            "Ideal for startups and regional companies",
            ("Startup", "Regional company", "Mid-size e-commerce", "Early SaaS"),
        ),
        CapacityTier.medium: _profile(
            CapacityTier.medium,
            (50_001, 200_000),
            (4096, 4, 100, 200),
            (75, 1000, 99.7, 0.8),
            ("15s", 14, (70, 75, 300)),
            "Sized for mid-market companies",
            ("Mid-size company", "Large e-commerce", "Growth SaaS", "Educational institution"),
        ),
        CapacityTier.large: _profile(
            CapacityTier.large,
            (200_001, 1_000_000),
            (8192, 8, 250, 500),
            (50, 2500, 99.9, 0.5),
            ("10s", 30, (65, 70, 200)),
            "For large companies and organisations",
            ("Large company", "Marketplace", "Mature SaaS", "Government", "Hospital"),
        ),
        CapacityTier.enterprise: _profile(
            CapacityTier.enterprise,
            (1_000_001, 10_000_000),
            (16384, 16, 500, 1000),
            (25, 5000, 99.95, 0.2),
            ("5s", 90, (60, 65, 100)),
            "For corporations and mission-critical applications",
            ("Corporation", "Bank", "Telecom", "Cloud provider", "Social network"),
        ),
    }
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_tier(value: CapacityTier | str) -> CapacityTier:
    """Return the :class:`CapacityTier` for *value* (case-insensitive).

    Raises :class:`UnknownTierError` for anything else.
    """
    if isinstance(value, CapacityTier):
        return value
    if isinstance(value, str):
        try:
            return CapacityTier(value.strip().lower())
        except ValueError:
            pass
    raise UnknownTierError(value)


def get_profile(tier: CapacityTier | str) -> CapacityProfile:
    """Return the profile for *tier*."""
    return CAPACITY_PROFILES[parse_tier(tier)]


def tier_rank(tier: CapacityTier | str) -> int:
    """Position of *tier* in the ascending ordering (``nano`` is 0)."""
    return CAPACITY_TIERS.index(parse_tier(tier))


def tier_at_least(tier: CapacityTier | str, minimum: CapacityTier | str) -> bool:
    """Return ``True`` if *tier* is *minimum* or any tier above it."""
    return tier_rank(tier) >= tier_rank(minimum)


def is_valid_for_user_count(tier: CapacityTier | str, max_users: int) -> bool:
    """Return ``True`` if *max_users* falls inside the tier's user range.

    Both ends of the range are inclusive.
    """
    return get_profile(tier).userRange.contains(max_users)


def suggest_tier_for_user_count(max_users: int) -> CapacityTier:
    """Return the smallest tier whose user range contains *max_users*.

    Counts above every range saturate to ``enterprise``; a count below the
    lowest range (i.e. zero) saturates to ``nano``.
    """
    if max_users < 0:
        msg = f"max_users must be >= 0, got {max_users}"
        raise ValueError(msg)
    for tier in CAPACITY_TIERS:
        if CAPACITY_PROFILES[tier].userRange.contains(max_users):
            return tier
    if max_users < CAPACITY_PROFILES[CAPACITY_TIERS[0]].userRange.min:
        return CAPACITY_TIERS[0]
    return CapacityTier.enterprise


def get_adjacent_tiers(tier: CapacityTier | str) -> AdjacentTiers:
    """Return the neighbours of *tier* and every tier above it."""
    idx = tier_rank(tier)
    previous = CAPACITY_PROFILES[CAPACITY_TIERS[idx - 1]] if idx > 0 else None
    nxt = (
        CAPACITY_PROFILES[CAPACITY_TIERS[idx + 1]]
        if idx < len(CAPACITY_TIERS) - 1
        else None
    )
    return AdjacentTiers(
        current=CAPACITY_PROFILES[CAPACITY_TIERS[idx]],
        previous=previous,
        next=nxt,
        upgradePath=CAPACITY_TIERS[idx + 1 :],
    )


def check_hardware_fit(tier: CapacityTier | str, ram_mb: int, cpu_cores: int) -> HardwareFit:
    """Estimate how much of a host a tier would consume.

    Usage is the tier's provisioned RAM / CPU as a percentage of the host,
    capped at 100.  The tier fits when both usages stay at or below 90 %.
    """
    if ram_mb <= 0 or cpu_cores <= 0:
        msg = "ram_mb and cpu_cores must be positive"
        raise ValueError(msg)
    profile = get_profile(tier)
    ram_usage = profile.resources.ramMB / ram_mb * 100
    cpu_usage = profile.resources.cpuCores / cpu_cores * 100
    return HardwareFit(
        capacity=profile.capacity,
        ramUsagePercent=round(min(ram_usage, 100.0), 1),
        cpuUsagePercent=round(min(cpu_usage, 100.0), 1),
        compatible=ram_usage <= _HARDWARE_FIT_LIMIT and cpu_usage <= _HARDWARE_FIT_LIMIT,
    )
