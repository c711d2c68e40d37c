"""Pydantic models for capacity tiers and their profiles.

Field names are camelCase because the dashboard consumes these models
verbatim as JSON.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class CapacityTier(StrEnum):
    """Capacity tiers, declared in ascending order of capability."""

    nano = "nano"
    micro = "micro"
    small = "small"
    medium = "medium"
    large = "large"
    enterprise = "enterprise"


# ---------------------------------------------------------------------------
# Profile models
# ---------------------------------------------------------------------------


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class UserRange(_Frozen):
    min: int = Field(ge=0)
    max: int = Field(ge=0)

    def contains(self, users: int) -> bool:
        return self.min <= users <= self.max


class Resources(_Frozen):
    ramMB: int
    cpuCores: int
    storageGB: int
    bandwidthMbps: int


class Performance(_Frozen):
    responseTimeTargetMs: int
    throughputRps: int
    availabilityTarget: float
    errorRateThreshold: float


class AlertThresholds(_Frozen):
    cpuPercent: int
    memoryPercent: int
    responseTimeMs: int


class Monitoring(_Frozen):
    scrapeInterval: str
    retentionDays: int
    alertThresholds: AlertThresholds


class CapacityProfile(_Frozen):
    """Resource, performance and monitoring bundle for one tier."""

    capacity: CapacityTier
    userRange: UserRange
    resources: Resources
    performance: Performance
    monitoring: Monitoring
    description: str
    useCases: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Query results
# ---------------------------------------------------------------------------


class AdjacentTiers(_Frozen):
    current: CapacityProfile
    previous: CapacityProfile | None = None
    next: CapacityProfile | None = None
    upgradePath: tuple[CapacityTier, ...] = ()


class HardwareFit(_Frozen):
    capacity: CapacityTier
    ramUsagePercent: float
    cpuUsagePercent: float
    compatible: bool
