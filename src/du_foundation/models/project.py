"""Pydantic models for project scan reports and migration results.

Both are persisted as JSON artifacts next to the scanned project and served
as-is by the API, hence the camelCase field names.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Classification(StrEnum):
    COMPATIBLE = "COMPATIBLE"
    NEEDS_ADJUSTMENT = "NEEDS_ADJUSTMENT"
    INCOMPATIBLE = "INCOMPATIBLE"


class Severity(StrEnum):
    CRITICAL = "CRITICAL"
    MAJOR = "MAJOR"
    MINOR = "MINOR"
    INFO = "INFO"
    SUCCESS = "SUCCESS"


class ModuleSystem(StrEnum):
    ES_MODULES = "ES_MODULES"
    COMMONJS = "COMMONJS"
    MIXED = "MIXED"
    UNKNOWN = "UNKNOWN"


# ---------------------------------------------------------------------------
# Scan report
# ---------------------------------------------------------------------------


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    severity: Severity
    message: str
    recommendation: str | None = None


class ScanReport(BaseModel):
    """Outcome of one scan.  Never mutated once returned."""

    model_config = ConfigDict(frozen=True)

    classification: Classification
    score: int
    maxScore: int = 100
    scorePercentage: int
    issues: list[Issue] = Field(default_factory=list)
    requirements: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    analysis: dict[str, Any] = Field(default_factory=dict)
    projectRoot: str
    scannedAt: str

    def count(self, severity: Severity) -> int:
        return sum(1 for issue in self.issues if issue.severity == severity)


# ---------------------------------------------------------------------------
# Migration result
# ---------------------------------------------------------------------------


class MigrationResult(BaseModel):
    migrationsApplied: list[str] = Field(default_factory=list)
    manualActions: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    success: bool = False
    initialClassification: Classification | None = None
    finalClassification: Classification | None = None
    backupPath: str | None = None
