"""Data models for security scanning operations."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from trivy_zarf.models.model_oci import ManifestDescriptor

if TYPE_CHECKING:
    from trivy_zarf.exceptions import AggregateScanError, ZarfScanError


class ScanErrorType(Enum):
    """Classification of Trivy failures, reported alongside ScanFailed."""

    # Environment errors - re-running later may succeed
    DB_DOWNLOAD = "db_download"
    NETWORK_TIMEOUT = "network_timeout"
    RATE_LIMIT = "rate_limit"
    UNAUTHORIZED = "unauthorized"

    # Layout errors - the isolated layout could not be read by Trivy
    INVALID_LAYOUT = "invalid_layout"

    # Trivy crash (non-zero exit without a message) or did not finish in time
    TRIVY_CRASH = "trivy_crash"
    SCAN_TIMEOUT = "scan_timeout"

    # Unknown/generic error
    UNKNOWN = "unknown"


class RunState(Enum):
    """States of a scan run, in order."""

    LOADED = "loaded"
    ISOLATING = "isolating"
    SCANNING = "scanning"
    RECORDED = "recorded"
    AGGREGATED = "aggregated"


class Vulnerabilities(BaseModel):
    """Vulnerability counts by severity."""

    critical: int = Field(default=0, ge=0, description="CVSS 9.0-10.0")
    high: int = Field(default=0, ge=0, description="CVSS 7.0-8.9")
    medium: int = Field(default=0, ge=0, description="CVSS 4.0-6.9")
    low: int = Field(default=0, ge=0, description="CVSS 0.1-3.9")
    unknown: int = Field(default=0, ge=0, description="Severity not rated")

    @property
    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low + self.unknown


@dataclass(frozen=True)
class ScanOptions:
    """Options passed to an ImageScanner for one layout."""

    db_repository: str
    output_path: Path | None = None  # None streams the report to stdout


@dataclass(frozen=True)
class ScanReport:
    """What a successful scan produced."""

    output_path: Path | None = None
    vulnerabilities: Vulnerabilities | None = None  # Only known when a JSON report was written


@dataclass(frozen=True)
class ScanOutcome:
    """Result of attempting one descriptor. Never mutated after creation."""

    descriptor: ManifestDescriptor
    resolved_name: str
    error: "ZarfScanError | None" = None
    report: ScanReport | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ScanRunResult:
    """Aggregated outcome of scanning every image in a package."""

    outcomes: list[ScanOutcome] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def failures(self) -> list[ScanOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def error(self) -> "AggregateScanError | None":
        """Combined error naming every failed image, or None if all succeeded."""
        from trivy_zarf.exceptions import AggregateScanError

        failures = self.failures
        if not failures:
            return None
        return AggregateScanError(failures)

    def raise_for_failures(self) -> None:
        """Raise AggregateScanError if any image failed."""
        error = self.error
        if error is not None:
            raise error
