"""Models for trivy-zarf."""

from trivy_zarf.models.model_oci import ImageIndex, IsolatedLayout, ManifestDescriptor
from trivy_zarf.models.model_scanner import (
    RunState,
    ScanErrorType,
    ScanOptions,
    ScanOutcome,
    ScanReport,
    ScanRunResult,
    Vulnerabilities,
)

__all__ = [
    # OCI layout models
    "ImageIndex",
    "IsolatedLayout",
    "ManifestDescriptor",
    # Scan models
    "RunState",
    "ScanErrorType",
    "ScanOptions",
    "ScanOutcome",
    "ScanReport",
    "ScanRunResult",
    "Vulnerabilities",
]
