"""Image scanning: Trivy and Zarf wrappers, per-image dispatch and run orchestration."""

from trivy_zarf.scanner.base import ImageScanner, PackageTool
from trivy_zarf.scanner.scan_dispatcher import ScanDispatcher, sanitize_filename
from trivy_zarf.scanner.scan_orchestrator import ScanOrchestrator
from trivy_zarf.scanner.trivy_scanner import TrivyScanner
from trivy_zarf.scanner.zarf_package import ZarfPackageTool, is_oci_reference

__all__ = [
    "ImageScanner",
    "PackageTool",
    "ScanDispatcher",
    "ScanOrchestrator",
    "TrivyScanner",
    "ZarfPackageTool",
    "is_oci_reference",
    "sanitize_filename",
]
