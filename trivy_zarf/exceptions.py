"""Exceptions raised while scanning a Zarf package.

Errors fall into three groups that decide how far a failure propagates:

- Run-fatal: the package or its index cannot be used at all
  (IndexNotFound, MalformedIndex and the package-stage errors).
- Image-fatal: one image could not be isolated or scanned
  (CopyFailed, WriteFailed, ScanFailed). These are recorded on the
  image's outcome and the run continues with the next image.
- AggregateScanError: the combined result of a run where at least one
  image failed.
"""

from typing import TYPE_CHECKING

from trivy_zarf.models.model_scanner import ScanErrorType

if TYPE_CHECKING:
    from trivy_zarf.models.model_scanner import ScanOutcome


class ZarfScanError(Exception):
    """Base exception for all trivy-zarf errors."""

    def __init__(self, message: str, cause: Exception | None = None):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            cause: The original exception that caused this error (if any)
        """
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {type(self.cause).__name__}: {self.cause})"
        return self.message


class ConfigError(ZarfScanError):
    """Raised when the configuration file or a logging option is invalid."""


class ToolNotInstalled(ZarfScanError):
    """Raised when a required external executable is not on PATH."""

    def __init__(self, tool: str, install_url: str):
        super().__init__(f"{tool} not installed")
        self.tool = tool
        self.install_url = install_url


# === PACKAGE ERRORS (run-fatal) ===


class PackageError(ZarfScanError):
    """Base class for failures before any image can be scanned."""


class InvalidPackageReference(PackageError):
    """Raised when a remote package reference does not start with oci://."""


class PackagePullFailed(PackageError):
    """Raised when `zarf package pull` fails or produces no package file."""


class OutputDirectoryError(PackageError):
    """Raised when the output directory or the run temp directory cannot be created."""


class PackageNotFound(PackageError):
    """Raised when the local package file does not exist."""


class DecompressFailed(PackageError):
    """Raised when `zarf tools archiver decompress` fails."""


class ImagesDirectoryNotFound(PackageError):
    """Raised when an extracted package has no images/ OCI layout."""


# === INDEX ERRORS (run-fatal) ===


class IndexLoadError(ZarfScanError):
    """Base class for combined index loading failures."""


class IndexNotFound(IndexLoadError):
    """Raised when index.json does not exist."""


class MalformedIndex(IndexLoadError):
    """Raised when index.json cannot be parsed or has the wrong structure."""


# === IMAGE ERRORS (image-fatal) ===


class IsolationError(ZarfScanError):
    """Base class for failures while building an isolated layout."""


class CopyFailed(IsolationError):
    """Raised when copying blobs or the oci-layout marker fails."""


class WriteFailed(IsolationError):
    """Raised when the single-entry index.json cannot be written."""


class ScanFailed(ZarfScanError):
    """Raised when the external scanner fails for one image."""

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        detail: str = "",
        error_type: ScanErrorType = ScanErrorType.UNKNOWN,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause)
        self.returncode = returncode
        self.detail = detail
        self.error_type = error_type

    def __str__(self) -> str:
        message = super().__str__()
        if self.detail:
            # Last stderr line is usually the actual error
            return f"{message}: {self.detail.splitlines()[-1]}"
        return message


# === AGGREGATE ===


class AggregateScanError(ZarfScanError):
    """Raised (or returned) when one or more images in a run failed."""

    def __init__(self, failures: list["ScanOutcome"]):
        self.failures = failures
        lines = [f"{len(failures)} image(s) failed to scan:"]
        for outcome in failures:
            lines.append(f"  {outcome.resolved_name}: {outcome.error}")
        super().__init__("\n".join(lines))

    @property
    def image_names(self) -> list[str]:
        """Resolved names of the failed images, in scan order."""
        return [outcome.resolved_name for outcome in self.failures]
