"""Protocols for the external tools the scan pipeline drives.

Both capabilities are implemented by wrappers around CLI executables
(TrivyScanner, ZarfPackageTool). Tests substitute in-memory fakes.
"""

from pathlib import Path
from typing import Protocol

from trivy_zarf.models.model_scanner import ScanOptions, ScanReport


class ImageScanner(Protocol):
    """Vulnerability scanner for a single-image OCI layout."""

    async def scan(self, layout_dir: Path, options: ScanOptions) -> ScanReport:
        """Scan the OCI layout at `layout_dir`.

        When options.output_path is set the report is written there as JSON,
        otherwise it goes to standard output.

        Raises:
            ScanFailed: If the scanner fails
        """
        ...


class PackageTool(Protocol):
    """Fetches and unpacks Zarf packages."""

    async def pull(
        self,
        reference: str,
        dest_dir: Path,
        skip_signature_validation: bool = False,
        architecture: str | None = None,
    ) -> Path:
        """Pull an oci:// package reference into `dest_dir` and return the package file.

        Raises:
            InvalidPackageReference: If `reference` is not an oci:// reference
            PackagePullFailed: If the pull fails or yields no package file
        """
        ...

    async def decompress(self, archive: Path, dest_dir: Path) -> None:
        """Decompress a package archive into `dest_dir`.

        Raises:
            DecompressFailed: If decompression fails
        """
        ...
