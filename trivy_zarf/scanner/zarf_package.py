"""Zarf CLI wrapper for pulling and decompressing packages."""

import asyncio
import logging
import shutil
from pathlib import Path

from trivy_zarf.consts import OCI_REFERENCE_PREFIX, ZARF_INSTALL_URL, ZARF_PACKAGE_SUFFIX
from trivy_zarf.exceptions import (
    DecompressFailed,
    InvalidPackageReference,
    PackagePullFailed,
    ToolNotInstalled,
)

logger = logging.getLogger(__name__)


def is_oci_reference(package_ref: str) -> bool:
    """Check whether a package reference points to an OCI registry."""
    return package_ref.startswith(OCI_REFERENCE_PREFIX)


def find_package_file(directory: Path) -> Path | None:
    """Find the first .tar.zst package file directly inside a directory.

    Args:
        directory: Directory to search (not recursive)

    Returns:
        Path to the package file, or None if there is none
    """
    for entry in sorted(directory.iterdir()):
        if entry.is_file() and entry.name.endswith(ZARF_PACKAGE_SUFFIX):
            return entry
    return None


class ZarfPackageTool:
    """Wraps the zarf CLI for fetching and unpacking packages."""

    def __init__(self, zarf_path: str = "zarf"):
        """Initialize ZarfPackageTool.

        Args:
            zarf_path: Path to zarf executable (default: "zarf")
        """
        self.zarf_path = zarf_path

    def is_zarf_installed(self) -> bool:
        """Check if Zarf is installed and accessible."""
        return shutil.which(self.zarf_path) is not None

    def ensure_installed(self) -> None:
        """Raise ToolNotInstalled if Zarf is not on PATH."""
        if not self.is_zarf_installed():
            raise ToolNotInstalled("Zarf", ZARF_INSTALL_URL)

    async def _run(self, cmd: list[str]) -> tuple[int, str]:
        """Run a zarf command, streaming stdout and capturing stderr.

        Returns:
            Tuple of (returncode, stderr text)

        Raises:
            OSError: If the executable cannot be started
        """
        logger.debug(f"Running: {' '.join(cmd)}")
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=None,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()
        return process.returncode, (stderr or b"").decode("utf-8", errors="replace")

    async def pull(
        self,
        reference: str,
        dest_dir: Path,
        skip_signature_validation: bool = False,
        architecture: str | None = None,
    ) -> Path:
        """Pull a package from an OCI registry.

        Runs: zarf package pull <ref> -o <dest_dir> [--skip-signature-validation] [-a <arch>]

        Args:
            reference: oci:// package reference
            dest_dir: Directory the package file is written to
            skip_signature_validation: Skip package signature validation
            architecture: Architecture to pull (default: host architecture)

        Returns:
            Path to the pulled .tar.zst package

        Raises:
            InvalidPackageReference: If reference does not start with oci://
            PackagePullFailed: If zarf fails or no package file was produced
        """
        if not is_oci_reference(reference):
            raise InvalidPackageReference(
                f"invalid OCI reference format: {reference} (must start with {OCI_REFERENCE_PREFIX})"
            )

        cmd = [self.zarf_path, "package", "pull", reference, "-o", str(dest_dir)]
        if skip_signature_validation:
            cmd.append("--skip-signature-validation")
        if architecture:
            cmd.extend(["-a", architecture])

        logger.info(f"Pulling Zarf package from OCI registry: {reference}")
        try:
            returncode, error_msg = await self._run(cmd)
        except OSError as e:
            raise PackagePullFailed(f"could not start {self.zarf_path}", cause=e) from e

        if returncode != 0:
            raise PackagePullFailed(f"zarf package pull failed (code {returncode}): {error_msg.strip()}")

        try:
            package_file = find_package_file(Path(dest_dir))
        except OSError as e:
            raise PackagePullFailed(f"error reading target directory {dest_dir}", cause=e) from e

        if package_file is None:
            raise PackagePullFailed(f"no {ZARF_PACKAGE_SUFFIX} file found in {dest_dir} after pull")

        logger.info(f"Package pulled: {package_file}")
        return package_file

    async def decompress(self, archive: Path, dest_dir: Path) -> None:
        """Decompress a package archive.

        Runs: zarf tools archiver decompress <archive> <dest_dir>

        Raises:
            DecompressFailed: If zarf fails
        """
        cmd = [self.zarf_path, "tools", "archiver", "decompress", str(archive), str(dest_dir)]

        logger.info(f"Extracting Zarf package: {archive}")
        try:
            returncode, error_msg = await self._run(cmd)
        except OSError as e:
            raise DecompressFailed(f"could not start {self.zarf_path}", cause=e) from e

        if returncode != 0:
            raise DecompressFailed(f"zarf decompression failed (code {returncode}): {error_msg.strip()}")

        logger.info(f"Package extracted to: {dest_dir}")
