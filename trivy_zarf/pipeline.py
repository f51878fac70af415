"""Pipeline for scanning a Zarf package end to end.

Steps:
1. Create the output directory (if configured)
2. Pull the package when given an oci:// reference
3. Decompress the package into a temporary directory
4. Scan every image of the package's images/ OCI layout, one at a time
5. Remove the temporary directory
"""

import logging
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path

from trivy_zarf.config import ScanSettings
from trivy_zarf.consts import RUN_TEMP_PREFIX, ZARF_IMAGES_DIR
from trivy_zarf.exceptions import ImagesDirectoryNotFound, OutputDirectoryError, PackageNotFound
from trivy_zarf.models.model_scanner import ScanRunResult
from trivy_zarf.scanner.base import ImageScanner, PackageTool
from trivy_zarf.scanner.scan_dispatcher import ScanDispatcher
from trivy_zarf.scanner.scan_orchestrator import ScanOrchestrator
from trivy_zarf.scanner.trivy_scanner import TrivyScanner
from trivy_zarf.scanner.zarf_package import ZarfPackageTool, is_oci_reference

logger = logging.getLogger(__name__)


async def run_scan_pipeline(
    package_ref: str,
    settings: ScanSettings,
    package_tool: PackageTool | None = None,
    scanner: ImageScanner | None = None,
    run_logger: logging.Logger | None = None,
    progress_callback: Callable[[int, int], None] | None = None,
) -> ScanRunResult:
    """Run the full pipeline: pull → decompress → split index → scan each image.

    Args:
        package_ref: Local package path or oci:// reference
        settings: Scan settings (output dir, DB repository, arch, signature validation)
        package_tool: PackageTool to pull/decompress with (default: ZarfPackageTool)
        scanner: ImageScanner to scan with (default: TrivyScanner)
        run_logger: Logger handed to the orchestrator (default: orchestrator's own)
        progress_callback: Optional callback for progress updates (current, total)

    Returns:
        ScanRunResult; check result.error for per-image failures

    Raises:
        OutputDirectoryError: If the output or temporary directory cannot be created
        PackageError: If the package cannot be pulled, found, or decompressed
        IndexLoadError: If the package's index.json is missing or malformed
    """
    package_tool = package_tool or ZarfPackageTool()
    scanner = scanner or TrivyScanner()

    if settings.output is not None:
        try:
            settings.output.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Error creating output directory {settings.output}: {e}")
            raise OutputDirectoryError(f"error creating output directory {settings.output}: {e}", cause=e)

    try:
        temp_dir = Path(tempfile.mkdtemp(prefix=RUN_TEMP_PREFIX))
    except OSError as e:
        raise OutputDirectoryError(f"error creating temporary directory: {e}", cause=e)

    try:
        package_path = Path(package_ref)
        if is_oci_reference(package_ref):
            package_path = await package_tool.pull(
                package_ref,
                temp_dir,
                skip_signature_validation=settings.skip_signature_validation,
                architecture=settings.arch,
            )

        if not package_path.is_file():
            raise PackageNotFound(f"zarf package {package_path} does not exist")

        await package_tool.decompress(package_path, temp_dir)

        images_dir = temp_dir / ZARF_IMAGES_DIR
        if not images_dir.is_dir():
            raise ImagesDirectoryNotFound("images directory not found in Zarf package")

        dispatcher = ScanDispatcher(
            scanner,
            output_dir=settings.output,
            db_repository=settings.db_repository,
        )
        orchestrator = ScanOrchestrator(dispatcher, logger=run_logger)
        return await orchestrator.run(images_dir, progress_callback=progress_callback)

    finally:
        try:
            shutil.rmtree(temp_dir)
        except OSError as e:
            logger.error(f"Error removing temp directory {temp_dir}: {e}")
