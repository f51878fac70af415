"""Runs the image scanner against one isolated layout and routes its report."""

import logging
import re
from pathlib import Path

from trivy_zarf.consts import (
    FILENAME_DEFAULT,
    FILENAME_UNSAFE_CHARS,
    REPORT_SUFFIX,
    TRIVY_DEFAULT_DB_REPOSITORY,
)
from trivy_zarf.exceptions import ScanFailed
from trivy_zarf.models.model_oci import IsolatedLayout
from trivy_zarf.models.model_scanner import ScanOptions, ScanReport
from trivy_zarf.scanner.base import ImageScanner

logger = logging.getLogger(__name__)

_UNSAFE_CHARS_RE = re.compile("[" + re.escape(FILENAME_UNSAFE_CHARS) + "]")
_UNDERSCORE_RUN_RE = re.compile(r"_{2,}")


def sanitize_filename(image_name: str) -> str:
    """Convert an image name to a safe filename (without extension).

    Examples:
        docker.io/library/nginx:latest → docker_io_library_nginx_latest
        "" → unknown_image

    Sanitizing an already sanitized name returns it unchanged.
    """
    sanitized = _UNSAFE_CHARS_RE.sub("_", image_name)
    sanitized = _UNDERSCORE_RUN_RE.sub("_", sanitized)
    sanitized = sanitized.strip("_")
    return sanitized or FILENAME_DEFAULT


class ScanDispatcher:
    """Scans isolated layouts one at a time, writing JSON reports or streaming to stdout."""

    def __init__(
        self,
        scanner: ImageScanner,
        output_dir: Path | str | None = None,
        db_repository: str = TRIVY_DEFAULT_DB_REPOSITORY,
    ):
        """Initialize ScanDispatcher.

        Args:
            scanner: ImageScanner used for every layout
            output_dir: Directory for <name>.json reports (default: None, stream to stdout)
            db_repository: Vulnerability DB repository passed to the scanner
        """
        self.scanner = scanner
        self.output_dir = Path(output_dir) if output_dir else None
        self.db_repository = db_repository
        self._written: set[Path] = set()

    def report_path(self, image_name: str) -> Path | None:
        """Path of the JSON report for an image, or None when streaming to stdout."""
        if self.output_dir is None:
            return None
        return self.output_dir / f"{sanitize_filename(image_name)}{REPORT_SUFFIX}"

    async def dispatch(self, layout: IsolatedLayout, image_name: str) -> ScanReport:
        """Scan one isolated layout.

        Args:
            layout: Layout holding exactly one image
            image_name: Resolved display name of the image

        Returns:
            ScanReport from the scanner

        Raises:
            ScanFailed: If the scanner fails for any reason
        """
        output_path = self.report_path(image_name)
        if output_path is not None:
            if output_path in self._written:
                logger.warning(f"Report {output_path} already written in this run, overwriting")
            logger.info(f"Saving JSON results to: {output_path}")

        options = ScanOptions(db_repository=self.db_repository, output_path=output_path)

        try:
            report = await self.scanner.scan(layout.path, options)
        except ScanFailed as e:
            raise ScanFailed(
                f"Trivy scan failed for image {image_name}: {e.message}",
                returncode=e.returncode,
                detail=e.detail,
                error_type=e.error_type,
                cause=e.cause,
            ) from e
        except Exception as e:
            raise ScanFailed(f"Trivy scan failed for image {image_name}", cause=e) from e
        finally:
            if output_path is not None:
                self._written.add(output_path)

        return report
