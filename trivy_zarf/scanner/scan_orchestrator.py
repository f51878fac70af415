"""Orchestrates sequential per-image scanning of a multi-image OCI layout."""

import logging
import time
from collections.abc import AsyncIterator, Callable
from pathlib import Path

from trivy_zarf.exceptions import ZarfScanError
from trivy_zarf.models.model_oci import ImageIndex, ManifestDescriptor
from trivy_zarf.models.model_scanner import RunState, ScanOutcome, ScanRunResult
from trivy_zarf.oci.content_isolator import isolated_layout
from trivy_zarf.oci.index_loader import load_index
from trivy_zarf.oci.name_resolver import resolve_image_name
from trivy_zarf.scanner.scan_dispatcher import ScanDispatcher


class ScanOrchestrator:
    """Splits a combined index into single-image layouts and scans them one by one.

    Run states: LOADED → (ISOLATING → SCANNING → RECORDED) per image → AGGREGATED.
    A failing image is recorded and the run moves on; only a missing or
    malformed index ends the run early.
    """

    def __init__(
        self,
        dispatcher: ScanDispatcher,
        logger: logging.Logger | None = None,
        temp_root: Path | None = None,
    ):
        """Initialize ScanOrchestrator.

        Args:
            dispatcher: ScanDispatcher used for every image
            logger: Logger for run progress (default: this module's logger)
            temp_root: Parent directory for isolated layouts (default: system temp dir)
        """
        self.dispatcher = dispatcher
        self.logger = logger or logging.getLogger(__name__)
        self.temp_root = temp_root
        self.state: RunState | None = None

    async def _scan_one(
        self,
        store_root: Path,
        index: ImageIndex,
        descriptor: ManifestDescriptor,
        image_name: str,
    ) -> ScanOutcome:
        """Isolate and scan a single descriptor, turning errors into an outcome."""
        self.state = RunState.ISOLATING
        try:
            with isolated_layout(store_root, index, descriptor, self.temp_root) as layout:
                self.state = RunState.SCANNING
                report = await self.dispatcher.dispatch(layout, image_name)
        except ZarfScanError as e:
            outcome = ScanOutcome(descriptor=descriptor, resolved_name=image_name, error=e)
        else:
            outcome = ScanOutcome(descriptor=descriptor, resolved_name=image_name, report=report)

        self.state = RunState.RECORDED
        return outcome

    async def iter_outcomes(
        self,
        store_root: Path,
        index: ImageIndex,
    ) -> AsyncIterator[ScanOutcome]:
        """Yield one ScanOutcome per descriptor, in index order.

        Args:
            store_root: OCI layout directory holding the shared blob store
            index: Combined index of that layout

        Yields:
            ScanOutcome for each descriptor, successful or not
        """
        for descriptor in index.manifests:
            image_name = resolve_image_name(descriptor)
            self.logger.info(f"Scanning image: {image_name} ({descriptor.media_type})")
            yield await self._scan_one(Path(store_root), index, descriptor, image_name)

    async def run(
        self,
        store_root: Path | str,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> ScanRunResult:
        """Scan every image listed in <store_root>/index.json.

        Args:
            store_root: OCI layout directory (a package's images/ directory)
            progress_callback: Optional callback for progress updates (current, total)

        Returns:
            ScanRunResult with one outcome per image

        Raises:
            IndexNotFound: If index.json does not exist
            MalformedIndex: If index.json cannot be parsed
        """
        start_time = time.time()
        store_root = Path(store_root)

        index = load_index(store_root)
        self.state = RunState.LOADED
        total = len(index.manifests)

        if total == 0:
            self.logger.info("No images found in the Zarf package")
        else:
            self.logger.info(f"Found {total} images to scan")

        outcomes: list[ScanOutcome] = []
        async for outcome in self.iter_outcomes(store_root, index):
            outcomes.append(outcome)
            if outcome.success:
                self.logger.info(f"✓ {outcome.resolved_name}")
            else:
                self.logger.warning(f"✗ {outcome.resolved_name}: {outcome.error}")
            if progress_callback:
                progress_callback(len(outcomes), total)

        self.state = RunState.AGGREGATED
        result = ScanRunResult(outcomes=outcomes, duration_seconds=time.time() - start_time)

        if result.failed:
            self.logger.error(f"{result.failed} of {result.total} images failed to scan")
        return result
