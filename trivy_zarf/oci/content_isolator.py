"""Builds single-image OCI layouts out of a shared multi-image layout.

Trivy scans every manifest listed in an index.json it is given. To get one
report per image, each image is scanned from its own temporary layout that
holds a copy of the shared blob store and an index.json with a single entry.
"""

import logging
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from trivy_zarf.consts import IMAGE_TEMP_PREFIX, OCI_BLOBS_DIR, OCI_INDEX_FILE, OCI_LAYOUT_FILE
from trivy_zarf.exceptions import CopyFailed, WriteFailed
from trivy_zarf.models.model_oci import ImageIndex, IsolatedLayout, ManifestDescriptor

logger = logging.getLogger(__name__)


def copy_oci_layout(src_dir: Path, dest_dir: Path) -> None:
    """Copy the blob store and the oci-layout marker of a layout.

    The whole blobs/ tree is copied rather than only the blobs the descriptor
    references; Trivy resolves blobs by digest and ignores the rest.

    Raises:
        CopyFailed: On any I/O error
    """
    blobs_dir = src_dir / OCI_BLOBS_DIR
    if blobs_dir.is_dir():
        try:
            shutil.copytree(blobs_dir, dest_dir / OCI_BLOBS_DIR, dirs_exist_ok=True)
        except (shutil.Error, OSError) as e:
            raise CopyFailed(f"copying blobs from {blobs_dir}", cause=e) from e

    layout_file = src_dir / OCI_LAYOUT_FILE
    if layout_file.is_file():
        try:
            shutil.copyfile(layout_file, dest_dir / OCI_LAYOUT_FILE)
        except OSError as e:
            raise CopyFailed(f"copying {OCI_LAYOUT_FILE} from {layout_file}", cause=e) from e


def write_index(index: ImageIndex, dest_dir: Path) -> Path:
    """Write index.json into a layout directory.

    Raises:
        WriteFailed: If the file cannot be written
    """
    index_path = dest_dir / OCI_INDEX_FILE
    try:
        index_path.write_text(index.to_json(), encoding="utf-8")
    except OSError as e:
        raise WriteFailed(f"writing {index_path}", cause=e) from e
    return index_path


def _cleanup_layout_dir(path: Path) -> None:
    """Remove an isolated layout directory; failures are logged, not raised."""
    try:
        if path.exists():
            shutil.rmtree(path)
            logger.debug(f"Removed isolated layout: {path}")
    except OSError as e:
        logger.warning(f"Failed to remove isolated layout {path}: {e}")


@contextmanager
def isolated_layout(
    store_root: Path,
    index: ImageIndex,
    descriptor: ManifestDescriptor,
    temp_root: Path | None = None,
) -> Iterator[IsolatedLayout]:
    """Materialize a layout containing only `descriptor` for the duration of the block.

    The derived index keeps the source schemaVersion and the descriptor as read.
    The directory is removed when the block exits, whether it succeeded,
    the isolation itself failed, or the scan inside the block raised.

    Args:
        store_root: Source OCI layout (the package's images/ directory)
        index: The combined index the descriptor belongs to
        descriptor: The single image to keep
        temp_root: Parent directory for the layout (default: system temp dir)

    Yields:
        The IsolatedLayout; never yielded if isolation failed

    Raises:
        CopyFailed: If the blob store or marker could not be copied
        WriteFailed: If the single-entry index could not be written
    """
    try:
        path = Path(tempfile.mkdtemp(prefix=IMAGE_TEMP_PREFIX, dir=temp_root))
    except OSError as e:
        raise CopyFailed("creating isolated layout directory", cause=e) from e

    try:
        copy_oci_layout(Path(store_root), path)
        write_index(index.for_descriptor(descriptor), path)
        logger.debug(f"Isolated {descriptor.digest} into {path}")
        yield IsolatedLayout(path=path, descriptor=descriptor)
    finally:
        _cleanup_layout_dir(path)
