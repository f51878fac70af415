"""Loads the combined image index of an OCI layout."""

import logging
from pathlib import Path

from pydantic import ValidationError

from trivy_zarf.consts import OCI_INDEX_FILE
from trivy_zarf.exceptions import IndexNotFound, MalformedIndex
from trivy_zarf.models.model_oci import ImageIndex

logger = logging.getLogger(__name__)


def load_index(path: Path | str) -> ImageIndex:
    """Read and validate an index.json document.

    An index with no manifests is valid and yields an empty ImageIndex.

    Args:
        path: Path to index.json, or to the layout directory containing it

    Returns:
        The parsed ImageIndex

    Raises:
        IndexNotFound: If the document does not exist
        MalformedIndex: If the document is unreadable, not JSON, or has the wrong structure
    """
    path = Path(path)
    if path.is_dir():
        path = path / OCI_INDEX_FILE

    if not path.is_file():
        raise IndexNotFound(f"{OCI_INDEX_FILE} not found: {path}")

    try:
        data = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedIndex(f"reading {path}", cause=e) from e

    try:
        index = ImageIndex.model_validate_json(data)
    except ValidationError as e:
        raise MalformedIndex(f"parsing {path}: {e.error_count()} validation error(s)", cause=e) from e

    logger.debug(f"Loaded {path} (schemaVersion={index.schema_version}, {len(index.manifests)} manifests)")
    return index
