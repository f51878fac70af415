"""OCI image layout handling: index loading, naming and per-image isolation."""

from trivy_zarf.oci.content_isolator import copy_oci_layout, isolated_layout, write_index
from trivy_zarf.oci.index_loader import load_index
from trivy_zarf.oci.name_resolver import resolve_image_name

__all__ = [
    "copy_oci_layout",
    "isolated_layout",
    "load_index",
    "resolve_image_name",
    "write_index",
]
