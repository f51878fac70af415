"""OCI image layout models: the combined index, its descriptors and isolated layouts."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trivy_zarf.consts import OCI_BLOBS_DIR, OCI_INDEX_FILE


class ManifestDescriptor(BaseModel):
    """One entry of an image index identifying an image manifest.

    Unknown descriptor fields (platform, urls, artifactType, ...) are kept so
    that a derived index reproduces the descriptor exactly as it was read.
    """

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True, strict=True)

    media_type: str = Field(alias="mediaType", description="Media type of the referenced manifest")
    digest: str = Field(description="Content digest, formatted <algorithm>:<hex>")
    size: int = Field(description="Size of the referenced manifest in bytes")
    annotations: dict[str, str] | None = Field(default=None, description="Arbitrary metadata")

    def to_oci(self) -> dict[str, Any]:
        """Serialize back to the OCI JSON shape, with only the fields that were read."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class ImageIndex(BaseModel):
    """An OCI image index (index.json).

    Manifest order is the scan order.
    """

    model_config = ConfigDict(populate_by_name=True, strict=True)

    schema_version: int = Field(alias="schemaVersion", description="Copied into derived indexes")
    media_type: str | None = Field(default=None, alias="mediaType")
    manifests: list[ManifestDescriptor] = Field(default_factory=list)

    @field_validator("manifests", mode="before")
    @classmethod
    def _null_manifests_are_empty(cls, value: Any) -> Any:
        # "manifests": null is an index with zero descriptors
        return [] if value is None else value

    def for_descriptor(self, descriptor: ManifestDescriptor) -> "ImageIndex":
        """Build a single-entry index for one descriptor, keeping the schema version."""
        fields: dict[str, Any] = {
            "schemaVersion": self.schema_version,
            "manifests": [descriptor],
        }
        if self.media_type is not None:
            fields["mediaType"] = self.media_type
        return ImageIndex.model_validate(fields)

    def to_json(self) -> str:
        """Serialize to index.json content."""
        return self.model_dump_json(by_alias=True, exclude_unset=True, indent=2)


@dataclass(frozen=True)
class IsolatedLayout:
    """A single-use OCI layout directory scoped to exactly one descriptor."""

    path: Path
    descriptor: ManifestDescriptor

    @property
    def index_path(self) -> Path:
        return self.path / OCI_INDEX_FILE

    @property
    def blobs_dir(self) -> Path:
        return self.path / OCI_BLOBS_DIR
