"""Shared test data and in-memory fakes for the scanning protocols."""

import hashlib
import json
from pathlib import Path
from typing import Any

from trivy_zarf.exceptions import DecompressFailed, ScanFailed
from trivy_zarf.models.model_scanner import ScanErrorType, ScanOptions, ScanReport, Vulnerabilities

NGINX_DIGEST = "sha256:" + "a1" * 32
REDIS_DIGEST = "sha256:" + "b2" * 32
UNNAMED_DIGEST = "sha256:" + "c3" * 32


def make_descriptor(digest: str, name: str | None = None, **extra: Any) -> dict[str, Any]:
    """Build a manifest descriptor as it appears in index.json."""
    descriptor: dict[str, Any] = {
        "mediaType": "application/vnd.oci.image.manifest.v1+json",
        "digest": digest,
        "size": 1024,
    }
    if name is not None:
        descriptor["annotations"] = {"org.opencontainers.image.ref.name": name}
    descriptor.update(extra)
    return descriptor


def write_layout(root: Path, manifests: list[dict[str, Any]], schema_version: int = 2) -> Path:
    """Write an OCI layout with the given descriptors and one blob per descriptor."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "oci-layout").write_text(json.dumps({"imageLayoutVersion": "1.0.0"}))

    blobs = root / "blobs" / "sha256"
    blobs.mkdir(parents=True, exist_ok=True)
    for descriptor in manifests:
        content = json.dumps({"digest": descriptor["digest"]}).encode()
        (blobs / hashlib.sha256(content).hexdigest()).write_bytes(content)

    index = {
        "schemaVersion": schema_version,
        "mediaType": "application/vnd.oci.image.index.v1+json",
        "manifests": manifests,
    }
    (root / "index.json").write_text(json.dumps(index, indent=2))
    return root


class FakeScanner:
    """In-memory ImageScanner that records what each isolated layout looked like."""

    def __init__(self, fail_digests: set[str] | None = None, vulnerabilities: Vulnerabilities | None = None):
        self.fail_digests = fail_digests or set()
        self.vulnerabilities = vulnerabilities or Vulnerabilities(critical=1, high=2)
        self.calls: list[dict[str, Any]] = []

    async def scan(self, layout_dir: Path, options: ScanOptions) -> ScanReport:
        index = json.loads((layout_dir / "index.json").read_text())
        digest = index["manifests"][0]["digest"]
        self.calls.append(
            {
                "layout_dir": layout_dir,
                "options": options,
                "index": index,
                "has_blobs": (layout_dir / "blobs").is_dir(),
                "has_marker": (layout_dir / "oci-layout").is_file(),
            }
        )

        if digest in self.fail_digests:
            raise ScanFailed(
                "Trivy error (code 1)",
                returncode=1,
                detail="FATAL failed to download vulnerability DB",
                error_type=ScanErrorType.DB_DOWNLOAD,
            )

        if options.output_path is None:
            return ScanReport()

        report = {
            "SchemaVersion": 2,
            "ArtifactName": str(layout_dir),
            "Results": [{"Vulnerabilities": [{"Severity": "CRITICAL"}, {"Severity": "HIGH"}]}],
        }
        Path(options.output_path).write_text(json.dumps(report))
        return ScanReport(output_path=Path(options.output_path), vulnerabilities=self.vulnerabilities)


class FakePackageTool:
    """In-memory PackageTool that 'decompresses' by writing a prepared layout."""

    def __init__(self, manifests: list[dict[str, Any]] | None = None, with_images: bool = True):
        self.manifests = manifests if manifests is not None else [make_descriptor(NGINX_DIGEST, "nginx:1.25")]
        self.with_images = with_images
        self.pulled: list[tuple[str, Path, bool, str | None]] = []
        self.decompressed: list[tuple[Path, Path]] = []
        self.fail_decompress = False

    async def pull(
        self,
        reference: str,
        dest_dir: Path,
        skip_signature_validation: bool = False,
        architecture: str | None = None,
    ) -> Path:
        self.pulled.append((reference, dest_dir, skip_signature_validation, architecture))
        package = Path(dest_dir) / "zarf-package-demo-amd64-1.0.0.tar.zst"
        package.write_bytes(b"package")
        return package

    async def decompress(self, archive: Path, dest_dir: Path) -> None:
        self.decompressed.append((archive, dest_dir))
        if self.fail_decompress:
            raise DecompressFailed("zarf decompression failed (code 1): corrupt archive")
        if self.with_images:
            write_layout(Path(dest_dir) / "images", self.manifests)
