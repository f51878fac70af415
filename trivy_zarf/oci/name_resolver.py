"""Human-readable names for image descriptors."""

from trivy_zarf.consts import (
    DIGEST_NAME_LENGTH,
    DIGEST_NAME_MIN_LENGTH,
    IMAGE_NAME_ANNOTATIONS,
)
from trivy_zarf.models.model_oci import ManifestDescriptor


def resolve_image_name(descriptor: ManifestDescriptor) -> str:
    """Derive a display name for a descriptor.

    Priority:
    1. org.opencontainers.image.ref.name annotation
    2. org.opencontainers.image.base.name annotation
    3. first 16 characters after the ':' of a digest longer than 20 characters
    4. the raw digest

    The name is only used for logging and report filenames, never as an identity.

    Examples:
        {ref.name: "docker.io/library/nginx:1.25"} → "docker.io/library/nginx:1.25"
        digest "sha256:0123456789abcdef0123..." → "0123456789abcdef"
        digest "short-digest" → "short-digest"
    """
    if descriptor.annotations is not None:
        for key in IMAGE_NAME_ANNOTATIONS:
            if key in descriptor.annotations:
                return descriptor.annotations[key]

    digest = descriptor.digest
    if len(digest) > DIGEST_NAME_MIN_LENGTH:
        parts = digest.split(":")
        if len(parts) > 1:
            return parts[1][:DIGEST_NAME_LENGTH]

    return digest
