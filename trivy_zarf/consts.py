from pathlib import Path

# Environment and config file
ENV_PREFIX = "TRIVY_PLUGIN_ZARF"
DEFAULT_CONFIG_NAME = ".trivy_plugin_zarf.yaml"
DEFAULT_CONFIG_PATH = Path.home() / DEFAULT_CONFIG_NAME

# Logging defaults
DEFAULT_LOG_LEVEL = "info"
DEFAULT_LOG_FORMAT = "console"
LOG_LEVELS = ["debug", "info", "warn", "error"]
LOG_FORMATS = ["console", "json", "dev", "none"]

# Trivy scanner constants
TRIVY_DEFAULT_DB_REPOSITORY = "ghcr.io/aquasecurity/trivy-db"
TRIVY_SEVERITIES = ["CRITICAL", "HIGH", "MEDIUM", "LOW", "UNKNOWN"]
TRIVY_ERROR_DETAIL_LIMIT = 1000  # Max characters of stderr kept in ScanFailed
TRIVY_INSTALL_URL = "https://aquasecurity.github.io/trivy/latest/getting-started/installation/"

# Zarf package constants
OCI_REFERENCE_PREFIX = "oci://"
ZARF_PACKAGE_SUFFIX = ".tar.zst"
ZARF_IMAGES_DIR = "images"  # OCI layout inside an extracted package
ZARF_INSTALL_URL = "https://docs.zarf.dev/getting-started/install/"

# OCI image layout
OCI_INDEX_FILE = "index.json"
OCI_LAYOUT_FILE = "oci-layout"
OCI_BLOBS_DIR = "blobs"

# Descriptor annotations used for display names, in order of preference
ANNOTATION_REF_NAME = "org.opencontainers.image.ref.name"
ANNOTATION_BASE_NAME = "org.opencontainers.image.base.name"
IMAGE_NAME_ANNOTATIONS = [ANNOTATION_REF_NAME, ANNOTATION_BASE_NAME]

# Digest-derived names
DIGEST_NAME_MIN_LENGTH = 20  # Digests must be longer than this to be shortened
DIGEST_NAME_LENGTH = 16  # Hex characters kept from the digest

# Report filenames
FILENAME_UNSAFE_CHARS = "/: .,@&=?#%*\"'`<>|\\!"
FILENAME_DEFAULT = "unknown_image"
REPORT_SUFFIX = ".json"

# Temporary directory prefixes
RUN_TEMP_PREFIX = "trivy-zarf-"
IMAGE_TEMP_PREFIX = "trivy-image-"
