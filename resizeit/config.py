"""
Application constants and configuration.

Output bounds, the default output entry and the resize-service wire
constants live here.  User-editable settings (service URL, outputs, fit
mode) are persisted separately by the settings module.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules.
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "resizeit"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory


# =============================================================================
# OUTPUT DIMENSIONS & FORMATS
# =============================================================================
# Inclusive bounds applied to target width/height before composing
MIN_DIMENSION = 1
MAX_DIMENSION = 8000

# Output format options (wire values sent to the resize service)
OUTPUT_FORMATS = ["png", "jpeg", "webp"]
OUTPUT_FORMAT_LABELS = {"png": "PNG", "jpeg": "JPEG", "webp": "WebP"}

# Entry appended by "Add" and used for the initial output set
DEFAULT_OUTPUT = {"width": 512, "height": 512, "format": "png"}

# =============================================================================
# FIT POLICIES
# =============================================================================
FIT_STRETCH = "stretch"
FIT_COVER = "cover"
FIT_CONTAIN = "contain"

# Selectable while "maintain aspect ratio" is enabled
FIT_MODES = [FIT_COVER, FIT_CONTAIN]
FIT_MODE_DEFAULT = FIT_COVER

# =============================================================================
# RESIZE SERVICE
# =============================================================================
DEFAULT_SERVICE_URL = os.environ.get("RESIZEIT_SERVICE_URL", "http://localhost:5000/resize")

# Seconds; uploads of large sources can be slow
REQUEST_TIMEOUT = float(os.environ.get("RESIZEIT_TIMEOUT", "120"))

# Multipart field carrying the source image bytes
IMAGE_FIELD = "logo"

# Download names used when the service does not send Content-Disposition
FALLBACK_ZIP_NAME = "resized.zip"
FALLBACK_BASE_NAME = "image"
GENERIC_ERROR_MESSAGE = "Failed to resize"

# =============================================================================
# SOURCE IMAGES
# =============================================================================
# Allow very large sources (Pillow's default limit is ~178MP)
ALLOW_LARGE_IMAGES = True

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tiff", ".tif", ".webp", ".psd"}

# Background shown behind transparent preview areas in the window
PREVIEW_CHECKER_SIZE = 8
