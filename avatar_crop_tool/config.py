"""
Application constants and configuration.

Geometry, zoom and export constants control the crop editor; the upload
constants mirror the avatar endpoint's contract.  Per-user settings live
in settings.json (see the settings module) and can be overridden from the
environment.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules.
"""

import os
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "avatar-crop-tool"


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
# CROP GEOMETRY
# =============================================================================
# On-screen preview circle (pixels)
PREVIEW_DIAMETER = 240

# Exported avatar raster (pixels, square)
OUTPUT_DIAMETER = 256

# Zoom is a multiplier on top of the base fit-scale
ZOOM_MIN = 0.5
ZOOM_MAX = 4.0
ZOOM_DEFAULT = 1.0

# Zoom change per wheel pixel; Qt reports 120 angle units per notch, which
# we map to the ~100 pixel step a browser reports for one notch
WHEEL_SENSITIVITY = 0.002
WHEEL_PIXELS_PER_NOTCH = 100

# Slider works in integers: 100 steps per zoom unit
ZOOM_SLIDER_SCALE = 100

# Preview border ring
BORDER_COLOR = (99, 102, 241, 204)
BORDER_WIDTH = 2

# =============================================================================
# EXPORT
# =============================================================================
# PNG compression level (0-9, 9 = maximum compression)
PNG_COMPRESS_LEVEL = 9

# Circle mask is drawn this many times larger, then downsampled
MASK_SUPERSAMPLE = 4

# =============================================================================
# INPUT FILES
# =============================================================================
PSD_MIME_TYPE = "image/vnd.adobe.photoshop"

ACCEPTED_MIME_TYPES = {
    "image/jpeg": (".jpg", ".jpeg"),
    "image/png": (".png",),
    "image/webp": (".webp",),
    "image/gif": (".gif",),
    PSD_MIME_TYPE: (".psd",),
}

IMAGE_EXTENSIONS = {ext for exts in ACCEPTED_MIME_TYPES.values() for ext in exts}

# =============================================================================
# AVATAR ENDPOINT
# =============================================================================
AVATAR_ENDPOINT = "/api/users/me/avatar"
PROFILE_ENDPOINT = "/api/users/me"
AVATAR_FIELD = "avatar"
AVATAR_FILENAME = "avatar.png"

# Server rejects uploads over 2 MB
MAX_UPLOAD_BYTES = 2 * 1024 * 1024

UPLOAD_TIMEOUT = 15  # seconds

# =============================================================================
# ENVIRONMENT
# =============================================================================
ENV_API_URL = "AVATAR_API_URL"
ENV_API_TOKEN = "AVATAR_API_TOKEN"
ENV_LOG_LEVEL = "AVATAR_CROP_LOG_LEVEL"
