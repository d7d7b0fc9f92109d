"""
Settings persistence: load, save, and validate the user's form defaults.

Settings are stored in a JSON file in the user's config directory
(provided by ``config.config_dir()``).  On first launch, or if the file is
missing, corrupt or invalid, defaults are used.  The bearer token is never
written to disk.

The on-disk format uses a versioned envelope::

    {
        "version": 1,
        "settings": {
            "service_url": "http://localhost:5000/resize",
            "download_dir": "/home/me/Downloads",
            "maintain_aspect": true,
            "fit": "cover",
            "outputs": [{"width": 512, "height": 512, "format": "png"}]
        }
    }
"""

import json
import logging
from copy import deepcopy
from pathlib import Path

from resizeit.config import (
    DEFAULT_OUTPUT, DEFAULT_SERVICE_URL, FIT_MODE_DEFAULT, FIT_MODES,
    MAX_DIMENSION, MIN_DIMENSION, OUTPUT_FORMATS, config_dir,
)

logger = logging.getLogger(__name__)

_SETTINGS_FILENAME = "settings.json"
_FORMAT_VERSION = 1

_REQUIRED_KEYS = {"service_url", "download_dir", "maintain_aspect", "fit", "outputs"}
_OUTPUT_REQUIRED_KEYS = {"width", "height", "format"}

DEFAULT_SETTINGS = {
    "service_url": DEFAULT_SERVICE_URL,
    "download_dir": str(Path.home() / "Downloads"),
    "maintain_aspect": True,
    "fit": FIT_MODE_DEFAULT,
    "outputs": [dict(DEFAULT_OUTPUT)],
}


def _settings_path() -> Path:
    """Return the full path to settings.json."""
    return config_dir() / _SETTINGS_FILENAME


# =============================================================================
# Validation
# =============================================================================
def validate_settings(data: object) -> list[str]:
    """
    Validate a settings dict.

    Returns a list of error strings (empty means valid).  Saved outputs
    must already be in range; only live form values may be out of range.
    """
    errors: list[str] = []

    if not isinstance(data, dict):
        errors.append("Settings must be a dict")
        return errors

    missing = _REQUIRED_KEYS - data.keys()
    if missing:
        errors.append(f"missing keys: {', '.join(sorted(missing))}")
        return errors

    url = data["service_url"]
    if not isinstance(url, str) or not url.startswith(("http://", "https://")):
        errors.append(f"service_url must be an http(s) URL, got {url!r}")

    if not isinstance(data["download_dir"], str) or not data["download_dir"].strip():
        errors.append("download_dir must be a non-empty string")

    if not isinstance(data["maintain_aspect"], bool):
        errors.append("maintain_aspect must be a boolean")

    if data["fit"] not in FIT_MODES:
        errors.append(f"fit must be one of {', '.join(FIT_MODES)}, got {data['fit']!r}")

    outputs = data["outputs"]
    if not isinstance(outputs, list) or len(outputs) == 0:
        errors.append("outputs must be a non-empty list")
        return errors

    for i, output in enumerate(outputs):
        prefix = f"Output #{i + 1}"

        if not isinstance(output, dict):
            errors.append(f"{prefix}: must be a dict")
            continue

        omissing = _OUTPUT_REQUIRED_KEYS - output.keys()
        if omissing:
            errors.append(f"{prefix}: missing keys: {', '.join(sorted(omissing))}")
            continue

        for key in ("width", "height"):
            val = output[key]
            if isinstance(val, bool) or not isinstance(val, int) or not MIN_DIMENSION <= val <= MAX_DIMENSION:
                errors.append(
                    f"{prefix}: {key} must be an integer in "
                    f"[{MIN_DIMENSION}, {MAX_DIMENSION}], got {val!r}"
                )

        if output["format"] not in OUTPUT_FORMATS:
            errors.append(f"{prefix}: format must be one of {', '.join(OUTPUT_FORMATS)}, got {output['format']!r}")

    return errors


# =============================================================================
# Load / Save
# =============================================================================
def load_settings() -> dict:
    """
    Load settings from settings.json.

    Falls back to a copy of DEFAULT_SETTINGS if the file is missing,
    corrupt, lacks the version envelope, or fails validation.  Defaults
    are not written back; the next save does that.
    """
    path = _settings_path()

    if not path.exists():
        logger.debug("No settings file at %s, using defaults", path)
        return deepcopy(DEFAULT_SETTINGS)

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read settings.json (%s), using defaults", exc)
        return deepcopy(DEFAULT_SETTINGS)

    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION or "settings" not in raw:
        logger.warning("settings.json version mismatch or missing envelope, using defaults")
        return deepcopy(DEFAULT_SETTINGS)

    data = raw["settings"]
    errors = validate_settings(data)
    if errors:
        logger.warning(
            "settings.json validation failed:\n  %s\nUsing defaults.",
            "\n  ".join(errors),
        )
        return deepcopy(DEFAULT_SETTINGS)

    logger.info("Loaded settings from %s", path)
    return data


def save_settings(settings: dict) -> None:
    """
    Validate and write settings to settings.json in versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    errors = validate_settings(settings)
    if errors:
        raise ValueError("Invalid settings:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "settings": settings}
    path = _settings_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.debug("Saved settings to %s", path)
