"""
Qt-free image I/O utilities.

Opens source images (including layered PSD files), wraps the decoded
pixels in a ``SourceHandle`` with an explicit single-owner lifetime, and
generates non-clobbering output paths.  Safe to call from worker threads.
"""

import logging
from pathlib import Path

from PIL import Image, ImageSequence, UnidentifiedImageError
from psd_tools import PSDImage

from resizeit.config import ALLOW_LARGE_IMAGES
from resizeit.errors import ImageLoadError
from resizeit.models import ImageDimensions

logger = logging.getLogger(__name__)

if ALLOW_LARGE_IMAGES:
    Image.MAX_IMAGE_PIXELS = None


def open_image(path: Path) -> Image.Image:
    """Open and fully decode an image: psd-tools for PSD, Pillow for the rest.

    Multi-frame files (GIF, animated WebP) yield their first frame.  The
    result is always RGBA so transparent sources preview correctly.
    """
    path = Path(path)
    try:
        if path.suffix.lower() == ".psd":
            return PSDImage.open(str(path)).composite().convert("RGBA")
        with Image.open(path) as img:
            first = next(ImageSequence.Iterator(img))
            return first.convert("RGBA")
    except FileNotFoundError as exc:
        raise ImageLoadError(f"File not found: {path}") from exc
    except UnidentifiedImageError as exc:
        raise ImageLoadError(f"Not an image: {path.name}") from exc
    except (OSError, ValueError) as exc:
        raise ImageLoadError(f"Could not decode {path.name}: {exc}") from exc


def get_image_size(path: Path) -> ImageDimensions:
    """Get image dimensions without fully loading/compositing."""
    path = Path(path)
    try:
        if path.suffix.lower() == ".psd":
            psd = PSDImage.open(str(path))
            return ImageDimensions(psd.width, psd.height)
        with Image.open(path) as img:
            return ImageDimensions(*img.size)
    except (OSError, ValueError) as exc:
        raise ImageLoadError(f"Could not read size of {path.name}: {exc}") from exc


# =============================================================================
# Source handle
# =============================================================================
class SourceHandle:
    """Decoded source image with an explicit release.

    The handle owns its Pillow image.  ``release()`` frees it exactly once;
    later calls are ignored.  Whoever holds the handle (the preview
    session) releases it when a newer source replaces it or on shutdown.
    """

    def __init__(self, path: Path, image: Image.Image):
        self.path = Path(path)
        self.dimensions = ImageDimensions(image.width, image.height)
        self._image: Image.Image | None = image

    @classmethod
    def load(cls, path: Path) -> "SourceHandle":
        """Decode *path* into a new handle. Raises ImageLoadError."""
        image = open_image(path)
        logger.debug("Decoded %s (%dx%d)", path, image.width, image.height)
        return cls(path, image)

    @property
    def image(self) -> Image.Image:
        if self._image is None:
            raise RuntimeError(f"source {self.path.name} has been released")
        return self._image

    @property
    def released(self) -> bool:
        return self._image is None

    def release(self) -> None:
        if self._image is None:
            logger.debug("Source %s already released", self.path.name)
            return
        self._image.close()
        self._image = None
        logger.debug("Released source %s", self.path.name)

    def __enter__(self) -> "SourceHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else f"{self.dimensions.width}x{self.dimensions.height}"
        return f"SourceHandle({self.path.name!r}, {state})"


def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
