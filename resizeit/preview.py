"""
Pillow rendering surface for the preview.

``render`` draws a source image into a transparent buffer of the target
size at the geometry ``compositor.compose`` computed.  Only the part of
the source that lands inside the target is resampled, so a cover
geometry that overflows by thousands of pixels costs no more than one
that fits.

This module is Qt-free; the window converts the result to a pixmap.
"""

from dataclasses import dataclass

from PIL import Image

from resizeit.models import Geometry

# Fully transparent; letterbox bands stay see-through
CLEAR_COLOR = (0, 0, 0, 0)


@dataclass(frozen=True)
class PreviewFrame:
    """One rendered preview and the inputs that produced it."""
    image: Image.Image
    geometry: Geometry
    target_w: int
    target_h: int
    policy: str


def visible_region(geometry: Geometry, target_w: int, target_h: int) -> tuple[int, int, int, int] | None:
    """Intersection of the draw rectangle with the target, as (x0, y0, x1, y1).

    Returns None when nothing of the source would be visible.
    """
    x0 = max(0, geometry.offset_x)
    y0 = max(0, geometry.offset_y)
    x1 = min(target_w, geometry.offset_x + geometry.draw_width)
    y1 = min(target_h, geometry.offset_y + geometry.draw_height)
    if x1 <= x0 or y1 <= y0:
        return None
    return x0, y0, x1, y1


def render(source: Image.Image, geometry: Geometry, target_w: int, target_h: int) -> Image.Image:
    """Clear a ``target_w`` x ``target_h`` RGBA buffer and draw *source* at *geometry*."""
    canvas = Image.new("RGBA", (target_w, target_h), CLEAR_COLOR)
    region = visible_region(geometry, target_w, target_h)
    if region is None:
        return canvas

    x0, y0, x1, y1 = region
    # Map the visible target rectangle back into source pixel space
    scale_x = source.width / geometry.draw_width
    scale_y = source.height / geometry.draw_height
    box = (
        (x0 - geometry.offset_x) * scale_x,
        (y0 - geometry.offset_y) * scale_y,
        (x1 - geometry.offset_x) * scale_x,
        (y1 - geometry.offset_y) * scale_y,
    )
    src = source if source.mode == "RGBA" else source.convert("RGBA")
    patch = src.resize((x1 - x0, y1 - y0), Image.Resampling.LANCZOS, box=box)
    canvas.paste(patch, (x0, y0))
    return canvas
