"""
Fit-and-compose geometry.

``compose`` decides where the full source image is drawn inside a target
rectangle.  It is pure integer math with no image library involved; the
preview module and the window both consume its output.

Aspect ratios are compared and scaled as exact fractions (cross
multiplication, integer floor/ceil) so equal ratios such as 3:7 and
300:700 always compare equal and scale without float drift.

Rounding differs per policy: cover rounds the scaled side up so it never
undershoots the target, contain rounds it down so it never overshoots.
"""

from resizeit.config import FIT_CONTAIN, FIT_COVER, FIT_MODES, FIT_STRETCH
from resizeit.models import Geometry, ImageDimensions, OutputSpec, clamp_dimension


def policy_for(maintain_aspect: bool, fit: str) -> str:
    """Resolve the effective fit policy for the current form state."""
    if not maintain_aspect:
        return FIT_STRETCH
    if fit not in FIT_MODES:
        raise ValueError(f"unknown fit mode {fit!r}")
    return fit


def clamp_target(spec: OutputSpec) -> tuple[int, int]:
    """Clamped, floored (width, height) of an output spec."""
    return clamp_dimension(spec.width), clamp_dimension(spec.height)


def _ceil_div(num: int, den: int) -> int:
    return -(-num // den)


def compose(
    source: ImageDimensions,
    target_w: int, target_h: int,
    maintain_aspect: bool,
    fit: str = FIT_COVER,
) -> Geometry:
    """Compute draw size and offset of *source* inside a ``target_w`` x ``target_h`` target.

    The target must already be clamped (see ``clamp_target``).  Without
    aspect preservation, or with *fit* set to stretch, the source is
    stretched over the whole target.

    Equal aspect ratios take the second branch of either policy, which
    yields the same geometry for cover and contain.
    """
    if not maintain_aspect or fit == FIT_STRETCH:
        return Geometry(target_w, target_h, 0, 0)

    sw, sh = source.width, source.height
    # src_ar > dst_ar  <=>  sw / sh > target_w / target_h
    source_wider = sw * target_h > target_w * sh

    if fit == FIT_COVER:
        if source_wider:
            # height matches, width overflows
            draw_w = _ceil_div(target_h * sw, sh)
            return Geometry(draw_w, target_h, (target_w - draw_w) // 2, 0)
        # width matches, height overflows
        draw_h = _ceil_div(target_w * sh, sw)
        return Geometry(target_w, draw_h, 0, (target_h - draw_h) // 2)

    if fit == FIT_CONTAIN:
        if source_wider:
            # width matches, letterboxed above and below
            draw_h = target_w * sh // sw
            return Geometry(target_w, draw_h, 0, (target_h - draw_h) // 2)
        # height matches, pillarboxed left and right
        draw_w = target_h * sw // sh
        return Geometry(draw_w, target_h, (target_w - draw_w) // 2, 0)

    raise ValueError(f"unknown fit mode {fit!r}")
