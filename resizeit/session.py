"""
Preview session: the state behind the window, without any Qt.

Holds the current source handle, the output set and the fit settings,
and exposes ``refresh()``, which callers invoke after every change that
can affect the preview.  Source decoding happens elsewhere (a loader
thread); the session only hands out generation numbers so a decode that
finishes after the user picked another file is dropped.
"""

import logging
from pathlib import Path

from PIL import Image

from resizeit.compositor import clamp_target, compose, policy_for
from resizeit.config import FIT_MODE_DEFAULT
from resizeit.image_io import SourceHandle
from resizeit.output_set import OutputSet
from resizeit.preview import PreviewFrame, render

logger = logging.getLogger(__name__)


class PreviewSession:
    """Form state for one window: source, outputs, fit settings."""

    def __init__(
        self,
        outputs: OutputSet | None = None,
        maintain_aspect: bool = True,
        fit: str = FIT_MODE_DEFAULT,
    ):
        self.outputs = outputs if outputs is not None else OutputSet()
        self.maintain_aspect = maintain_aspect
        self.fit = fit
        self._source: SourceHandle | None = None
        self._selected_path: Path | None = None
        self._loading = False
        self._generation = 0
        self._frame: PreviewFrame | None = None

    # =========================================================================
    # Source lifecycle
    # =========================================================================

    @property
    def source(self) -> SourceHandle | None:
        """The decoded source currently previewed, if any."""
        return self._source

    @property
    def selected_path(self) -> Path | None:
        """The file the user picked last, decoded or not."""
        return self._selected_path

    @property
    def loading(self) -> bool:
        return self._loading

    def begin_load(self, path: Path) -> int:
        """Record a new file selection and return its generation number.

        Any decode still in flight for an earlier selection is superseded.
        """
        self._generation += 1
        self._selected_path = Path(path)
        self._loading = True
        logger.debug("Loading %s (generation %d)", path, self._generation)
        return self._generation

    def finish_load(self, generation: int, handle: SourceHandle) -> bool:
        """Adopt *handle* if it belongs to the latest selection.

        A stale handle is released and False is returned.  An accepted
        handle replaces (and releases) the previous source.
        """
        if generation != self._generation:
            logger.debug(
                "Discarding superseded decode of %s (generation %d, current %d)",
                handle.path.name, generation, self._generation,
            )
            handle.release()
            return False
        self._replace_source(handle)
        self._loading = False
        return True

    def fail_load(self, generation: int) -> bool:
        """Drop the previous source after the latest selection failed to decode.

        The failed path stays selected, so nothing from the earlier file is
        previewed or uploaded in its place.
        """
        if generation != self._generation:
            return False
        self._replace_source(None)
        self._loading = False
        return True

    def close(self) -> None:
        """Release the source. Safe to call more than once."""
        self._generation += 1
        self._selected_path = None
        self._loading = False
        self._replace_source(None)

    def _replace_source(self, handle: SourceHandle | None) -> None:
        old = self._source
        self._source = handle
        self._frame = None
        if old is not None and old is not handle:
            old.release()

    # =========================================================================
    # Fit settings
    # =========================================================================

    @property
    def policy(self) -> str:
        return policy_for(self.maintain_aspect, self.fit)

    def set_maintain_aspect(self, enabled: bool) -> None:
        self.maintain_aspect = bool(enabled)

    def set_fit(self, fit: str) -> None:
        # Validate eagerly so a bad value never reaches refresh()
        policy_for(True, fit)
        self.fit = fit

    # =========================================================================
    # Refresh
    # =========================================================================

    @property
    def frame(self) -> PreviewFrame | None:
        """The result of the last refresh()."""
        return self._frame

    def refresh(self) -> PreviewFrame | None:
        """Recompose and re-render the active output.

        Returns None (and clears the last frame) while no source is decoded
        or the output set is empty.
        """
        spec = self.outputs.active
        if self._source is None or spec is None:
            self._frame = None
            return None

        target_w, target_h = clamp_target(spec)
        geometry = compose(self._source.dimensions, target_w, target_h, self.maintain_aspect, self.fit)
        image: Image.Image = render(self._source.image, geometry, target_w, target_h)
        self._frame = PreviewFrame(image, geometry, target_w, target_h, self.policy)
        logger.debug(
            "Preview %dx%d %s: draw %dx%d at (%d, %d)",
            target_w, target_h, self._frame.policy,
            geometry.draw_width, geometry.draw_height, geometry.offset_x, geometry.offset_y,
        )
        return self._frame
