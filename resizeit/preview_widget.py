"""
Preview widget and Qt image helpers.

This module contains everything that touches both Qt **and** image display:
``pil_to_qpixmap``, the background ``ImageLoaderThread`` and the
``PreviewWidget`` that shows a rendered preview frame.
"""

from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QRectF, pyqtSignal, QThread
from PyQt6.QtGui import QPainter, QPixmap, QColor, QPen, QImage, QPaintEvent, QResizeEvent

from resizeit.config import PREVIEW_CHECKER_SIZE
from resizeit.errors import ImageLoadError
from resizeit.image_io import SourceHandle
from resizeit.preview import PreviewFrame


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Convert a PIL Image to QPixmap."""
    img_rgba = pil_img.convert("RGBA")
    data = img_rgba.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgba.width, img_rgba.height, QImage.Format.Format_RGBA8888)
    # QImage does not own *data*; copy before it goes out of scope
    return QPixmap.fromImage(qimg.copy())


# =============================================================================
# Background image loader
# =============================================================================

class ImageLoaderThread(QThread):
    """Background thread decoding one source file into a SourceHandle.

    Signals carry the generation number handed out by the session so the
    receiver can drop results of superseded selections.
    """
    loaded = pyqtSignal(int, object)   # generation, SourceHandle
    error = pyqtSignal(int, str)       # generation, message

    def __init__(self, path: Path, generation: int, parent=None):
        super().__init__(parent)
        self._path = path
        self._generation = generation

    def run(self):
        try:
            handle = SourceHandle.load(self._path)
        except ImageLoadError as e:
            self.error.emit(self._generation, str(e))
            return
        self.loaded.emit(self._generation, handle)


# =============================================================================
# Preview Widget: rendered output letterboxed into the available space
# =============================================================================

class PreviewWidget(QWidget):
    """Displays a PreviewFrame scaled to fit, over a checkerboard."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setMinimumSize(320, 240)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self._pixmap: QPixmap | None = None
        self._frame: PreviewFrame | None = None
        self._loading = False
        self._message = "No image loaded"

        # Display mapping
        self._scale = 1.0
        self._offset_x = 0.0
        self._offset_y = 0.0

    def set_loading(self, loading: bool):
        """Show/hide loading indicator."""
        self._loading = loading
        self.update()

    def set_frame(self, frame: PreviewFrame | None):
        """Show a rendered frame, or clear the preview when None."""
        self._loading = False
        self._frame = frame
        self._pixmap = pil_to_qpixmap(frame.image) if frame is not None else None
        self._update_display_mapping()
        self.update()

    def set_message(self, message: str):
        """Text shown while there is no frame."""
        self._message = message
        self.update()

    def clear(self):
        self._pixmap = None
        self._frame = None
        self.update()

    # --- Coordinate mapping ---

    def _update_display_mapping(self):
        """Calculate scale and offset to fit the frame in the widget with letterboxing."""
        if not self._pixmap or self._pixmap.isNull():
            return
        ww, wh = self.width(), self.height()
        pw, ph = self._pixmap.width(), self._pixmap.height()
        # Never upscale small targets beyond their real size
        self._scale = min(ww / pw, wh / ph, 1.0)
        self._offset_x = (ww - pw * self._scale) / 2
        self._offset_y = (wh - ph * self._scale) / 2

    def resizeEvent(self, event: QResizeEvent):
        super().resizeEvent(event)
        self._update_display_mapping()

    # --- Painting ---

    def _paint_checkerboard(self, painter: QPainter, rect: QRectF):
        size = PREVIEW_CHECKER_SIZE
        light, dark = QColor(200, 200, 200), QColor(160, 160, 160)
        painter.save()
        painter.setClipRect(rect)
        painter.fillRect(rect, light)
        y, row = rect.top(), 0
        while y < rect.bottom():
            x = rect.left() + (size if row % 2 else 0)
            while x < rect.right():
                painter.fillRect(QRectF(x, y, size, size), dark)
                x += size * 2
            y += size
            row += 1
        painter.restore()

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(30, 30, 30))

        if not self._pixmap:
            painter.setPen(QColor(128, 128, 128))
            msg = "Loading image…" if self._loading else self._message
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, msg)
            painter.end()
            return

        dest = QRectF(
            self._offset_x, self._offset_y,
            self._pixmap.width() * self._scale, self._pixmap.height() * self._scale,
        )
        self._paint_checkerboard(painter, dest)
        painter.drawPixmap(dest.toRect(), self._pixmap)

        # Target border
        painter.setPen(QPen(QColor(255, 255, 255, 120), 1))
        painter.drawRect(dest)

        # Size and policy label
        frame = self._frame
        painter.setPen(QColor(255, 255, 255))
        label = f"{frame.target_w} × {frame.target_h}  ·  {frame.policy}"
        painter.drawText(
            self.rect().adjusted(0, 0, 0, -4),
            Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom,
            label,
        )

        painter.end()
