"""
Main application window.

Orchestrates source loading, the output list, fit settings, the live
preview and the request to the resize service.  All form state lives in a
``PreviewSession``; every handler that changes it ends with
``_refresh_preview()``.
"""

import logging
from pathlib import Path

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QGridLayout,
    QPushButton, QLabel, QFileDialog, QSplitter, QGroupBox, QMessageBox,
    QStatusBar, QToolBar, QCheckBox, QComboBox, QSpinBox, QLineEdit,
    QApplication, QScrollArea,
)
from PyQt6.QtCore import Qt, QThread, pyqtSignal
from PyQt6.QtGui import QAction, QKeySequence, QShortcut

from resizeit.config import (
    FIT_MODES, IMAGE_EXTENSIONS, MAX_DIMENSION, MIN_DIMENSION,
    OUTPUT_FORMATS, OUTPUT_FORMAT_LABELS, REQUEST_TIMEOUT,
)
from resizeit.errors import ImageLoadError, TransportError, ValidationError
from resizeit.image_io import SourceHandle, get_image_size
from resizeit.output_set import OutputSet
from resizeit.preview_widget import ImageLoaderThread, PreviewWidget
from resizeit.resize_client import ResizeResult, build_request, save_result, send_request
from resizeit.session import PreviewSession
from resizeit.settings import load_settings, save_settings

logger = logging.getLogger(__name__)


# =============================================================================
# Background resize request
# =============================================================================

class ResizeRequestThread(QThread):
    """Sends one resize request off the UI thread."""
    succeeded = pyqtSignal(object)  # ResizeResult
    failed = pyqtSignal(str)

    def __init__(self, request, url: str, parent=None):
        super().__init__(parent)
        self._request = request
        self._url = url

    def run(self):
        try:
            result = send_request(self._request, url=self._url, timeout=REQUEST_TIMEOUT)
        except (TransportError, ImageLoadError) as e:
            self.failed.emit(str(e))
            return
        self.succeeded.emit(result)


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("ResizeIt")
        self.setMinimumSize(900, 560)

        # Screen-aware startup size, clamped to 80% of screen
        preferred_w, preferred_h = 1280, 800
        screen = QApplication.primaryScreen()
        if screen is not None:
            avail = screen.availableGeometry()
            preferred_w = min(preferred_w, int(avail.width() * 0.8))
            preferred_h = min(preferred_h, int(avail.height() * 0.8))
        self.resize(preferred_w, preferred_h)

        self._settings = load_settings()
        self._session = PreviewSession(
            outputs=OutputSet.from_payload(self._settings["outputs"]),
            maintain_aspect=self._settings["maintain_aspect"],
            fit=self._settings["fit"],
        )
        self._download_dir = Path(self._settings["download_dir"])

        # Threads stay referenced until they finish
        self._loaders: set[ImageLoaderThread] = set()
        self._requests: set[ResizeRequestThread] = set()

        self._build_ui()
        self._rebuild_output_rows()
        self._update_button_states()

    # =========================================================================
    # UI construction
    # =========================================================================

    def _build_ui(self):
        self._build_toolbar()

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QHBoxLayout(central)
        main_layout.setContentsMargins(4, 4, 4, 4)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        main_layout.addWidget(splitter)

        # Center panel: preview
        self._preview = PreviewWidget()
        splitter.addWidget(self._preview)

        splitter.addWidget(self._build_right_panel())
        splitter.setSizes([800, 360])

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._status.showMessage("Open an image to begin.")

        QShortcut(QKeySequence.StandardKey.Open, self, self._select_source)
        QShortcut(QKeySequence(Qt.KeyboardModifier.ControlModifier | Qt.Key.Key_Return), self, self._generate)

    def _build_toolbar(self):
        toolbar = QToolBar("Main")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        act_open = QAction("📂 Open Image", self)
        act_open.triggered.connect(self._select_source)
        toolbar.addAction(act_open)

        act_download = QAction("💾 Download Folder", self)
        act_download.triggered.connect(self._select_download_dir)
        toolbar.addAction(act_download)

        toolbar.addSeparator()

        act_generate = QAction("▶ Generate && Download", self)
        act_generate.triggered.connect(self._generate)
        toolbar.addAction(act_generate)
        self._act_generate = act_generate

    def _build_right_panel(self) -> QWidget:
        inner = QWidget()
        inner_layout = QVBoxLayout(inner)
        inner_layout.setContentsMargins(0, 0, 0, 0)

        inner_layout.addWidget(self._build_service_group())
        inner_layout.addWidget(self._build_fit_group())
        inner_layout.addWidget(self._build_outputs_group())

        self._source_label = QLabel("Source: none")
        self._source_label.setWordWrap(True)
        inner_layout.addWidget(self._source_label)

        self._geometry_label = QLabel("")
        self._geometry_label.setWordWrap(True)
        self._geometry_label.setStyleSheet("color: #aaa; font-size: 8pt;")
        inner_layout.addWidget(self._geometry_label)

        inner_layout.addStretch()

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(inner)
        scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        scroll.setFrameShape(scroll.Shape.NoFrame)

        right_panel = QWidget()
        right_panel.setMinimumWidth(340)
        right_layout = QVBoxLayout(right_panel)
        right_layout.setContentsMargins(4, 0, 0, 0)
        right_layout.addWidget(scroll)
        return right_panel

    def _build_service_group(self) -> QGroupBox:
        group = QGroupBox("Resize Service")
        layout = QVBoxLayout(group)

        layout.addWidget(QLabel("URL:"))
        self._service_url = QLineEdit(self._settings["service_url"])
        layout.addWidget(self._service_url)

        layout.addWidget(QLabel("JWT (if required):"))
        self._token = QLineEdit()
        self._token.setEchoMode(QLineEdit.EchoMode.Password)
        self._token.setPlaceholderText("Paste Bearer token")
        layout.addWidget(self._token)

        return group

    def _build_fit_group(self) -> QGroupBox:
        group = QGroupBox("Fit")
        layout = QHBoxLayout(group)

        self._maintain_aspect = QCheckBox("Maintain aspect ratio")
        self._maintain_aspect.setChecked(self._session.maintain_aspect)
        self._maintain_aspect.toggled.connect(self._on_maintain_aspect_changed)
        layout.addWidget(self._maintain_aspect)

        self._fit_mode = QComboBox()
        for mode in FIT_MODES:
            self._fit_mode.addItem(mode.capitalize(), mode)
        self._fit_mode.setCurrentIndex(FIT_MODES.index(self._session.fit))
        self._fit_mode.currentIndexChanged.connect(self._on_fit_changed)
        self._fit_mode.setVisible(self._session.maintain_aspect)
        layout.addWidget(self._fit_mode)

        return group

    def _build_outputs_group(self) -> QGroupBox:
        group = QGroupBox("Outputs")
        layout = QVBoxLayout(group)

        self._outputs_grid = QGridLayout()
        layout.addLayout(self._outputs_grid)

        btn_add = QPushButton("＋ Add")
        btn_add.clicked.connect(self._add_output)
        layout.addWidget(btn_add)

        return group

    def _rebuild_output_rows(self):
        """Clear and recreate one editor row per output entry."""
        while self._outputs_grid.count():
            item = self._outputs_grid.takeAt(0)
            widget = item.widget()
            if widget is not None:
                widget.deleteLater()

        outputs = self._session.outputs
        can_remove = len(outputs) > 1
        for i, spec in enumerate(outputs):
            width = QSpinBox()
            width.setRange(MIN_DIMENSION, MAX_DIMENSION)
            width.setValue(spec.width)
            width.setToolTip("Width")
            width.valueChanged.connect(lambda v, idx=i: self._update_output(idx, width=v))
            self._outputs_grid.addWidget(width, i, 0)

            height = QSpinBox()
            height.setRange(MIN_DIMENSION, MAX_DIMENSION)
            height.setValue(spec.height)
            height.setToolTip("Height")
            height.valueChanged.connect(lambda v, idx=i: self._update_output(idx, height=v))
            self._outputs_grid.addWidget(height, i, 1)

            fmt = QComboBox()
            for f in OUTPUT_FORMATS:
                fmt.addItem(OUTPUT_FORMAT_LABELS[f], f)
            fmt.setCurrentIndex(OUTPUT_FORMATS.index(spec.format))
            fmt.currentIndexChanged.connect(
                lambda n, idx=i: self._update_output(idx, format=OUTPUT_FORMATS[n])
            )
            self._outputs_grid.addWidget(fmt, i, 2)

            btn_preview = QPushButton("Preview")
            btn_preview.setCheckable(True)
            btn_preview.setChecked(i == outputs.active_index)
            btn_preview.clicked.connect(lambda checked, idx=i: self._set_active_output(idx))
            self._outputs_grid.addWidget(btn_preview, i, 3)

            # At least one output must remain
            if can_remove:
                btn_remove = QPushButton("✕")
                btn_remove.setToolTip("Remove output")
                btn_remove.setFixedWidth(28)
                btn_remove.clicked.connect(lambda checked, idx=i: self._remove_output(idx))
                self._outputs_grid.addWidget(btn_remove, i, 4)

    # =========================================================================
    # Output set
    # =========================================================================

    def _add_output(self):
        self._session.outputs.add_output()
        self._rebuild_output_rows()
        self._refresh_preview()

    def _update_output(self, index: int, **changes):
        self._session.outputs.update_output(index, **changes)
        if index == self._session.outputs.active_index:
            self._refresh_preview()

    def _remove_output(self, index: int):
        if len(self._session.outputs) <= 1:
            return
        self._session.outputs.remove_output(index)
        self._rebuild_output_rows()
        self._refresh_preview()

    def _set_active_output(self, index: int):
        self._session.outputs.set_active(index)
        self._rebuild_output_rows()
        self._refresh_preview()

    # =========================================================================
    # Fit settings
    # =========================================================================

    def _on_maintain_aspect_changed(self, checked: bool):
        self._session.set_maintain_aspect(checked)
        self._fit_mode.setVisible(checked)
        self._refresh_preview()

    def _on_fit_changed(self, index: int):
        self._session.set_fit(self._fit_mode.itemData(index))
        self._refresh_preview()

    # =========================================================================
    # Source loading
    # =========================================================================

    def _select_source(self):
        patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
        start = str(self._session.selected_path.parent) if self._session.selected_path else ""
        path, _ = QFileDialog.getOpenFileName(
            self, "Select Image", start, f"Images ({patterns});;All files (*)",
        )
        if path:
            self._load_source(Path(path))

    def _load_source(self, path: Path):
        generation = self._session.begin_load(path)

        try:
            dims = get_image_size(path)
            self._source_label.setText(f"Source: {path.name}  ({dims.width}×{dims.height})")
        except ImageLoadError:
            self._source_label.setText(f"Source: {path.name}")

        self._preview.set_loading(True)
        self._preview.clear()
        self._status.showMessage(f"Loading {path.name}…")

        loader = ImageLoaderThread(path, generation, self)
        loader.loaded.connect(self._on_source_loaded)
        loader.error.connect(self._on_source_load_error)
        loader.finished.connect(lambda t=loader: self._loaders.discard(t))
        self._loaders.add(loader)
        loader.start()

        self._update_button_states()

    def _on_source_loaded(self, generation: int, handle: SourceHandle):
        """Called when background decoding completes."""
        if not self._session.finish_load(generation, handle):
            return  # User picked another file before decoding finished
        self._status.showMessage(f"Loaded {handle.path.name}")
        self._refresh_preview()

    def _on_source_load_error(self, generation: int, error: str):
        if not self._session.fail_load(generation):
            return
        self._preview.set_loading(False)
        self._preview.set_message("Could not load image")
        self._status.showMessage(f"Failed to load image: {error}")

    # =========================================================================
    # Preview
    # =========================================================================

    def _refresh_preview(self):
        frame = self._session.refresh()
        if frame is None:
            if not self._session.loading:
                self._preview.set_frame(None)
            self._geometry_label.setText("")
            return
        self._preview.set_frame(frame)
        g = frame.geometry
        self._geometry_label.setText(
            f"Target {frame.target_w}×{frame.target_h} ({frame.policy}): "
            f"draw {g.draw_width}×{g.draw_height} at ({g.offset_x}, {g.offset_y})"
        )

    # =========================================================================
    # Generate
    # =========================================================================

    def _update_button_states(self):
        self._act_generate.setEnabled(self._session.selected_path is not None)

    def _select_download_dir(self):
        folder = QFileDialog.getExistingDirectory(self, "Select Download Folder", str(self._download_dir))
        if folder:
            self._download_dir = Path(folder)
            self._status.showMessage(f"Downloads go to {self._download_dir}")

    def _generate(self):
        session = self._session
        try:
            request = build_request(
                session.selected_path, session.outputs,
                session.maintain_aspect, session.fit, self._token.text().strip(),
            )
        except ValidationError as e:
            QMessageBox.warning(self, "Cannot Generate", str(e))
            return

        url = self._service_url.text().strip()
        thread = ResizeRequestThread(request, url, self)
        thread.succeeded.connect(self._on_resize_done)
        thread.failed.connect(self._on_resize_failed)
        thread.finished.connect(lambda t=thread: self._requests.discard(t))
        self._requests.add(thread)
        thread.start()
        self._status.showMessage(f"Sending {request.source_path.name} to {url}…")

    def _on_resize_done(self, result: ResizeResult):
        try:
            out_path = save_result(result, self._download_dir)
        except OSError as e:
            QMessageBox.critical(self, "Save Failed", f"Could not save {result.filename}:\n{e}")
            return
        self._status.showMessage(f"Downloaded: {out_path}")

    def _on_resize_failed(self, message: str):
        self._status.showMessage("Resize failed.")
        QMessageBox.critical(self, "Resize Failed", message)

    # =========================================================================
    # Settings persistence
    # =========================================================================

    def _current_settings(self) -> dict:
        return {
            "service_url": self._service_url.text().strip() or self._settings["service_url"],
            "download_dir": str(self._download_dir),
            "maintain_aspect": self._session.maintain_aspect,
            "fit": self._session.fit,
            "outputs": self._session.outputs.to_payload(),
        }

    def closeEvent(self, event):
        """Persist settings, release the source and wait for background threads before closing."""
        try:
            save_settings(self._current_settings())
        except (ValueError, OSError) as exc:
            logger.warning("Could not save settings: %s", exc)
        for loader in list(self._loaders):
            loader.wait(2000)
        for request in list(self._requests):
            request.wait(5000)
        self._session.close()
        super().closeEvent(event)
