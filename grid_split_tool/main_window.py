"""
Main application window.

Two tabs: **Split** (open an image or a tweet photo, pick a segment count
and grid geometry, pan/zoom the crop, export tiles) and **Merge** (stack
several images with an optional gap fill).  Rendering runs on background
threads after a short debounce; results from superseded requests are
dropped by token.
"""

import logging
from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QListWidget, QListWidgetItem,
    QPushButton, QLabel, QFileDialog, QSplitter, QGroupBox, QMessageBox,
    QStatusBar, QComboBox, QSpinBox, QLineEdit, QScrollArea, QTabWidget,
    QColorDialog, QInputDialog, QApplication, QAbstractItemView,
)
from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QColor, QKeySequence, QShortcut

from grid_split_tool.config import (
    DISPLAY_PRESETS, GAP_FILL_TYPES, IMAGE_EXTENSIONS, MAX_MERGE_GAP, MERGE_FILENAME,
    RENDER_DEBOUNCE_MS, SEGMENT_COUNT_OPTIONS, ZIP_FILENAME, ZOOM_BUTTON_STEP,
)
from grid_split_tool.crop_state import CropControls
from grid_split_tool.crop_widget import (
    ImageCropWidget, ImageLoaderThread, TaskThread, bytes_to_qpixmap, pil_to_qpixmap,
)
from grid_split_tool.export import save_zip, write_merge, write_split
from grid_split_tool.image_io import (
    compute_fingerprint, fingerprint_bytes, get_image_size, open_image, open_image_bytes,
)
from grid_split_tool.models import (
    CustomDimensions, DimensionConfig, compute_target_dimensions, get_preview_info,
)
from grid_split_tool.settings import load_settings, save_settings
from grid_split_tool.tweet_fetch import fetch_image, fetch_tweet_images
from grid_split_tool.worker import RequestTracker, render_merge, render_split

logger = logging.getLogger(__name__)

_IMAGE_FILTER = "Images ({})".format(" ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS)))

# Preview tiles are drawn at this fraction of their output size
_PREVIEW_SCALE = 0.5


def _parse_heights(text: str) -> list[int]:
    """Parse ``"253, 253, 300"`` into a list of positive ints (invalid entries skipped)."""
    heights = []
    for part in text.replace(";", ",").split(","):
        part = part.strip()
        if part.isdigit() and int(part) > 0:
            heights.append(int(part))
    return heights


def _row_widgets(layout) -> list[QWidget]:
    return [layout.itemAt(i).widget() for i in range(layout.count()) if layout.itemAt(i).widget()]


# =============================================================================
# Split tab
# =============================================================================

class SplitTab(QWidget):
    status_message = pyqtSignal(str)

    def __init__(self, settings: dict, parent=None):
        super().__init__(parent)
        self._image: Image.Image | None = None
        self._image_id = ""
        self._image_name = "image"
        self._loader: ImageLoaderThread | None = None
        self._threads: set[TaskThread] = set()

        self._segments = settings["segments"]
        self._dim_config = DimensionConfig.from_dict(settings["dimensions"])
        self._controls = CropControls()
        self._tracker = RequestTracker()
        self._result = None

        self._render_timer = QTimer(self)
        self._render_timer.setSingleShot(True)
        self._render_timer.setInterval(RENDER_DEBOUNCE_MS)
        self._render_timer.timeout.connect(self._start_render)

        self._build_ui()
        self._load_dimension_widgets()

    # --- UI construction ---

    def _build_ui(self):
        layout = QHBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)
        splitter = QSplitter(Qt.Orientation.Horizontal)
        layout.addWidget(splitter)

        splitter.addWidget(self._build_left_panel())

        self._crop_widget = ImageCropWidget()
        self._crop_widget.crop_changed.connect(self._on_crop_changed)
        splitter.addWidget(self._crop_widget)

        splitter.addWidget(self._build_preview_panel())
        splitter.setSizes([260, 700, 320])

    def _build_left_panel(self) -> QWidget:
        inner = QWidget()
        inner_layout = QVBoxLayout(inner)
        inner_layout.setContentsMargins(0, 0, 0, 0)
        inner_layout.addWidget(self._build_source_group())
        inner_layout.addWidget(self._build_segments_group())
        inner_layout.addWidget(self._build_dimensions_group())
        inner_layout.addWidget(self._build_crop_group())
        inner_layout.addWidget(self._build_export_group())
        inner_layout.addStretch()

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(inner)
        scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        scroll.setFrameShape(scroll.Shape.NoFrame)
        return scroll

    def _build_source_group(self) -> QGroupBox:
        group = QGroupBox("Image")
        group_layout = QVBoxLayout(group)

        btn_open = QPushButton("📂 Open Image…")
        btn_open.clicked.connect(self._select_image)
        group_layout.addWidget(btn_open)

        group_layout.addWidget(QLabel("Or paste a post URL:"))
        url_row = QHBoxLayout()
        self._tweet_url = QLineEdit()
        self._tweet_url.setPlaceholderText("https://x.com/user/status/…")
        self._tweet_url.returnPressed.connect(self._fetch_tweet)
        url_row.addWidget(self._tweet_url, stretch=1)
        self._btn_fetch = QPushButton("Fetch")
        self._btn_fetch.clicked.connect(self._fetch_tweet)
        url_row.addWidget(self._btn_fetch)
        group_layout.addLayout(url_row)

        self._source_label = QLabel("No image")
        self._source_label.setStyleSheet("color: #888; font-size: 8pt;")
        self._source_label.setWordWrap(True)
        group_layout.addWidget(self._source_label)
        return group

    def _build_segments_group(self) -> QGroupBox:
        group = QGroupBox("Segments")
        row = QHBoxLayout(group)
        self._segment_buttons: dict[int, QPushButton] = {}
        for n in SEGMENT_COUNT_OPTIONS:
            btn = QPushButton(str(n))
            btn.setCheckable(True)
            btn.setChecked(n == self._segments)
            btn.clicked.connect(lambda checked, count=n: self._on_segments_selected(count))
            row.addWidget(btn)
            self._segment_buttons[n] = btn
        return group

    def _build_dimensions_group(self) -> QGroupBox:
        group = QGroupBox("Dimensions")
        group_layout = QVBoxLayout(group)

        self._preset_combo = QComboBox()
        for mode in DISPLAY_PRESETS:
            self._preset_combo.addItem(f"Twitter ({mode})", mode)
        self._preset_combo.addItem("Custom", "custom")
        self._preset_combo.currentIndexChanged.connect(self._on_dimensions_edited)
        group_layout.addWidget(self._preset_combo)

        width_row = QHBoxLayout()
        width_row.addWidget(QLabel("Width:"))
        self._custom_width = QSpinBox()
        self._custom_width.setRange(1, 10000)
        self._custom_width.setSuffix(" px")
        self._custom_width.valueChanged.connect(self._on_dimensions_edited)
        width_row.addWidget(self._custom_width)
        group_layout.addLayout(width_row)

        heights_row = QHBoxLayout()
        heights_row.addWidget(QLabel("Heights:"))
        self._custom_heights = QLineEdit()
        self._custom_heights.setToolTip("Comma-separated segment heights; the last one repeats")
        self._custom_heights.editingFinished.connect(self._on_dimensions_edited)
        heights_row.addWidget(self._custom_heights)
        group_layout.addLayout(heights_row)

        gap_row = QHBoxLayout()
        gap_row.addWidget(QLabel("Gap:"))
        self._custom_gap = QSpinBox()
        self._custom_gap.setRange(0, 1000)
        self._custom_gap.setSuffix(" px")
        self._custom_gap.valueChanged.connect(self._on_dimensions_edited)
        gap_row.addWidget(self._custom_gap)
        group_layout.addLayout(gap_row)

        self._custom_rows = _row_widgets(width_row) + _row_widgets(heights_row) + _row_widgets(gap_row)

        self._dims_info_label = QLabel("")
        self._dims_info_label.setStyleSheet("color: #aaa; font-size: 8pt;")
        self._dims_info_label.setWordWrap(True)
        group_layout.addWidget(self._dims_info_label)
        return group

    def _build_crop_group(self) -> QGroupBox:
        group = QGroupBox("Crop")
        group_layout = QVBoxLayout(group)

        zoom_row = QHBoxLayout()
        self._btn_zoom_out = QPushButton("−")
        self._btn_zoom_out.clicked.connect(lambda: self._zoom_step(-ZOOM_BUTTON_STEP))
        zoom_row.addWidget(self._btn_zoom_out)
        self._zoom_label = QLabel("1.00×")
        self._zoom_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        zoom_row.addWidget(self._zoom_label, stretch=1)
        self._btn_zoom_in = QPushButton("+")
        self._btn_zoom_in.clicked.connect(lambda: self._zoom_step(ZOOM_BUTTON_STEP))
        zoom_row.addWidget(self._btn_zoom_in)
        group_layout.addLayout(zoom_row)

        self._btn_reset = QPushButton("🎯 Reset Crop")
        self._btn_reset.setToolTip("Return to the centered fit (zoom 1×)")
        self._btn_reset.clicked.connect(self._reset_crop)
        group_layout.addWidget(self._btn_reset)

        self._crop_info_label = QLabel("Crop: —")
        self._crop_info_label.setWordWrap(True)
        group_layout.addWidget(self._crop_info_label)

        hint = QLabel("Drag to pan · wheel to zoom · arrows nudge (Shift = more)")
        hint.setStyleSheet("color: #888; font-size: 8pt;")
        hint.setWordWrap(True)
        group_layout.addWidget(hint)
        return group

    def _build_export_group(self) -> QGroupBox:
        group = QGroupBox("Export")
        group_layout = QVBoxLayout(group)
        self._btn_save_pngs = QPushButton("💾 Save Segments…")
        self._btn_save_pngs.clicked.connect(self._save_segments)
        group_layout.addWidget(self._btn_save_pngs)
        self._btn_save_zip = QPushButton("🗜 Save as ZIP…")
        self._btn_save_zip.clicked.connect(self._save_zip)
        group_layout.addWidget(self._btn_save_zip)
        return group

    def _build_preview_panel(self) -> QWidget:
        inner = QWidget()
        self._preview_layout = QVBoxLayout(inner)
        self._preview_layout.setContentsMargins(8, 8, 8, 8)
        self._preview_layout.setAlignment(Qt.AlignmentFlag.AlignTop | Qt.AlignmentFlag.AlignHCenter)
        self._preview_labels: list[QLabel] = []

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(inner)

        panel = QWidget()
        panel_layout = QVBoxLayout(panel)
        panel_layout.setContentsMargins(0, 0, 0, 0)
        self._preview_title = QLabel("Preview")
        panel_layout.addWidget(self._preview_title)
        panel_layout.addWidget(scroll, stretch=1)
        return panel

    # --- Settings ---

    def _load_dimension_widgets(self):
        """Push the current DimensionConfig into the dimension widgets."""
        custom = self._dim_config.custom or CustomDimensions()
        widgets = (self._preset_combo, self._custom_width, self._custom_heights, self._custom_gap)
        for w in widgets:
            w.blockSignals(True)
        if self._dim_config.preset == "custom":
            self._preset_combo.setCurrentIndex(self._preset_combo.count() - 1)
        else:
            idx = self._preset_combo.findData(self._dim_config.mode)
            self._preset_combo.setCurrentIndex(max(0, idx))
        self._custom_width.setValue(int(custom.width))
        self._custom_heights.setText(", ".join(str(int(h)) for h in custom.segment_heights))
        self._custom_gap.setValue(int(custom.gap))
        for w in widgets:
            w.blockSignals(False)
        self._update_custom_visibility()
        self._update_dims_info()

    def settings(self) -> dict:
        return {"segments": self._segments, "dimensions": self._dim_config.to_dict()}

    def _read_dimension_config(self) -> DimensionConfig:
        choice = self._preset_combo.currentData()
        custom = CustomDimensions(
            width=self._custom_width.value(),
            segment_heights=_parse_heights(self._custom_heights.text()),
            gap=self._custom_gap.value(),
        )
        if choice == "custom":
            return DimensionConfig(preset="custom", mode=self._dim_config.mode, custom=custom)
        return DimensionConfig(preset="twitter", mode=choice, custom=custom)

    def _update_custom_visibility(self):
        is_custom = self._preset_combo.currentData() == "custom"
        for w in self._custom_rows:
            w.setVisible(is_custom)

    def _update_dims_info(self):
        target = compute_target_dimensions(self._segments, self._dim_config)
        heights = " + ".join(str(int(h)) for h in target.segment_heights)
        text = (
            f"Target: {int(target.width)} : {int(target.total_height)} (with gap space)\n"
            f"Segments: {heights}\n"
            f"Gap: {int(target.gap)}px × {target.gap_count} = {int(target.gap * target.gap_count)}px (removed)"
        )
        if self._image is not None:
            info = get_preview_info(self._image.width, self._image.height, self._segments, self._dim_config)
            if info["will_crop_width"]:
                text += "\nFit: sides trimmed"
            elif info["will_crop_height"]:
                text += "\nFit: top and bottom trimmed"
        self._dims_info_label.setText(text)
        self._preview_layout.setSpacing(int(target.gap * _PREVIEW_SCALE))
        self._preview_title.setText(f"Preview ({int(target.gap)}px gaps)")

    # --- Image loading ---

    def _select_image(self):
        path, _ = QFileDialog.getOpenFileName(self, "Open Image", "", _IMAGE_FILTER)
        if not path:
            return
        self._begin_load(Path(path))

    def _begin_load(self, path: Path):
        """Fingerprint *path*, show its header size, and decode it in the background."""
        try:
            image_id = compute_fingerprint(path)
            width, height = get_image_size(path)
        except (OSError, ValueError) as exc:
            QMessageBox.warning(self, "Open Failed", f"Could not read {path.name}:\n{exc}")
            return

        self._source_label.setText(f"Loading {path.name}  ({width}×{height})…")
        self._crop_widget.clear()
        self._crop_widget.set_loading(True)
        if self._loader is not None:
            try:
                self._loader.finished.disconnect()
                self._loader.error.disconnect()
            except (TypeError, RuntimeError):
                pass  # Already disconnected or destroyed
        self._loader = ImageLoaderThread(path, self)
        self._loader.finished.connect(lambda img, p=path, fp=image_id: self._set_image(img, fp, p.stem))
        self._loader.error.connect(self._on_image_load_error)
        self._loader.start()

    def _on_image_load_error(self, error: str):
        self._crop_widget.set_loading(False)
        self.status_message.emit(f"Failed to load image: {error}")

    def _fetch_tweet(self):
        url = self._tweet_url.text().strip()
        if not url:
            return
        self._btn_fetch.setEnabled(False)
        self.status_message.emit("Looking up post…")
        self._run_task(fetch_tweet_images, url, on_done=self._on_tweet_images, on_error=self._on_fetch_error)

    def _on_tweet_images(self, urls: list):
        image_url = urls[0]
        if len(urls) > 1:
            labels = [f"Image {i + 1}" for i in range(len(urls))]
            choice, ok = QInputDialog.getItem(self, "Choose Image", "This post has several images:", labels, 0, False)
            if not ok:
                self._btn_fetch.setEnabled(True)
                self.status_message.emit("")
                return
            image_url = urls[labels.index(choice)]
        self.status_message.emit("Downloading image…")
        self._crop_widget.set_loading(True)
        self._run_task(fetch_image, image_url, on_done=self._on_tweet_image_bytes, on_error=self._on_fetch_error)

    def _on_tweet_image_bytes(self, data: bytes):
        self._btn_fetch.setEnabled(True)
        try:
            img = open_image_bytes(data)
        except (OSError, ValueError) as exc:
            self._on_fetch_error(f"Could not decode image: {exc}")
            return
        self._set_image(img, fingerprint_bytes(data), "tweet")

    def _on_fetch_error(self, error: str):
        self._btn_fetch.setEnabled(True)
        self._crop_widget.set_loading(False)
        self.status_message.emit("")
        QMessageBox.warning(self, "Fetch Failed", error)

    def _set_image(self, img: Image.Image, image_id: str, name: str):
        self._image = img
        self._image_id = image_id
        self._image_name = name
        self._result = None
        self._crop_widget.set_image(pil_to_qpixmap(img), img.width, img.height)
        self._source_label.setText(f"{name}  ({img.width}×{img.height})")
        self._apply_config()
        self.status_message.emit(f"Loaded {name} ({img.width}×{img.height})")

    # --- Config changes ---

    def _on_segments_selected(self, count: int):
        for n, btn in self._segment_buttons.items():
            btn.setChecked(n == count)
        if count == self._segments:
            return
        self._segments = count
        self._apply_config()

    def _on_dimensions_edited(self, *args):
        self._update_custom_visibility()
        self._dim_config = self._read_dimension_config()
        self._apply_config()

    def _apply_config(self):
        """Recompute target geometry and base crop after any config change."""
        self._update_dims_info()
        target = compute_target_dimensions(self._segments, self._dim_config)
        if self._image is not None:
            self._controls.set_source(
                self._image_id, self._image.width, self._image.height, self._segments, self._dim_config,
            )
        self._crop_widget.set_controls(self._controls, target)
        self._on_crop_changed()

    # --- Crop ---

    def _zoom_step(self, delta: float):
        self._controls.zoom_by(delta)
        self._crop_widget.update()
        self._on_crop_changed()

    def _reset_crop(self):
        self._controls.reset()
        self._crop_widget.update()
        self._on_crop_changed()

    def _on_crop_changed(self):
        self._update_crop_info()
        if self._image is not None:
            self._render_timer.start()

    def _update_crop_info(self):
        crop = self._controls.crop if self._image is not None else None
        has_crop = crop is not None
        self._btn_zoom_in.setEnabled(has_crop and self._controls.can_zoom_in)
        self._btn_zoom_out.setEnabled(has_crop and self._controls.can_zoom_out)
        self._btn_reset.setEnabled(has_crop and self._controls.is_modified())
        if not has_crop:
            self._crop_info_label.setText("Crop: —")
            self._zoom_label.setText("1.00×")
            return
        x, y, w, h = crop.to_pixels(self._image.width, self._image.height)
        self._zoom_label.setText(f"{self._controls.zoom:.2f}×")
        self._crop_info_label.setText(f"Crop: {w}×{h}\nPosition: ({x}, {y})")

    # --- Rendering ---

    def _run_task(self, fn, *args, on_done, on_error):
        thread = TaskThread(fn, *args, parent=self)
        thread.finished.connect(on_done)
        thread.error.connect(on_error)
        thread.finished.connect(lambda _result, t=thread: self._threads.discard(t))
        thread.error.connect(lambda _error, t=thread: self._threads.discard(t))
        self._threads.add(thread)
        thread.start()

    def _start_render(self):
        crop = self._controls.crop
        if self._image is None or crop is None:
            return
        args = {
            "token": self._tracker.issue(),
            "image": self._image,
            "segments": self._segments,
            "config": self._dim_config,
            "crop": crop,
        }
        self._run_task(render_split, args, on_done=self._on_render_done, on_error=self._on_render_error)

    def _on_render_done(self, outcome: dict):
        if not self._tracker.is_current(outcome["token"]):
            logger.debug("Discarding stale split render %d (latest %d)", outcome["token"], self._tracker.latest)
            return
        if not outcome["success"]:
            self.status_message.emit(f"Split failed: {outcome['error']}")
            return
        self._result = outcome["result"]
        self._show_preview()

    def _on_render_error(self, error: str):
        self.status_message.emit(f"Split failed: {error}")

    def _show_preview(self):
        for label in self._preview_labels:
            self._preview_layout.removeWidget(label)
            label.deleteLater()
        self._preview_labels = []
        for segment in self._result.segments:
            pixmap = bytes_to_qpixmap(segment.data)
            label = QLabel()
            label.setPixmap(pixmap.scaledToWidth(
                int(pixmap.width() * _PREVIEW_SCALE), Qt.TransformationMode.SmoothTransformation,
            ))
            self._preview_layout.addWidget(label)
            self._preview_labels.append(label)

    # --- Export ---

    def _require_result(self) -> bool:
        if self._result is None:
            QMessageBox.information(self, "Nothing to Export", "Open an image first.")
            return False
        return True

    def _save_segments(self):
        if not self._require_result():
            return
        folder = QFileDialog.getExistingDirectory(self, "Save Segments To")
        if not folder:
            return
        try:
            written = write_split(self._result, Path(folder), stem=f"{self._image_name}-split")
        except OSError as exc:
            QMessageBox.critical(self, "Error", f"Failed to save segments:\n{exc}")
            return
        self.status_message.emit(f"Saved {len(written)} segment(s) to {folder}")

    def _save_zip(self):
        if not self._require_result():
            return
        path, _ = QFileDialog.getSaveFileName(self, "Save ZIP", ZIP_FILENAME, "ZIP archive (*.zip)")
        if not path:
            return
        try:
            out_path = save_zip(self._result, Path(path))
        except OSError as exc:
            QMessageBox.critical(self, "Error", f"Failed to save archive:\n{exc}")
            return
        self.status_message.emit(f"Saved {out_path}")


# =============================================================================
# Merge tab
# =============================================================================

class MergeTab(QWidget):
    status_message = pyqtSignal(str)

    def __init__(self, settings: dict, parent=None):
        super().__init__(parent)
        self._images: dict[int, Image.Image] = {}
        self._next_id = 0
        self._threads: set[TaskThread] = set()
        self._tracker = RequestTracker()
        self._result = None
        self._solid_color = settings["solid_color"]

        self._render_timer = QTimer(self)
        self._render_timer.setSingleShot(True)
        self._render_timer.setInterval(RENDER_DEBOUNCE_MS)
        self._render_timer.timeout.connect(self._start_render)

        self._build_ui(settings)

    def _build_ui(self, settings: dict):
        layout = QHBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)
        splitter = QSplitter(Qt.Orientation.Horizontal)
        layout.addWidget(splitter)

        left = QWidget()
        left_layout = QVBoxLayout(left)
        left_layout.setContentsMargins(0, 0, 0, 0)

        images_group = QGroupBox("Images (drag to reorder)")
        images_layout = QVBoxLayout(images_group)
        self._image_list = QListWidget()
        self._image_list.setDragDropMode(QAbstractItemView.DragDropMode.InternalMove)
        self._image_list.model().rowsMoved.connect(self._schedule_render)
        images_layout.addWidget(self._image_list)

        btn_row = QHBoxLayout()
        btn_add = QPushButton("➕ Add…")
        btn_add.clicked.connect(self._add_images)
        btn_row.addWidget(btn_add)
        btn_remove = QPushButton("Remove")
        btn_remove.clicked.connect(self._remove_selected)
        btn_row.addWidget(btn_remove)
        btn_clear = QPushButton("Clear")
        btn_clear.clicked.connect(self._clear_images)
        btn_row.addWidget(btn_clear)
        images_layout.addLayout(btn_row)
        left_layout.addWidget(images_group)

        gap_group = QGroupBox("Gap Fill")
        gap_layout = QVBoxLayout(gap_group)
        self._gap_fill = QComboBox()
        self._gap_fill.addItems(GAP_FILL_TYPES)
        self._gap_fill.setCurrentText(settings["gap_fill"])
        self._gap_fill.currentTextChanged.connect(self._on_gap_fill_changed)
        gap_layout.addWidget(self._gap_fill)

        size_row = QHBoxLayout()
        size_row.addWidget(QLabel("Size:"))
        self._gap_size = QSpinBox()
        self._gap_size.setRange(0, MAX_MERGE_GAP)
        self._gap_size.setValue(settings["gap_size"])
        self._gap_size.setSuffix(" px")
        self._gap_size.valueChanged.connect(self._schedule_render)
        size_row.addWidget(self._gap_size)
        gap_layout.addLayout(size_row)
        self._gap_size_widgets = _row_widgets(size_row)

        color_row = QHBoxLayout()
        color_row.addWidget(QLabel("Colour:"))
        self._btn_color = QPushButton(self._solid_color)
        self._btn_color.clicked.connect(self._pick_color)
        color_row.addWidget(self._btn_color)
        gap_layout.addLayout(color_row)
        self._color_widgets = _row_widgets(color_row)
        left_layout.addWidget(gap_group)

        self._btn_save = QPushButton("💾 Save Merged Image…")
        self._btn_save.clicked.connect(self._save_merged)
        left_layout.addWidget(self._btn_save)
        left_layout.addStretch()
        splitter.addWidget(left)

        preview = QWidget()
        preview_layout = QVBoxLayout(preview)
        preview_layout.setContentsMargins(0, 0, 0, 0)
        self._merge_info_label = QLabel("Add at least one image to merge.")
        preview_layout.addWidget(self._merge_info_label)
        self._preview_label = QLabel()
        self._preview_label.setAlignment(Qt.AlignmentFlag.AlignTop | Qt.AlignmentFlag.AlignHCenter)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self._preview_label)
        preview_layout.addWidget(scroll, stretch=1)
        splitter.addWidget(preview)
        splitter.setSizes([300, 800])

        self._update_gap_widgets()

    def settings(self) -> dict:
        return {
            "gap_fill": self._gap_fill.currentText(),
            "gap_size": self._gap_size.value(),
            "solid_color": self._solid_color,
        }

    # --- Image list ---

    def _add_images(self):
        paths, _ = QFileDialog.getOpenFileNames(self, "Add Images", "", _IMAGE_FILTER)
        failed = []
        for p in paths:
            path = Path(p)
            try:
                img = open_image(path)
            except (OSError, ValueError) as exc:
                failed.append(f"• {path.name}: {exc}")
                continue
            image_id = self._next_id
            self._next_id += 1
            self._images[image_id] = img
            item = QListWidgetItem(f"{path.name}  ({img.width}×{img.height})")
            item.setData(Qt.ItemDataRole.UserRole, image_id)
            self._image_list.addItem(item)
        if failed:
            QMessageBox.warning(self, "Some images failed", "\n".join(failed))
        self._schedule_render()

    def _remove_selected(self):
        for item in self._image_list.selectedItems():
            self._images.pop(item.data(Qt.ItemDataRole.UserRole), None)
            self._image_list.takeItem(self._image_list.row(item))
        self._schedule_render()

    def _clear_images(self):
        self._image_list.clear()
        self._images.clear()
        self._schedule_render()

    def _ordered_images(self) -> list[Image.Image]:
        return [
            self._images[self._image_list.item(i).data(Qt.ItemDataRole.UserRole)]
            for i in range(self._image_list.count())
        ]

    # --- Gap options ---

    def _on_gap_fill_changed(self, *args):
        self._update_gap_widgets()
        self._schedule_render()

    def _update_gap_widgets(self):
        fill = self._gap_fill.currentText()
        for w in self._gap_size_widgets:
            w.setVisible(fill != "none")
        for w in self._color_widgets:
            w.setVisible(fill == "solid")

    def _pick_color(self):
        color = QColorDialog.getColor(QColor(self._solid_color), self, "Gap Colour")
        if not color.isValid():
            return
        self._solid_color = color.name()
        self._btn_color.setText(self._solid_color)
        self._schedule_render()

    # --- Rendering ---

    def _schedule_render(self, *args):
        self._render_timer.start()

    def _start_render(self):
        images = self._ordered_images()
        if not images:
            # Supersede anything in flight
            self._tracker.issue()
            self._result = None
            self._preview_label.clear()
            self._merge_info_label.setText("Add at least one image to merge.")
            return
        args = {
            "token": self._tracker.issue(),
            "images": images,
            "gap_fill": self._gap_fill.currentText(),
            "gap_size": self._gap_size.value(),
            "solid_color": self._solid_color,
        }
        thread = TaskThread(render_merge, args, parent=self)
        thread.finished.connect(self._on_render_done)
        thread.finished.connect(lambda _result, t=thread: self._threads.discard(t))
        thread.error.connect(self._on_render_error)
        thread.error.connect(lambda _error, t=thread: self._threads.discard(t))
        self._threads.add(thread)
        thread.start()

    def _on_render_error(self, error: str):
        self.status_message.emit(f"Merge failed: {error}")

    def _on_render_done(self, outcome: dict):
        if not self._tracker.is_current(outcome["token"]):
            logger.debug("Discarding stale merge render %d (latest %d)", outcome["token"], self._tracker.latest)
            return
        if not outcome["success"]:
            self.status_message.emit(f"Merge failed: {outcome['error']}")
            return
        self._result = outcome["result"]
        pixmap = bytes_to_qpixmap(self._result.blob)
        self._preview_label.setPixmap(pixmap.scaledToWidth(
            min(pixmap.width(), 600), Qt.TransformationMode.SmoothTransformation,
        ))
        self._merge_info_label.setText(f"Result: {self._result.width}×{self._result.height}")

    # --- Export ---

    def _save_merged(self):
        if self._result is None:
            QMessageBox.information(self, "Nothing to Export", "Add at least one image first.")
            return
        path, _ = QFileDialog.getSaveFileName(self, "Save Merged Image", MERGE_FILENAME, "PNG image (*.png)")
        if not path:
            return
        try:
            out_path = write_merge(self._result, Path(path))
        except OSError as exc:
            QMessageBox.critical(self, "Error", f"Failed to save merged image:\n{exc}")
            return
        self.status_message.emit(f"Saved {out_path}")


# =============================================================================
# Main window
# =============================================================================

class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Grid Split Tool")
        self.setMinimumSize(900, 500)

        # Screen-aware startup size, clamped to 80% of screen
        preferred_w, preferred_h = 1600, 1000
        screen = QApplication.primaryScreen()
        if screen is not None:
            avail = screen.availableGeometry()
            preferred_w = min(preferred_w, int(avail.width() * 0.8))
            preferred_h = min(preferred_h, int(avail.height() * 0.8))
        self.resize(preferred_w, preferred_h)

        settings = load_settings()

        self._tabs = QTabWidget()
        self._split_tab = SplitTab(settings)
        self._merge_tab = MergeTab(settings["merge"])
        self._tabs.addTab(self._split_tab, "✂ Split")
        self._tabs.addTab(self._merge_tab, "🧩 Merge")
        self.setCentralWidget(self._tabs)

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._split_tab.status_message.connect(self._status.showMessage)
        self._merge_tab.status_message.connect(self._status.showMessage)
        self._status.showMessage("Open an image to split, or switch to Merge.")

        QShortcut(QKeySequence(QKeySequence.StandardKey.Open), self, self._split_tab._select_image)
        QShortcut(QKeySequence(Qt.Key.Key_R), self, self._split_tab._reset_crop)

    def closeEvent(self, event):
        """Persist the last-used options before closing."""
        settings = self._split_tab.settings()
        settings["merge"] = self._merge_tab.settings()
        try:
            save_settings(settings)
        except (ValueError, OSError) as exc:
            logger.error("Could not save settings: %s", exc)
        super().closeEvent(event)
