"""
Qt side of the crop editor.

Holds the PIL/QPixmap conversions, the two ``QThread`` helpers used to keep
decoding and rendering off the UI thread, and ``ImageCropWidget``, which
feeds mouse and keyboard input into a ``CropControls`` instance and paints
the resulting crop over the source image.
"""

from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QRectF, QPointF, pyqtSignal, QThread
from PyQt6.QtGui import (
    QPainter, QPainterPath, QPixmap, QColor, QPen, QImage,
    QKeyEvent, QMouseEvent, QPaintEvent, QResizeEvent, QWheelEvent,
)

from grid_split_tool.config import HANDLE_SIZE, NUDGE_LARGE, NUDGE_SMALL, WHEEL_ZOOM_STEP
from grid_split_tool.crop_state import CropControls
from grid_split_tool.image_io import open_image
from grid_split_tool.models import TargetDimensions, gap_bands


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Copy a PIL image into a QPixmap (via RGBA)."""
    img_rgba = pil_img.convert("RGBA")
    data = img_rgba.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgba.width, img_rgba.height, 4 * img_rgba.width, QImage.Format.Format_RGBA8888)
    # QImage does not own *data*; copy before it goes out of scope
    return QPixmap.fromImage(qimg.copy())


def bytes_to_qpixmap(data: bytes) -> QPixmap:
    """Load a QPixmap from encoded image bytes (e.g. a rendered PNG)."""
    pixmap = QPixmap()
    pixmap.loadFromData(data)
    return pixmap


# =============================================================================
# Background threads
# =============================================================================

class ImageLoaderThread(QThread):
    """Decode an image file (PSD composites can take seconds) off the UI thread."""
    finished = pyqtSignal(object)
    error = pyqtSignal(str)

    def __init__(self, path: Path, parent=None):
        super().__init__(parent)
        self._path = path

    def run(self):
        try:
            self.finished.emit(open_image(self._path))
        except Exception as e:
            self.error.emit(str(e))


class TaskThread(QThread):
    """Run ``fn(*args)`` off the UI thread and emit its return value."""
    finished = pyqtSignal(object)
    error = pyqtSignal(str)

    def __init__(self, fn, *args, parent=None):
        super().__init__(parent)
        self._fn = fn
        self._args = args

    def run(self):
        try:
            self.finished.emit(self._fn(*self._args))
        except Exception as e:
            self.error.emit(str(e))


# =============================================================================
# Image Crop Widget: pan/zoom crop overlay on image
# =============================================================================

class ImageCropWidget(QWidget):
    """Widget that displays an image with a pannable, zoomable crop overlay.

    The crop itself lives in a CropControls instance owned by the caller;
    the widget only translates input events into pan/zoom calls and paints
    the result, shading the bands that will be dropped as grid gaps.
    """

    crop_changed = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setMinimumSize(400, 300)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self._pixmap: QPixmap | None = None
        self._img_w = 0
        self._img_h = 0
        self._controls: CropControls | None = None
        self._target: TargetDimensions | None = None

        # Display mapping
        self._scale = 1.0
        self._offset_x = 0.0
        self._offset_y = 0.0

        # Interaction state
        self._dragging = False
        self._drag_last = QPointF()
        self._loading = False

    def set_loading(self, loading: bool):
        """Toggle the placeholder text shown while a source is decoding."""
        self._loading = loading
        self.update()

    def set_image(self, pixmap: QPixmap, img_w: int, img_h: int):
        """Show *pixmap*; *img_w*/*img_h* are the full-resolution source size."""
        self._loading = False
        self._pixmap = pixmap
        self._img_w = img_w
        self._img_h = img_h
        self._update_display_mapping()
        self.update()

    def set_controls(self, controls: CropControls, target: TargetDimensions | None):
        """Attach the crop controller and the virtual canvas it crops to."""
        self._controls = controls
        self._target = target
        self.update()

    def has_image(self) -> bool:
        """True once a source pixmap has been set."""
        return self._pixmap is not None

    def clear(self):
        self._pixmap = None
        self._img_w = 0
        self._img_h = 0
        self.update()

    def _crop(self):
        if self._controls is None:
            return None
        return self._controls.crop

    # --- Coordinate mapping ---

    def _update_display_mapping(self):
        """Letterbox the image inside the widget (uniform scale, centered)."""
        if not self._pixmap or not (self._img_w and self._img_h):
            return
        self._scale = min(self.width() / self._img_w, self.height() / self._img_h)
        self._offset_x = (self.width() - self._img_w * self._scale) / 2
        self._offset_y = (self.height() - self._img_h * self._scale) / 2

    def _norm_to_display(self, nx: float, ny: float) -> QPointF:
        return QPointF(
            nx * self._img_w * self._scale + self._offset_x,
            ny * self._img_h * self._scale + self._offset_y,
        )

    def _crop_display_rect(self) -> QRectF | None:
        crop = self._crop()
        if crop is None:
            return None
        tl = self._norm_to_display(crop.x, crop.y)
        br = self._norm_to_display(crop.x + crop.width, crop.y + crop.height)
        return QRectF(tl, br)

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(5, 5, 8))

        if not self._pixmap:
            painter.setPen(QColor(128, 128, 128))
            msg = "Loading image…" if self._loading else "Open an image to split"
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, msg)
            painter.end()
            return

        # Draw image
        tl = self._norm_to_display(0, 0)
        br = self._norm_to_display(1, 1)
        dest = QRectF(tl, br)
        painter.drawPixmap(dest.toRect(), self._pixmap)

        crop_rect = self._crop_display_rect()
        if crop_rect is None:
            painter.end()
            return

        # Dim everything outside the crop
        outside = QPainterPath()
        outside.addRect(dest)
        window = QPainterPath()
        window.addRect(crop_rect)
        painter.fillPath(outside.subtracted(window), QColor(0, 0, 0, 150))

        # Gap bands (discarded when splitting)
        if self._target is not None:
            band_fill = QColor(255, 60, 60, 70)
            band_pen = QPen(QColor(255, 90, 90, 200), 1, Qt.PenStyle.DashLine)
            painter.setPen(band_pen)
            for top, bottom in gap_bands(self._target):
                y0 = crop_rect.top() + top * crop_rect.height()
                y1 = crop_rect.top() + bottom * crop_rect.height()
                band = QRectF(crop_rect.left(), y0, crop_rect.width(), max(1.0, y1 - y0))
                painter.fillRect(band, band_fill)
                painter.drawRect(band)

        # Draw crop border
        painter.setPen(QPen(QColor(255, 255, 255), 2))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(crop_rect)

        # Corner marks
        hs = HANDLE_SIZE
        painter.setPen(QPen(QColor(29, 155, 240), 3))
        for cx, cy, sx, sy in (
            (crop_rect.left(), crop_rect.top(), 1, 1),
            (crop_rect.right(), crop_rect.top(), -1, 1),
            (crop_rect.left(), crop_rect.bottom(), 1, -1),
            (crop_rect.right(), crop_rect.bottom(), -1, -1),
        ):
            painter.drawLine(QPointF(cx, cy), QPointF(cx + sx * hs, cy))
            painter.drawLine(QPointF(cx, cy), QPointF(cx, cy + sy * hs))

        # Zoom label
        painter.setPen(QColor(255, 255, 255))
        label = f"{self._controls.zoom:.2f}×"
        painter.drawText(
            crop_rect.adjusted(0, -20, 0, 0).toRect(),
            Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop,
            label,
        )

        painter.end()

    def resizeEvent(self, event: QResizeEvent):
        self._update_display_mapping()
        super().resizeEvent(event)

    # --- Mouse interaction ---

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or not self._pixmap:
            return
        crop_rect = self._crop_display_rect()
        if crop_rect is not None and crop_rect.contains(event.position()):
            self._dragging = True
            self._drag_last = event.position()
            self.setCursor(Qt.CursorShape.ClosedHandCursor)

    def mouseMoveEvent(self, event: QMouseEvent):
        if not self._pixmap or self._controls is None:
            return

        pos = event.position()
        if not self._dragging:
            crop_rect = self._crop_display_rect()
            if crop_rect is not None and crop_rect.contains(pos):
                self.setCursor(Qt.CursorShape.OpenHandCursor)
            else:
                self.setCursor(Qt.CursorShape.ArrowCursor)
            return

        shown_w = self._img_w * self._scale
        shown_h = self._img_h * self._scale
        if not (shown_w and shown_h):
            return
        delta = pos - self._drag_last
        self._drag_last = pos
        # Screen pixels to fractions of the source
        self._controls.pan(delta.x() / shown_w, delta.y() / shown_h)
        self.crop_changed.emit()
        self.update()

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton and self._dragging:
            self._dragging = False
            self.setCursor(Qt.CursorShape.OpenHandCursor)

    def wheelEvent(self, event: QWheelEvent):
        if not self._pixmap or self._controls is None:
            return
        notches = event.angleDelta().y() / 120
        if notches == 0:
            return
        self._controls.zoom_by(notches * WHEEL_ZOOM_STEP)
        self.crop_changed.emit()
        self.update()
        event.accept()

    # --- Keyboard nudge ---

    def keyPressEvent(self, event: QKeyEvent):
        if not self._pixmap or self._controls is None:
            return
        amount = NUDGE_LARGE if event.modifiers() & Qt.KeyboardModifier.ShiftModifier else NUDGE_SMALL
        key = event.key()
        if key == Qt.Key.Key_Left:
            self._controls.pan(-amount, 0.0)
        elif key == Qt.Key.Key_Right:
            self._controls.pan(amount, 0.0)
        elif key == Qt.Key.Key_Up:
            self._controls.pan(0.0, -amount)
        elif key == Qt.Key.Key_Down:
            self._controls.pan(0.0, amount)
        elif key == Qt.Key.Key_Plus or key == Qt.Key.Key_Equal:
            self._controls.zoom_by(WHEEL_ZOOM_STEP)
        elif key == Qt.Key.Key_Minus:
            self._controls.zoom_by(-WHEEL_ZOOM_STEP)
        else:
            super().keyPressEvent(event)
            return
        self.crop_changed.emit()
        self.update()
