"""
GUI Components Module

PyQt6 widgets for the multi-stream dashboard: a grid of video tiles and
a toolbar with the sync toggle and master selector.
"""

from typing import Optional, List, Sequence
from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QGridLayout, QPushButton,
    QLabel, QComboBox, QSizePolicy, QFrame
)
from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QImage, QPixmap, QPainter, QColor
import numpy as np

MASTER_BORDER = "rgba(34, 197, 94, 0.85)"
FOLLOWER_BORDER = "rgba(148, 163, 184, 0.35)"
DEFAULT_COLUMNS = 3


class NotificationOverlay(QLabel):
    """Overlay widget for showing action notifications."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.setStyleSheet("""
            background-color: rgba(0, 0, 0, 180);
            color: white;
            font-size: 18px;
            font-weight: bold;
            padding: 10px 20px;
            border-radius: 8px;
        """)
        self.hide()
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self.hide)

    def show_notification(self, text: str, duration_ms: int = 1000) -> None:
        """Show a notification that hides after duration."""
        self.setText(text)
        self.adjustSize()
        if self.parent():
            parent_rect = self.parent().rect()
            margin = 10
            self.move(parent_rect.width() - self.width() - margin, margin)
        self.show()
        self.raise_()
        self._timer.start(duration_ms)


class VideoWidget(QWidget):
    """
    Widget for displaying video frames.

    Renders numpy RGB arrays, letterboxed to keep the aspect ratio.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setMinimumSize(280, 158)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self._current_image: Optional[QImage] = None
        self._aspect_ratio = 16 / 9

    def display_frame(self, frame: np.ndarray):
        """Display a numpy RGB frame."""
        if frame is None:
            return

        height, width, channels = frame.shape
        frame = np.ascontiguousarray(frame)

        self._current_image = QImage(
            frame.data,
            width,
            height,
            channels * width,
            QImage.Format.Format_RGB888
        ).copy()  # Copy to detach from the numpy buffer

        self._aspect_ratio = width / height
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(0, 0, 0))

        if self._current_image:
            widget_ratio = self.width() / max(1, self.height())

            if widget_ratio > self._aspect_ratio:
                target_height = self.height()
                target_width = int(target_height * self._aspect_ratio)
            else:
                target_width = self.width()
                target_height = int(target_width / self._aspect_ratio)

            x = (self.width() - target_width) // 2
            y = (self.height() - target_height) // 2

            scaled_pixmap = QPixmap.fromImage(self._current_image).scaled(
                target_width, target_height,
                Qt.AspectRatioMode.KeepAspectRatio,
                Qt.TransformationMode.SmoothTransformation
            )
            painter.drawPixmap(x, y, scaled_pixmap)

        painter.end()

    def clear(self):
        """Clear the display."""
        self._current_image = None
        self.update()


class StreamTile(QFrame):
    """One stream: header with name, master badge and id, video, offset line."""

    clicked = pyqtSignal(int)  # tile index

    def __init__(self, index: int, name: str, stream_id, parent=None):
        super().__init__(parent)
        self.index = index
        self.name = name
        self._is_master = False
        self._setup_ui(stream_id)
        self.set_master(False)

    def _setup_ui(self, stream_id):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(6)

        header = QHBoxLayout()
        self._name_label = QLabel(self.name)
        self._name_label.setStyleSheet("color: #e5e7eb; font-size: 13px; font-weight: 500;")
        header.addWidget(self._name_label)

        self._badge = QLabel("MASTER")
        self._badge.setStyleSheet(
            "color: #bbf7d0; font-size: 10px; padding: 1px 7px;"
            f"border: 1px solid {MASTER_BORDER}; border-radius: 8px;"
            "background: rgba(22, 101, 52, 0.25);"
        )
        header.addWidget(self._badge)
        header.addStretch()

        id_text = f"{stream_id:02d}" if isinstance(stream_id, int) else str(stream_id)
        self._id_label = QLabel(f"ID: {id_text}")
        self._id_label.setStyleSheet("color: #9ca3af; font-size: 11px;")
        header.addWidget(self._id_label)
        layout.addLayout(header)

        self.video_widget = VideoWidget()
        layout.addWidget(self.video_widget, stretch=1)

        self._status_label = QLabel("")
        self._status_label.setStyleSheet("color: #9ca3af; font-family: monospace; font-size: 11px;")
        layout.addWidget(self._status_label)

    @property
    def is_master(self) -> bool:
        return self._is_master

    def set_master(self, is_master: bool):
        self._is_master = is_master
        self._badge.setVisible(is_master)
        border = MASTER_BORDER if is_master else FOLLOWER_BORDER
        self.setStyleSheet(
            f"StreamTile {{ background-color: #111827; border: 1px solid {border}; border-radius: 12px; }}"
        )

    def set_status(self, text: str):
        self._status_label.setText(text)

    def show_offset(self, offset: Optional[float], rate: float):
        """Show the follower's offset from master and its current rate."""
        if self._is_master:
            self._status_label.setText("reference")
        elif offset is None:
            self._status_label.setText("buffering")
        else:
            self._status_label.setText(f"Δ{offset * 1000:+.0f} ms  x{rate:.2f}")

    def mouseDoubleClickEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.clicked.emit(self.index)
        super().mouseDoubleClickEvent(event)


class SyncToolbar(QWidget):
    """Sync pill, master selector and stream summary."""

    sync_toggled = pyqtSignal()
    master_selected = pyqtSignal(int)

    def __init__(self, stream_names: Sequence[str], source_label: str = "", parent=None):
        super().__init__(parent)
        self._setup_ui(stream_names, source_label)

    def _setup_ui(self, stream_names: Sequence[str], source_label: str):
        layout = QHBoxLayout(self)
        layout.setContentsMargins(10, 6, 10, 6)
        layout.setSpacing(12)

        title = QLabel("Multi-Stream Video Dashboard")
        title.setStyleSheet("color: white; font-size: 18px; font-weight: bold;")
        layout.addWidget(title)
        layout.addStretch()

        self._sync_indicator = QLabel("SYNC")
        layout.addWidget(self._sync_indicator)

        self._sync_button = QPushButton("Disable")
        self._sync_button.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self._sync_button.clicked.connect(self.sync_toggled)
        layout.addWidget(self._sync_button)

        master_label = QLabel("Master:")
        master_label.setStyleSheet("color: #9ca3af;")
        layout.addWidget(master_label)

        self._master_combo = QComboBox()
        self._master_combo.addItems(list(stream_names))
        self._master_combo.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self._master_combo.currentIndexChanged.connect(self.master_selected)
        layout.addWidget(self._master_combo)

        summary = QLabel(f"Streams {len(stream_names):02d}   Source {source_label}")
        summary.setStyleSheet("color: #9ca3af; font-size: 11px;")
        layout.addWidget(summary)

        self.set_sync_enabled(True)

    def set_sync_enabled(self, enabled: bool):
        self._sync_button.setText("Disable" if enabled else "Enable")
        color = "#22c55e" if enabled else "#9ca3af"
        self._sync_indicator.setStyleSheet(f"color: {color}; font-weight: bold; letter-spacing: 2px;")

    def set_master(self, index: int):
        self._master_combo.blockSignals(True)
        self._master_combo.setCurrentIndex(index)
        self._master_combo.blockSignals(False)


class DashboardWidget(QWidget):
    """Toolbar above a grid of stream tiles."""

    def __init__(
        self,
        stream_names: Sequence[str],
        stream_ids: Sequence,
        source_label: str = "",
        columns: int = DEFAULT_COLUMNS,
        parent=None,
    ):
        super().__init__(parent)
        self.tiles: List[StreamTile] = []
        self._setup_ui(stream_names, stream_ids, source_label, columns)

    def _setup_ui(self, stream_names, stream_ids, source_label, columns):
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(12, 12, 12, 12)
        main_layout.setSpacing(10)

        self.toolbar = SyncToolbar(stream_names, source_label)
        main_layout.addWidget(self.toolbar)

        grid_area = QWidget()
        grid = QGridLayout(grid_area)
        grid.setContentsMargins(0, 0, 0, 0)
        grid.setSpacing(14)
        for i, (name, stream_id) in enumerate(zip(stream_names, stream_ids)):
            tile = StreamTile(i, name, stream_id)
            self.tiles.append(tile)
            grid.addWidget(tile, i // columns, i % columns)
        main_layout.addWidget(grid_area, stretch=1)

        self._notification = NotificationOverlay(self)

    def set_master(self, index: int):
        for tile in self.tiles:
            tile.set_master(tile.index == index)
        self.toolbar.set_master(index)

    def set_sync_enabled(self, enabled: bool):
        self.toolbar.set_sync_enabled(enabled)

    def show_notification(self, text: str, duration_ms: int = 800):
        self._notification.show_notification(text, duration_ms)
