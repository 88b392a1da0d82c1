"""
StreamSync - Multi-Stream Playback Dashboard

Plays several streams side by side and keeps them aligned to one
master stream. Features: sync toggle, master selection, live offsets,
optional bundled HLS server and a headless drift simulation.
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional

from PyQt6.QtWidgets import QApplication, QMainWindow
from PyQt6.QtCore import Qt, QCoreApplication, QTimer
from PyQt6.QtGui import QKeyEvent, QPalette, QColor

from .config import AppConfig, config_from_dict, load_config
from .controller import SyncController, SyncSession, TickReport
from .errors import ConfigError
from .gui import DashboardWidget, DEFAULT_COLUMNS
from .hls_server import serve_in_thread
from .log import setup_logging
from .player import PlayerStreamHandle, StreamPlayer
from .registry import PRESETS, StreamRegistry
from .simulation import DriftSimulator, format_report

logger = logging.getLogger(__name__)

APP_NAME = "StreamSync"

# argparse dest -> AppConfig field
_CLI_OVERRIDES = (
    "tick_interval_ms", "master_index", "preset", "streams_file",
    "serve_root", "serve_port", "log_level", "log_file",
)


class Dashboard:
    """
    Main dashboard controller.

    Wires one StreamPlayer per registry entry to its tile, builds the
    sync session over the players' handles, and routes toolbar and
    keyboard actions to the SyncController.
    """

    def __init__(self, widget: DashboardWidget, registry: StreamRegistry, config: AppConfig):
        self.widget = widget
        self.registry = registry

        self.handles = registry.build_handles(
            lambda index, spec: PlayerStreamHandle(index, StreamPlayer(spec))
        )
        self.players: List[StreamPlayer] = [handle.player for handle in self.handles]

        self.session = SyncSession(
            self.handles,
            master_index=config.master_index,
            enabled=config.sync_enabled,
            tick_interval_ms=config.tick_interval_ms,
            params=config.params,
        )
        self.controller = SyncController(self.session)

        self._setup_connections()

    def _setup_connections(self):
        """Connect signals and slots."""
        for player, tile in zip(self.players, self.widget.tiles):
            player.frame_ready.connect(tile.video_widget.display_frame)
            player.status_changed.connect(tile.set_status)
            tile.clicked.connect(self.set_master)

        self.widget.toolbar.sync_toggled.connect(self.toggle_sync)
        self.widget.toolbar.master_selected.connect(self.set_master)

        self.controller.enabled_changed.connect(self.widget.set_sync_enabled)
        self.controller.master_changed.connect(self.widget.set_master)
        self.controller.tick_finished.connect(self._on_tick)

    def start(self):
        """Open every stream and start synchronizing."""
        self.widget.set_master(self.controller.master_index)
        self.widget.set_sync_enabled(self.controller.enabled)
        for player in self.players:
            player.open()
            player.play()
        self.controller.start()

    def stop(self):
        """Stop syncing first so no tick touches a player being torn down."""
        self.controller.stop()
        for player in self.players:
            player.stop()

    def toggle_sync(self):
        enabled = self.controller.toggle_enabled()
        self.widget.show_notification("Sync: On" if enabled else "Sync: Off", 600)
        if not enabled:
            for tile in self.widget.tiles:
                tile.set_status("")

    def set_master(self, index: int):
        if self.controller.set_master_index(index):
            self.widget.show_notification(f"Master: {self.registry[index].name}", 600)

    def _on_tick(self, report: TickReport):
        offsets = report.offsets()
        for i, tile in enumerate(self.widget.tiles):
            if i == report.master_index:
                tile.show_offset(None, 1.0)
            elif report.master_ready:
                tile.show_offset(offsets.get(i), self.handles[i].rate)


class MainWindow(QMainWindow):
    """Main application window with keyboard controls."""

    def __init__(self, registry: StreamRegistry, config: AppConfig, columns: int = DEFAULT_COLUMNS):
        super().__init__()
        self.setWindowTitle(APP_NAME)
        self.setMinimumSize(960, 600)
        self.resize(1440, 860)
        self.setStyleSheet("""
            QMainWindow {
                background-color: #020617;
            }
            QPushButton {
                background-color: #0f172a;
                color: #e5e7eb;
                border: none;
                padding: 4px 12px;
                border-radius: 10px;
            }
            QPushButton:hover {
                background-color: #1e293b;
            }
            QComboBox {
                background-color: #0f172a;
                color: #e5e7eb;
                padding: 2px 8px;
            }
        """)

        self.dashboard_widget = DashboardWidget(
            registry.names(),
            [spec.id for spec in registry],
            registry.label,
            columns=columns,
        )
        self.setCentralWidget(self.dashboard_widget)

        self.dashboard = Dashboard(self.dashboard_widget, registry, config)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    def keyPressEvent(self, event: QKeyEvent):
        """Handle keyboard input."""
        key = event.key()

        if key == Qt.Key.Key_S:
            self.dashboard.toggle_sync()
        elif Qt.Key.Key_1.value <= key <= Qt.Key.Key_9.value:
            self.dashboard.set_master(key - Qt.Key.Key_1.value)
        elif key in (Qt.Key.Key_Escape, Qt.Key.Key_Q):
            self.close()
        else:
            super().keyPressEvent(event)

    def closeEvent(self, event):
        """Handle window close."""
        self.dashboard.stop()
        event.accept()


def _dark_palette() -> QPalette:
    palette = QPalette()
    palette.setColor(QPalette.ColorRole.Window, QColor(2, 6, 23))
    palette.setColor(QPalette.ColorRole.WindowText, QColor(229, 231, 235))
    palette.setColor(QPalette.ColorRole.Base, QColor(15, 23, 42))
    palette.setColor(QPalette.ColorRole.AlternateBase, QColor(17, 24, 39))
    palette.setColor(QPalette.ColorRole.Text, QColor(229, 231, 235))
    palette.setColor(QPalette.ColorRole.Button, QColor(15, 23, 42))
    palette.setColor(QPalette.ColorRole.ButtonText, QColor(229, 231, 235))
    palette.setColor(QPalette.ColorRole.Highlight, QColor(34, 197, 94))
    palette.setColor(QPalette.ColorRole.HighlightedText, QColor(0, 0, 0))
    return palette


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="streamsync",
        description="Play several streams side by side, kept in sync with a master stream.",
    )
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--streams", dest="streams_file", help="JSON stream registry file")
    parser.add_argument("--preset", choices=sorted(PRESETS), help="built-in stream list (default: local)")
    parser.add_argument("--interval", dest="tick_interval_ms", type=int, help="sync tick interval in ms")
    parser.add_argument("--master", dest="master_index", type=int, help="initial master stream index")
    parser.add_argument("--no-sync", action="store_true", help="start with sync disabled")
    parser.add_argument("--serve", action="store_true", help="also run the HLS static server")
    parser.add_argument("--serve-root", dest="serve_root", help="folder served by --serve")
    parser.add_argument("--serve-port", dest="serve_port", type=int, help="port used by --serve")
    parser.add_argument("--columns", type=int, default=DEFAULT_COLUMNS, help="tiles per row")
    parser.add_argument("--simulate", action="store_true", help="run headless with simulated drifting clocks")
    parser.add_argument("--duration", type=float, default=0.0, help="stop a simulation after N seconds")
    parser.add_argument("--seed", type=int, help="random seed for --simulate")
    parser.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING, ...")
    parser.add_argument("--log-file", dest="log_file", help="also log to this file")
    return parser


def resolve_config(args: argparse.Namespace) -> AppConfig:
    """Defaults, then the --config file, then command-line flags."""
    base = load_config(args.config) if args.config else AppConfig()
    overrides = {
        name: getattr(args, name) for name in _CLI_OVERRIDES
        if getattr(args, name, None) is not None
    }
    if args.no_sync:
        overrides["sync_enabled"] = False
    if args.serve:
        overrides["serve"] = True
    return config_from_dict(overrides, base)


def build_registry(config: AppConfig) -> StreamRegistry:
    if config.streams_file:
        return StreamRegistry.from_json(config.streams_file)
    return StreamRegistry.from_preset(config.preset)


def run_simulation(
    config: AppConfig,
    registry: StreamRegistry,
    duration: float = 0.0,
    seed: Optional[int] = None,
) -> int:
    """Run the controller headless against drifting simulated clocks."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    simulator = DriftSimulator(registry.specs, seed=seed)
    session = SyncSession(
        simulator.handles,
        master_index=config.master_index,
        enabled=config.sync_enabled,
        tick_interval_ms=config.tick_interval_ms,
        params=config.params,
    )
    controller = SyncController(session)
    names = registry.names()
    controller.tick_finished.connect(lambda report: logger.info(format_report(report, names)))

    perturb_timer = QTimer()
    perturb_timer.setInterval(config.tick_interval_ms)
    perturb_timer.timeout.connect(simulator.perturb)

    if duration > 0:
        QTimer.singleShot(int(duration * 1000), app.quit)
    signal.signal(signal.SIGINT, lambda *_: app.quit())

    logger.info("Simulating %d streams (seed=%s)", len(registry), seed)
    try:
        with controller:
            perturb_timer.start()
            app.exec()
    finally:
        perturb_timer.stop()
        simulator.stop()
    return 0


def run_gui(config: AppConfig, registry: StreamRegistry, columns: int = DEFAULT_COLUMNS) -> int:
    app = QApplication(sys.argv[:1])
    app.setApplicationName(APP_NAME)
    app.setStyle("Fusion")
    app.setPalette(_dark_palette())

    window = MainWindow(registry, config, columns)
    window.show()
    window.dashboard.start()

    # Let Ctrl+C in the terminal close the window
    signal.signal(signal.SIGINT, lambda *_: window.close())
    return app.exec()


def main(argv=None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)
    try:
        config = resolve_config(args)
        registry = build_registry(config)
    except ConfigError as e:
        print(f"streamsync: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_level, config.log_file)
    logger.info("Streams: %s (%s)", ", ".join(registry.names()), registry.label)

    server = None
    if config.serve:
        server, _ = serve_in_thread(config.serve_root, port=config.serve_port)

    try:
        if args.simulate:
            return run_simulation(config, registry, args.duration, args.seed)
        return run_gui(config, registry, args.columns)
    finally:
        if server is not None:
            server.shutdown()
            server.server_close()


if __name__ == "__main__":
    sys.exit(main())
