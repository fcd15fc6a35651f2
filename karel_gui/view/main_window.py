"""Main GUI window."""

from __future__ import annotations

from typing import Callable

from PySide6 import QtCore, QtGui, QtWidgets

from karel.core.clock import Clock
from karel_gui.controller import ControllerState, KarelController
from karel_gui.view.status_bar import StatusBar
from karel_gui.view.top_bar import TopBar
from karel_gui.view.world_canvas import CanvasRenderer, WorldCanvas

DEFAULT_PROGRAM = """\
function main() {
    while (frontIsClear()) {
        move();
    }
    turnLeft();
}
"""

_STATUS_INTERVAL_MS = 500


class EditorSource:
    """SourceProvider reading the editor's current text."""

    def __init__(self, editor: QtWidgets.QPlainTextEdit):
        self._editor = editor

    def get_source(self) -> str:
        return self._editor.toPlainText()


class _MainThreadDispatcher(QtCore.QObject):
    """Runs callables posted from worker threads on the GUI thread."""

    posted = QtCore.Signal(object)

    def __init__(self, parent: QtCore.QObject | None = None):
        super().__init__(parent)
        self.posted.connect(self._run, QtCore.Qt.QueuedConnection)

    def __call__(self, fn: Callable[[], None]) -> None:
        self.posted.emit(fn)

    @QtCore.Slot(object)
    def _run(self, fn: Callable[[], None]) -> None:
        fn()


class MainWindow(QtWidgets.QMainWindow):
    def __init__(
        self,
        initial_world: str | None = None,
        program: str | None = None,
        tick_ms: int | None = None,
        config=None,
    ):
        super().__init__()
        self.setWindowTitle("Karel the Robot")

        self._editor = QtWidgets.QPlainTextEdit()
        self._editor.setFont(QtGui.QFontDatabase.systemFont(QtGui.QFontDatabase.FixedFont))
        self._editor.setPlainText(program if program is not None else DEFAULT_PROGRAM)

        self._dispatcher = _MainThreadDispatcher(self)
        self._canvas = WorldCanvas()
        self._controller = KarelController(
            EditorSource(self._editor),
            renderer=CanvasRenderer(self._canvas),
            config=config,
            initial_world=initial_world,
            dispatch=self._dispatcher,
        )
        canvas_cfg = self._controller.config.canvas
        self._canvas.setMinimumSize(canvas_cfg.width, canvas_cfg.height)

        self._top_bar = TopBar(
            self._controller.world_names(), self._controller.ide.world_name
        )
        self._top_bar.world_selected.connect(self._controller.change_world)
        self._status_bar = StatusBar()

        central = QtWidgets.QWidget()
        self.setCentralWidget(central)

        splitter = QtWidgets.QSplitter()
        splitter.addWidget(self._editor)
        splitter.addWidget(self._canvas)
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 1)

        layout = QtWidgets.QVBoxLayout(central)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._top_bar)
        layout.addWidget(splitter, 1)
        layout.addWidget(self._build_buttons())
        layout.addWidget(self._status_bar)

        interval = tick_ms or self._controller.config.timing.heartbeat_ms
        self._clock = Clock(interval)
        self._clock.subscribe(self._controller)

        self._timer = QtCore.QTimer(self)
        self._timer.setTimerType(QtCore.Qt.PreciseTimer)
        self._timer.timeout.connect(self._tick)
        self._timer.start(interval)

        self._status_timer = QtCore.QTimer(self)
        self._status_timer.timeout.connect(self._sample_status)
        self._status_timer.start(_STATUS_INTERVAL_MS)

        self._refresh_labels()

    @property
    def controller(self) -> KarelController:
        return self._controller

    def _build_buttons(self) -> QtWidgets.QWidget:
        c = self._controller
        buttons = [
            ("Run", c.play),
            ("Stop", c.stop),
            ("Resume", c.resume),
            ("Step", c.single_step),
            ("Move", lambda: c.manual("move")),
            ("Turn Left", lambda: c.manual("turnLeft")),
            ("Turn Right", lambda: c.manual("turnRight")),
            ("Put Beeper", lambda: c.manual("putBeeper")),
            ("Pick Beeper", lambda: c.manual("pickBeeper")),
        ]

        bar = QtWidgets.QFrame()
        layout = QtWidgets.QHBoxLayout(bar)
        layout.setContentsMargins(12, 6, 12, 6)
        for label, command in buttons:
            button = QtWidgets.QPushButton(label)
            button.clicked.connect(lambda _checked=False, cmd=command: self._run_command(cmd))
            layout.addWidget(button)
        layout.addStretch(1)
        return bar

    def _run_command(self, command: Callable[[], None]) -> None:
        command()
        self._refresh_labels()

    def _tick(self) -> None:
        self._clock.tick(1)
        if self._controller.state is ControllerState.RUNNING or self._clock.beat_count % 25 == 0:
            self._refresh_labels()

    def _refresh_labels(self) -> None:
        self._top_bar.set_state(self._controller.state)
        self._status_bar.update_run(self._controller.message, self._controller.ide.steps)

    def _sample_status(self) -> None:
        self._status_bar.update_status(self._controller.status())
