"""Top bar with world selector and scheduler state."""

from __future__ import annotations

from PySide6 import QtCore, QtWidgets

from karel_gui.controller import ControllerState

_STATE_LABELS = {
    ControllerState.LOADING: "Loading",
    ControllerState.IDLE: "Idle",
    ControllerState.RUNNING: "Running",
    ControllerState.FAULTED: "Faulted",
}


class TopBar(QtWidgets.QFrame):
    world_selected = QtCore.Signal(str)

    def __init__(self, worlds: list[str], current: str, parent: QtWidgets.QWidget | None = None):
        super().__init__(parent)
        self.setFrameShape(QtWidgets.QFrame.NoFrame)

        self._world_combo = QtWidgets.QComboBox()
        self._world_combo.addItems(worlds)
        if current in worlds:
            self._world_combo.setCurrentText(current)
        self._world_combo.textActivated.connect(self.world_selected)
        self._state_label = QtWidgets.QLabel(_STATE_LABELS[ControllerState.LOADING])

        layout = QtWidgets.QHBoxLayout(self)
        layout.setContentsMargins(12, 6, 12, 6)
        layout.addWidget(QtWidgets.QLabel("World:"))
        layout.addWidget(self._world_combo)
        layout.addStretch(1)
        layout.addWidget(self._state_label)

    def set_state(self, state: ControllerState) -> None:
        self._state_label.setText(_STATE_LABELS[state])
