"""World canvas: paints the grid, walls, beepers and Karel."""

from __future__ import annotations

from PySide6 import QtCore, QtGui, QtWidgets

from karel.core.world import Direction, WorldDescription

_MARGIN = 10

# Triangle pointing east, in unit cell coordinates; rotated per direction.
_ROBOT_SHAPE = [(0.2, 0.2), (0.8, 0.5), (0.2, 0.8)]
_ROTATION = {
    Direction.EAST: 0,
    Direction.NORTH: -90,
    Direction.WEST: 180,
    Direction.SOUTH: 90,
}


class WorldCanvas(QtWidgets.QWidget):

    def __init__(self, width: int = 370, height: int = 370, parent: QtWidgets.QWidget | None = None):
        super().__init__(parent)
        self._snapshot: WorldDescription | None = None
        self.setMinimumSize(width, height)
        self.setSizePolicy(QtWidgets.QSizePolicy.Expanding, QtWidgets.QSizePolicy.Expanding)

    def set_snapshot(self, snapshot: WorldDescription) -> None:
        self._snapshot = snapshot
        self.update()

    def paintEvent(self, event: QtGui.QPaintEvent) -> None:  # type: ignore[override]
        painter = QtGui.QPainter(self)
        painter.setRenderHint(QtGui.QPainter.Antialiasing)
        painter.fillRect(self.rect(), QtGui.QColor("#fafafa"))

        desc = self._snapshot
        if desc is None:
            painter.drawText(self.rect(), QtCore.Qt.AlignCenter, "Loading world...")
            painter.end()
            return

        cell = min(
            (self.width() - 2 * _MARGIN) / desc.width,
            (self.height() - 2 * _MARGIN) / desc.height,
        )
        origin = QtCore.QPointF(
            (self.width() - cell * desc.width) / 2,
            (self.height() - cell * desc.height) / 2,
        )

        self._paint_grid(painter, desc, cell, origin)
        self._paint_beepers(painter, desc, cell, origin)
        self._paint_walls(painter, desc, cell, origin)
        self._paint_robot(painter, desc, cell, origin)
        painter.end()

    # Private helpers --------------------------------------------------------

    def _cell_rect(
        self, desc: WorldDescription, x: int, y: int, cell: float, origin: QtCore.QPointF
    ) -> QtCore.QRectF:
        # North is up on screen, so row 0 is drawn at the bottom.
        return QtCore.QRectF(
            origin.x() + x * cell,
            origin.y() + (desc.height - 1 - y) * cell,
            cell,
            cell,
        )

    def _paint_grid(self, painter, desc, cell, origin) -> None:
        painter.setPen(QtGui.QPen(QtGui.QColor("#cccccc"), 1))
        for x in range(desc.width):
            for y in range(desc.height):
                center = self._cell_rect(desc, x, y, cell, origin).center()
                painter.drawLine(
                    QtCore.QPointF(center.x() - cell * 0.1, center.y()),
                    QtCore.QPointF(center.x() + cell * 0.1, center.y()),
                )
                painter.drawLine(
                    QtCore.QPointF(center.x(), center.y() - cell * 0.1),
                    QtCore.QPointF(center.x(), center.y() + cell * 0.1),
                )

        painter.setPen(QtGui.QPen(QtGui.QColor("#333333"), 2))
        painter.drawRect(QtCore.QRectF(origin.x(), origin.y(), cell * desc.width, cell * desc.height))

    def _paint_beepers(self, painter, desc, cell, origin) -> None:
        painter.setPen(QtGui.QPen(QtGui.QColor("#555555"), 1))
        for (x, y), count in desc.beepers.items():
            rect = self._cell_rect(desc, x, y, cell, origin)
            c = rect.center()
            r = cell * 0.35
            diamond = QtGui.QPolygonF(
                [
                    QtCore.QPointF(c.x(), c.y() - r),
                    QtCore.QPointF(c.x() + r, c.y()),
                    QtCore.QPointF(c.x(), c.y() + r),
                    QtCore.QPointF(c.x() - r, c.y()),
                ]
            )
            painter.setBrush(QtGui.QColor("#9e9e9e"))
            painter.drawPolygon(diamond)
            if count > 1:
                painter.drawText(rect, QtCore.Qt.AlignCenter, str(count))

    def _paint_walls(self, painter, desc, cell, origin) -> None:
        painter.setPen(QtGui.QPen(QtGui.QColor("#000000"), 3))
        for (x, y), direction in desc.walls:
            rect = self._cell_rect(desc, x, y, cell, origin)
            if direction is Direction.NORTH:
                painter.drawLine(rect.topLeft(), rect.topRight())
            elif direction is Direction.SOUTH:
                painter.drawLine(rect.bottomLeft(), rect.bottomRight())
            elif direction is Direction.EAST:
                painter.drawLine(rect.topRight(), rect.bottomRight())
            else:
                painter.drawLine(rect.topLeft(), rect.bottomLeft())

    def _paint_robot(self, painter, desc, cell, origin) -> None:
        robot = desc.robot
        rect = self._cell_rect(desc, robot.x, robot.y, cell, origin)
        transform = QtGui.QTransform()
        transform.translate(rect.center().x(), rect.center().y())
        transform.rotate(_ROTATION[robot.direction])
        transform.translate(-cell / 2, -cell / 2)
        shape = QtGui.QPolygonF([QtCore.QPointF(px * cell, py * cell) for px, py in _ROBOT_SHAPE])

        painter.setPen(QtGui.QPen(QtGui.QColor("#0d47a1"), 2))
        painter.setBrush(QtGui.QColor("#42a5f5"))
        painter.drawPolygon(transform.map(shape))


class CanvasRenderer:
    """WorldRenderer that forwards snapshots to a WorldCanvas."""

    def __init__(self, canvas: WorldCanvas):
        self._canvas = canvas

    def render(self, snapshot: WorldDescription) -> None:
        self._canvas.set_snapshot(snapshot)
