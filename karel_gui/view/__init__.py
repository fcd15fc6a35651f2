from karel_gui.view.main_window import MainWindow
from karel_gui.view.status_bar import StatusBar
from karel_gui.view.top_bar import TopBar
from karel_gui.view.world_canvas import CanvasRenderer, WorldCanvas

__all__ = [
    "CanvasRenderer",
    "MainWindow",
    "StatusBar",
    "TopBar",
    "WorldCanvas",
]
