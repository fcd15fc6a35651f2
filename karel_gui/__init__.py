"""PySide6 desktop front-end for the Karel simulator."""


def run_gui(argv=None) -> int:
    from karel_gui.app import run_gui as _run_gui

    return _run_gui(argv)


__all__ = ["run_gui"]
