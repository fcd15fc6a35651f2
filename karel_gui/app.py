"""GUI application entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from PySide6 import QtWidgets

from karel.utils.config_loader import get_config, load_config
from karel_gui.view.main_window import MainWindow


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Karel the Robot")
    parser.add_argument("--world", default=None, help="Initial world name or path")
    parser.add_argument("--config", default=None, help="Path to config YAML")
    parser.add_argument("--program", default=None, help="Karel source file to open")
    parser.add_argument("--tick-ms", type=int, default=None, help="Heartbeat interval (ms)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at INFO level")
    return parser.parse_args(argv)


def run_gui(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    config = load_config(args.config) if args.config else get_config()
    program = Path(args.program).read_text(encoding="utf-8") if args.program else None

    app = QtWidgets.QApplication(sys.argv)
    window = MainWindow(
        initial_world=args.world,
        program=program,
        tick_ms=args.tick_ms,
        config=config,
    )
    window.resize(config.canvas.width * 2 + 100, config.canvas.height + 160)
    window.show()
    return app.exec()


def main() -> None:
    raise SystemExit(run_gui())


if __name__ == "__main__":
    main()
