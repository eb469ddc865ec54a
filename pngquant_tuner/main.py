import argparse
import os
import sys
from pathlib import Path

from PySide6.QtWidgets import QApplication

from pngquant_tuner.app.session import EditingSession
from pngquant_tuner.logger import get_logger
from pngquant_tuner.settings_manager import SettingsManager, default_settings_path
from pngquant_tuner.ui.main_window import MainWindow

# --- CLI logging options -----------------------------------------------------
# To prevent Qt from exiting due to unknown options, we preemptively parse
# our own options, reflect them in environment variables (PNGQUANT_TUNER_LOG_LEVEL,
# PNGQUANT_TUNER_LOG_CATS), and remove them from sys.argv.


def _apply_cli_logging_options(argv: list[str]) -> list[str]:
    parser = argparse.ArgumentParser(description="pngquant tuner", add_help=False)
    parser.add_argument("--log-level", help="Set log level")
    parser.add_argument("--log-cats", help="Set log categories")
    args, remaining = parser.parse_known_args(argv[1:])
    if args.log_level:
        os.environ["PNGQUANT_TUNER_LOG_LEVEL"] = args.log_level
    if args.log_cats:
        os.environ["PNGQUANT_TUNER_LOG_CATS"] = args.log_cats
    return [argv[0], *remaining]


def _parse_app_options(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("start_path", nargs="?", help="PNG file to open")
    parser.add_argument("--pngquant", help="Path to the pngquant executable")
    parser.add_argument("--settings", help="Settings file (JSON)")
    args, _ = parser.parse_known_args(argv[1:])
    return args


def run(argv: list[str] | None = None) -> int:
    """Application entrypoint (packaging-friendly)."""
    if argv is None:
        argv = sys.argv
    argv = _apply_cli_logging_options(list(argv))
    logger = get_logger("main")
    args = _parse_app_options(argv)

    settings = SettingsManager(args.settings or default_settings_path())
    if args.pngquant:
        # Remembered for later runs.
        settings.set("pngquant_path", args.pngquant)

    app = QApplication(argv)
    session = EditingSession(settings)
    window = MainWindow(session)
    window.show()
    logger.debug("scratch dir: %s", session.store.scratch_dir)

    if args.start_path:
        start = Path(args.start_path)
        if start.is_file():
            session.select_file(start)
        else:
            logger.warning("start path is not a file: %s", start)

    return app.exec()


if __name__ == "__main__":
    sys.exit(run())
