"""Process-wide logging setup.

Modules log through ``logging.getLogger(__name__)``; this module only wires
handlers once at startup. Console output goes through Rich, and a daily log
file is written to the configured logs directory.
"""

import logging
from datetime import date
from pathlib import Path

from rich.logging import RichHandler

from gooji.config import LoggingConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_HANDLER_MARK = "_gooji_handler"


def configure_logging(config: LoggingConfig, logs_dir: Path | None = None) -> None:
    """Install console and file handlers on the root logger.

    Calling this again replaces the handlers it installed before, so the
    API lifespan and the CLI can both call it safely.

    Args:
        config: Logging section of the settings.
        logs_dir: Directory for the daily log file; no file handler if None
            or if ``config.to_file`` is false.
    """
    level = logging.DEBUG if config.debug else logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root.removeHandler(handler)
            handler.close()

    console = RichHandler(rich_tracebacks=True, show_path=config.debug)
    console.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    setattr(console, _HANDLER_MARK, True)
    root.addHandler(console)

    if config.to_file and logs_dir is not None:
        logs_dir = Path(logs_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)
        log_file = logs_dir / f"gooji_{date.today().isoformat()}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        setattr(file_handler, _HANDLER_MARK, True)
        root.addHandler(file_handler)

    root.setLevel(level)
