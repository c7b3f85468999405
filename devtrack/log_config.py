"""Console logging setup. Call setup_logging() once at startup."""

import logging

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


def setup_logging(level: int = logging.INFO) -> None:
    """Configure the root logger with a console handler.

    Safe to call multiple times: a second call only adjusts the level.
    """
    root = logging.getLogger()
    root.setLevel(level)

    existing = [h for h in root.handlers if getattr(h, "_devtrack_console", False)]
    if existing:
        for handler in existing:
            handler.setLevel(level)
        return

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    console._devtrack_console = True  # type: ignore[attr-defined]
    root.addHandler(console)

    # Suppress noisy third-party loggers
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
