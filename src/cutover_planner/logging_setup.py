from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler


class _ConsoleNoiseFilter(logging.Filter):
    """Keep our own records; let third-party loggers through only at WARNING+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("cutover_planner"):
            return True
        if record.name == "py.warnings":
            return record.levelno >= logging.ERROR
        return record.levelno >= logging.WARNING


def setup_logging(
    *,
    log_dir: str | Path = ".local/cutover",
    console_level: int | str = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Console: rich-formatted, filtered. File: everything, for debugging.

    Call this ONCE, early (CLI entry or API launcher).
    """
    if isinstance(console_level, str):
        console_level = getattr(logging, console_level.upper(), logging.INFO)

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    ch = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    ch.setLevel(console_level)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_dir / "cutover.log"), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(fh)

    logging.captureWarnings(True)

    for noisy in ("httpx", "httpcore", "openai", "google_genai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
