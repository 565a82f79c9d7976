"""Console + debug-file logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

_FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

console = Console()


def setup_logging(debug_log_path: Path, *, verbose: bool = False) -> None:
    """Send INFO (or DEBUG) to the console and everything to the debug log."""
    root = logging.getLogger("clpmig")
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(console=console, show_path=False, markup=False)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.addHandler(console_handler)

    debug_log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(debug_log_path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
    root.addHandler(file_handler)


class _SiteAdapter(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        return f"[{self.extra['site']}] {msg}", kwargs


def site_logger(logger: logging.Logger, domain: str) -> logging.LoggerAdapter:
    """Logger that prefixes every message with the site's domain."""
    return _SiteAdapter(logger, {"site": domain})
