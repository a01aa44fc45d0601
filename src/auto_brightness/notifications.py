from __future__ import annotations

import logging
from typing import Protocol

from rich.console import Console
from rich.markup import escape


logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def warn(self, message: str) -> None: ...


class LogNotifier:
    def warn(self, message: str) -> None:
        logger.warning(message)


class ConsoleNotifier:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)

    def warn(self, message: str) -> None:
        logger.debug(f"Notifying user: {message}")
        self.console.print(f"[yellow]⚠ {escape(message)}[/]")
