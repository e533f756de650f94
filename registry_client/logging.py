"""Simple console logging utilities."""

from __future__ import annotations

import logging
from typing import Any


class SimpleLogger:
    """Very small wrapper around :mod:`logging` used across the package."""

    def __init__(self, name: str = "registry_client") -> None:
        self._logger = logging.getLogger(name)
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "%(asctime)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)
        self.configure()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    def configure(self, level: int | str = logging.INFO) -> None:
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.INFO
        self._logger.setLevel(level)

    @property
    def level(self) -> int:
        return self._logger.level

    # ------------------------------------------------------------------
    # Basic logging methods
    # ------------------------------------------------------------------
    def debug(self, msg: str, source: str | None = None, payload: Any | None = None, **_: Any) -> None:
        self._logger.debug(self._format(msg, source, payload))

    def info(self, msg: str, source: str | None = None, payload: Any | None = None, **_: Any) -> None:
        self._logger.info(self._format(msg, source, payload))

    def warning(self, msg: str, source: str | None = None, payload: Any | None = None, **_: Any) -> None:
        self._logger.warning(self._format(msg, source, payload))

    def error(self, msg: str, source: str | None = None, payload: Any | None = None, **_: Any) -> None:
        self._logger.error(self._format(msg, source, payload))

    def success(self, msg: str, source: str | None = None, payload: Any | None = None, **_: Any) -> None:
        self._logger.info(self._format(msg, source, payload))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _format(self, msg: str, source: str | None, payload: Any | None = None) -> str:
        base = f"[{source}] {msg}" if source else msg
        if payload is not None:
            base = f"{base} {payload}"
        return base


# Public API ---------------------------------------------------------------
log = SimpleLogger()


def configure_console_log(level: int | str = logging.INFO) -> None:
    """Configure the console logger."""
    log.configure(level)


__all__ = ["log", "configure_console_log", "SimpleLogger"]
