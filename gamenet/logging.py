"""
Project logger.

Library modules log through ``logging.getLogger(__name__)``, i.e. children of
the ``"gamenet"`` logger. ``GameNetLogger`` configures that parent once per
run: a console handler at the configured level and, when ``log_to_file`` is
set, a ``training.log`` file that also receives DEBUG records such as the
training loop's per-interval progress lines.
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Any, Dict, Optional

from gamenet.errors import InvalidConfiguration

LOGGER_NAME = "gamenet"
LOG_FILE = "training.log"


def resolve_level(level: Any) -> int:
    """Map ``"debug"``/``"INFO"``/``logging.WARNING``-style values to a level number."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise InvalidConfiguration(f"Unknown log level: {level!r}")
    return value


class GameNetLogger:
    def __init__(self, config: Any = None, rank: int = 0) -> None:
        self.config = config
        self.rank = rank
        self.enabled = rank == 0

        self.console_level = resolve_level(getattr(config, "log_level", logging.INFO))
        self.log_to_file = bool(getattr(config, "log_to_file", False))
        self.log_path: Optional[str] = None

        self._logger = logging.getLogger(LOGGER_NAME)
        self._logger.propagate = False
        self._file_handler: Optional[logging.Handler] = None

        # Handlers of a previous run are released, not only detached.
        self._close_handlers()

        if not self.enabled:
            self._logger.setLevel(logging.CRITICAL + 1)
            return

        # The logger itself passes DEBUG through when a file wants it; each
        # handler filters to its own level.
        self._logger.setLevel(min(self.console_level, logging.DEBUG) if self.log_to_file else self.console_level)

        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        console = logging.StreamHandler(sys.stdout)
        console.setLevel(self.console_level)
        console.setFormatter(formatter)
        self._logger.addHandler(console)

        if not self.log_to_file:
            return

        log_dir = getattr(config, "log_dir", "logs")
        os.makedirs(log_dir, exist_ok=True)
        self.log_path = os.path.join(log_dir, LOG_FILE)
        file_handler = logging.FileHandler(self.log_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        self._logger.addHandler(file_handler)
        self._file_handler = file_handler

    def _close_handlers(self) -> None:
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
            handler.close()

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        if self.enabled:
            self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        if self.enabled:
            self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        if self.enabled:
            self._logger.error(msg, *args, **kwargs)

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        if self.enabled:
            self._logger.debug(msg, *args, **kwargs)

    def log_metrics(self, metrics: Dict[str, float], step: int, prefix: str = "") -> None:
        """One ``<prefix><key>=<value> step=<step>`` line per metric."""
        if not self.enabled:
            return
        for key, value in metrics.items():
            self._logger.info("%s%s=%s step=%s", prefix, key, value, step)

    def close(self) -> None:
        """Release every handler; library records stop being emitted by this logger."""
        self._close_handlers()
        self._file_handler = None
