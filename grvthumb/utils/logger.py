from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Logger:
    emit: Callable[[str], None]
    prefix: str = ""

    def info(self, msg: str) -> None:
        self.emit(self.prefix + msg)

    def error(self, msg: str) -> None:
        self.emit(self.prefix + "error: " + msg)


def _discard(msg: str) -> None:
    return None


NULL_LOGGER = Logger(_discard)


def stderr_logger(prefix: str = "grvthumb: ") -> Logger:
    return Logger(lambda m: print(m, file=sys.stderr), prefix=prefix)
