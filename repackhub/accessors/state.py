"""
Per-collection error/loading state machine.

    IDLE --begin--> LOADING --finish--> IDLE
                            +--fail---> ERROR --clear_error / begin--> ...

Operations may overlap, so loading is tracked as an in-flight count.
"""

from __future__ import annotations

from enum import Enum

from repackhub.errors import ErrorKind, RepackHubError


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


class OperationState:
    def __init__(self) -> None:
        self._in_flight = 0
        self.error: str | None = None
        self.error_kind: ErrorKind | None = None

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def status(self) -> LoadState:
        if self._in_flight:
            return LoadState.LOADING
        if self.error is not None:
            return LoadState.ERROR
        return LoadState.IDLE

    def begin(self) -> None:
        self._in_flight += 1
        self.clear_error()

    def finish(self) -> None:
        self._in_flight = max(0, self._in_flight - 1)

    def fail(self, error: RepackHubError) -> None:
        self.error = error.message
        self.error_kind = error.kind

    def clear_error(self) -> None:
        self.error = None
        self.error_kind = None

    def reset(self) -> None:
        self._in_flight = 0
        self.clear_error()
