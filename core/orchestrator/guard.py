"""Single-permit guard rejecting overlapping processing runs."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from core.utils.errors import ProcessingInProgressError


class ProcessingGuard:
    """Fast-fail guard owned by one engine instance; never queues."""

    def __init__(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    @contextmanager
    def hold(self) -> Iterator[None]:
        if self._active:
            raise ProcessingInProgressError()
        self._active = True
        try:
            yield
        finally:
            self._active = False
