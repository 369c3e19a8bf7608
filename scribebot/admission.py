"""Concurrency gate for upload processing."""

from __future__ import annotations

import enum
import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from .errors import AdmissionRejectedError

logger = logging.getLogger(__name__)

MAX_CONCURRENT = 5


class Admission(enum.Enum):
    ADMITTED = "admitted"
    REJECTED = "rejected"


class AdmissionController:
    """Counts in-flight requests and rejects anything above the ceiling.

    Rejection is immediate: there is no queue and no waiting.  Every admitted
    request must call :meth:`leave` exactly once; :meth:`slot` does that for
    you.
    """

    def __init__(self, max_concurrent: int = MAX_CONCURRENT):
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")
        self.max_concurrent = max_concurrent
        self._in_flight = 0
        self._lock = threading.Lock()

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    def try_enter(self) -> Admission:
        with self._lock:
            if self._in_flight >= self.max_concurrent:
                return Admission.REJECTED
            self._in_flight += 1
            return Admission.ADMITTED

    def leave(self) -> None:
        with self._lock:
            if self._in_flight == 0:
                # Unbalanced leave(); keep the counter sane.
                logger.error("leave() called with no request in flight")
                return
            self._in_flight -= 1

    @contextmanager
    def slot(self) -> Iterator[None]:
        """Hold one admission for the duration of the ``with`` block.

        Raises:
            AdmissionRejectedError: If the ceiling is already reached.  In
                that case nothing is counted and nothing is released.
        """
        if self.try_enter() is Admission.REJECTED:
            logger.info("Rejecting request: %d already in flight", self.max_concurrent)
            raise AdmissionRejectedError(self.max_concurrent)
        try:
            yield
        finally:
            self.leave()
