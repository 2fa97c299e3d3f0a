"""
Cooperative cancellation signal shared by a scan and its caller.
"""

import threading


class CancellationToken:
    """
    Write-once flag: once cancelled it stays cancelled.

    Backed by a threading.Event so the caller may cancel from any thread
    (e.g. a UI callback) while the scan reads it from the event loop.
    Work already in flight is allowed to finish; the scan only stops
    scheduling new work once it observes the flag.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled})"
