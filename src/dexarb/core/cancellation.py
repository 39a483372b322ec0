"""
Cooperative cancellation for analysis passes.

A token is cancelled by the scheduler when newer market data arrives and
committed by the dispatcher right before the first irreversible trade.
Once committed, cancellation requests are refused.
"""

import threading

from dexarb.core.errors import PassCancelled


class CancellationToken:
    """
    Cancel/commit flag shared between the scheduler and one pass.

    Guarded by a lock because Build and Search run in worker threads.
    """

    __slots__ = ("_lock", "_cancelled", "_committed")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._committed = False

    def cancel(self) -> bool:
        """
        Request cancellation.

        Returns:
            True if the pass will observe the cancellation, False if it
            already committed to trading.
        """
        with self._lock:
            if self._committed:
                return False
            self._cancelled = True
            return True

    def commit(self) -> bool:
        """
        Mark the point of no return.

        Returns:
            True if committed, False if the token was cancelled first.
        """
        with self._lock:
            if self._cancelled:
                return False
            self._committed = True
            return True

    def raise_if_cancelled(self) -> None:
        """Checkpoint: raise PassCancelled if cancellation was requested."""
        if self.cancelled:
            raise PassCancelled()

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    @property
    def committed(self) -> bool:
        with self._lock:
            return self._committed
