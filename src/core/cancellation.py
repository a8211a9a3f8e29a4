"""
Cancellation token for the pipeline's suspension points.

The extraction client's poll waits and the dispatcher's inter-request delay
both sleep through ``CancellationToken.sleep`` so application shutdown can
interrupt them instead of waiting out the full delay.
"""

from __future__ import annotations

import asyncio

from src.core.errors import OperationCancelled


class CancellationToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("Operation cancelled")

    async def sleep(self, seconds: float) -> None:
        """
        Wait *seconds*, returning early with OperationCancelled on cancel.

        Args:
            seconds: Delay; zero or negative only checks the token.

        Raises:
            OperationCancelled: If the token is (or becomes) cancelled.
        """
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise OperationCancelled("Operation cancelled")
