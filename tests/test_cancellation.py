import asyncio

import pytest

from src.core.cancellation import CancellationToken
from src.core.errors import OperationCancelled


class TestCancellationToken:
    @pytest.mark.asyncio
    async def test_sleep_completes(self):
        token = CancellationToken()
        await token.sleep(0.01)
        assert token.cancelled is False

    @pytest.mark.asyncio
    async def test_zero_sleep_only_checks(self):
        token = CancellationToken()
        await token.sleep(0)
        token.cancel()
        with pytest.raises(OperationCancelled):
            await token.sleep(0)

    @pytest.mark.asyncio
    async def test_cancel_interrupts_sleep(self):
        token = CancellationToken()

        async def _cancel_soon():
            await asyncio.sleep(0.01)
            token.cancel()

        canceller = asyncio.create_task(_cancel_soon())
        loop = asyncio.get_running_loop()
        started = loop.time()
        with pytest.raises(OperationCancelled):
            await token.sleep(30)
        await canceller

        assert loop.time() - started < 5
