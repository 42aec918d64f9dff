from unittest.mock import AsyncMock

import pytest

from api.app import close_all


@pytest.mark.asyncio
async def test_close_all_continues_after_a_failure():
    twitch_close = AsyncMock(side_effect=RuntimeError("connection reset"))
    discord_close = AsyncMock()
    disconnect = AsyncMock()

    await close_all(
        [
            ("Twitch client", twitch_close),
            ("Discord client", discord_close),
            ("Database", disconnect),
        ]
    )

    twitch_close.assert_awaited_once()
    discord_close.assert_awaited_once()
    disconnect.assert_awaited_once()
