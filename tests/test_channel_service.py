import pytest

from api.core.errors import ErrorKind, ServiceError


@pytest.mark.asyncio
async def test_get_channel(channel_service, channels):
    channels.add("100", "streamer")

    channel = await channel_service.get_channel("100")

    assert channel.username == "streamer"


@pytest.mark.asyncio
async def test_get_unknown_channel(channel_service):
    with pytest.raises(ServiceError) as exc_info:
        await channel_service.get_channel("404", force=True)
    assert exc_info.value.kind is ErrorKind.NOT_FOUND
    assert exc_info.value.message == "This Twitch channel isn't registered with us."


@pytest.mark.asyncio
async def test_disabled_channel_needs_force(channel_service, channels):
    channels.add("100", "streamer", enabled=False)

    with pytest.raises(ServiceError) as exc_info:
        await channel_service.get_channel("100")
    assert exc_info.value.kind is ErrorKind.DISABLED

    assert (await channel_service.get_channel("100", force=True)).enabled is False


@pytest.mark.asyncio
async def test_verify_channel(channel_service, channels):
    channels.add("1", enabled=True)
    channels.add("2", enabled=False)

    assert await channel_service.verify_channel("1") is True
    assert await channel_service.verify_channel("2") is False
    with pytest.raises(ServiceError):
        await channel_service.verify_channel("3")


@pytest.mark.asyncio
async def test_search_pages_and_filters(channel_service, channels):
    for i in range(12):
        channels.add(str(i), f"user{i:02d}")
    channels.add("99", "user_hidden", enabled=False)
    channels.add("98", "someone")

    first = await channel_service.search_channels("user", 1)
    second = await channel_service.search_channels("user", 2)
    forced = await channel_service.search_channels("hidden", 1, force=True)

    assert len(first) == 10
    assert [c.username for c in second] == ["user10", "user11"]
    assert [c.external_id for c in forced] == ["99"]


@pytest.mark.asyncio
async def test_search_rejects_page_zero(channel_service):
    with pytest.raises(ServiceError) as exc_info:
        await channel_service.search_channels("", 0)
    assert exc_info.value.kind is ErrorKind.INVALID_REQUEST


@pytest.mark.asyncio
async def test_toggle_channel(channel_service, channels):
    channels.add("100", "streamer")

    assert (await channel_service.toggle_channel("100")).enabled is False
    assert (await channel_service.toggle_channel("100")).enabled is True
    assert (await channel_service.toggle_channel("100", True)).enabled is True


@pytest.mark.asyncio
async def test_toggle_unknown_channel(channel_service):
    with pytest.raises(ServiceError) as exc_info:
        await channel_service.toggle_channel("404", False)
    assert exc_info.value.kind is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_delete_channel(channel_service, channels):
    channels.add("100", "streamer")

    deleted = await channel_service.delete_channel("100")

    assert deleted.external_id == "100"
    assert channels.accounts == {}
    with pytest.raises(ServiceError) as exc_info:
        await channel_service.delete_channel("100")
    assert exc_info.value.kind is ErrorKind.NOT_FOUND
