import pytest

from shared.models.account import Platform

from api.core.config import Settings
from api.services.channel_service import ChannelService
from api.services.command_service import CommandService
from api.services.state_store import StateStore

from fakes import API_URL, FakeAccountRepository, FakeCommandRepository, FakeStateRepository


@pytest.fixture
def settings() -> Settings:
    return Settings(
        twitch_client_id="tw-id",
        twitch_client_secret="tw-secret",
        api_key="test-key",
        database_url="postgresql://localhost/r0_test",
        api_url=API_URL,
        environment="production",
        log_level="WARNING",
        enable_token_sweep=False,
    )


@pytest.fixture
def state_repo() -> FakeStateRepository:
    return FakeStateRepository()


@pytest.fixture
def state_store(state_repo: FakeStateRepository) -> StateStore:
    return StateStore(state_repo)  # type: ignore[arg-type]


@pytest.fixture
def channels() -> FakeAccountRepository:
    return FakeAccountRepository(Platform.TWITCH)


@pytest.fixture
def guilds() -> FakeAccountRepository:
    return FakeAccountRepository(Platform.DISCORD)


@pytest.fixture
def command_repo() -> FakeCommandRepository:
    return FakeCommandRepository()


@pytest.fixture
def channel_service(channels: FakeAccountRepository) -> ChannelService:
    return ChannelService(channels)  # type: ignore[arg-type]


@pytest.fixture
def command_service(
    command_repo: FakeCommandRepository, channel_service: ChannelService
) -> CommandService:
    return CommandService(command_repo, channel_service)  # type: ignore[arg-type]
