"""Services layer - Business logic

Services are constructed once in the application lifespan with their
dependencies and reached through FastAPI dependency injection.
"""

from .channel_service import ChannelService
from .command_service import CommandService, RenderedCommand
from .discord_api import DiscordAPIClient
from .oauth_client import OAuthClient, TokenPair, TokenStatus
from .oauth_flow import FlowResult, FlowState, OAuthFlowController
from .state_store import StateStore
from .token_sweep import SweepReport, TokenSweeper, TokenSweepScheduler
from .twitch_api import TwitchAPIClient

__all__ = [
    "ChannelService",
    "CommandService",
    "DiscordAPIClient",
    "FlowResult",
    "FlowState",
    "OAuthClient",
    "OAuthFlowController",
    "RenderedCommand",
    "StateStore",
    "SweepReport",
    "TokenPair",
    "TokenStatus",
    "TokenSweepScheduler",
    "TokenSweeper",
    "TwitchAPIClient",
]
