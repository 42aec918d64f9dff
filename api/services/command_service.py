"""Command service: templated chat commands and their variable counters.

Every operation takes ``force``. Without it the owning channel must be
enabled and disabled commands are hidden; with it both checks are skipped.
A channel that is not registered is always NOT_FOUND.
"""

import logging
import re
from dataclasses import dataclass

from shared.models.command import VARIABLE_MAX, VARIABLE_MIN, Command, Variable
from shared.repositories.command import CommandRepository, VariableOutOfRangeError

from api.core.errors import ErrorKind, ServiceError
from api.services.channel_service import ChannelService
from api.services.variables import diff_variables, extract_variables, format_content, unique_names

logger = logging.getLogger(__name__)

PAGE_SIZE = 10

KEYWORD_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]{1,14}$")

COMMAND_NOT_FOUND = "Command not found."
COMMAND_DISABLED = "Command is disabled."
VARIABLE_NOT_FOUND = "Variable not found."
VALUE_OUT_OF_RANGE = "Variable value is out of range."


@dataclass
class RenderedCommand:
    """A command with its variables substituted, as served to clients."""

    channel_id: str
    keyword: str
    content: str
    enabled: bool

    @classmethod
    def from_command(cls, command: Command) -> "RenderedCommand":
        return cls(
            channel_id=command.channel_id,
            keyword=command.keyword,
            content=format_content(command.content, command.variable_values()),
            enabled=command.enabled,
        )


def validate_keyword(keyword: str) -> str:
    if not KEYWORD_RE.match(keyword):
        raise ServiceError(ErrorKind.INVALID_REQUEST, "Invalid keyword.")
    return keyword


def _check_range(value: int) -> None:
    if not VARIABLE_MIN <= value <= VARIABLE_MAX:
        raise ServiceError(ErrorKind.INVALID_REQUEST, VALUE_OUT_OF_RANGE)


class CommandService:
    def __init__(self, commands: CommandRepository, channels: ChannelService) -> None:
        self.commands = commands
        self.channels = channels

    # ==================== Helpers ====================

    async def _check_channel(self, channel_id: str, force: bool) -> None:
        try:
            await self.channels.get_channel(channel_id, force=force)
        except ServiceError as e:
            if e.kind is ErrorKind.DISABLED:
                raise ServiceError(ErrorKind.DISABLED, "This channel is disabled.") from e
            raise

    async def _require_command(
        self, channel_id: str, keyword: str, force: bool
    ) -> Command:
        """Load a command after the channel and keyword checks."""
        validate_keyword(keyword)
        await self._check_channel(channel_id, force)

        command = await self.commands.get(channel_id, keyword)
        if command is None:
            raise ServiceError(ErrorKind.NOT_FOUND, COMMAND_NOT_FOUND)
        if not command.enabled and not force:
            raise ServiceError(ErrorKind.DISABLED, COMMAND_DISABLED)
        return command

    # ==================== Commands ====================

    async def create_command(
        self, channel_id: str, keyword: str, content: str, *, force: bool = False
    ) -> RenderedCommand:
        """Create a command with one zeroed variable per distinct name in *content*."""
        validate_keyword(keyword)
        names = unique_names(extract_variables(content))
        await self._check_channel(channel_id, force)

        command = await self.commands.create(channel_id, keyword, content, names)
        if command is None:
            raise ServiceError(ErrorKind.CONFLICT, "Command already exists.")

        logger.info(f"Command '{keyword}' created for channel {channel_id} ({len(names)} vars)")
        return RenderedCommand.from_command(command)

    async def update_command(
        self, channel_id: str, keyword: str, content: str, *, force: bool = False
    ) -> RenderedCommand:
        """Replace the content. Variables still referenced keep their values."""
        names = extract_variables(content)
        command = await self._require_command(channel_id, keyword, force)

        diff = diff_variables(names, (v.name for v in command.variables))
        updated = await self.commands.update(
            command, content, create=diff.to_create, delete=diff.to_delete
        )

        if not diff.is_empty:
            logger.debug(
                f"Command '{keyword}' variables: +{diff.to_create} -{diff.to_delete}"
            )
        return RenderedCommand.from_command(updated)

    async def get_command(
        self, channel_id: str, keyword: str, *, force: bool = False
    ) -> RenderedCommand:
        command = await self._require_command(channel_id, keyword, force)
        return RenderedCommand.from_command(command)

    async def list_commands(
        self, channel_id: str, page: int = 1, *, force: bool = False
    ) -> list[RenderedCommand]:
        """One page of commands ordered by keyword."""
        await self._check_channel(channel_id, force)
        if page < 1:
            raise ServiceError(
                ErrorKind.INVALID_REQUEST, "Page number must be a positive integer."
            )

        commands = await self.commands.list_by_channel(
            channel_id,
            limit=PAGE_SIZE,
            offset=(page - 1) * PAGE_SIZE,
            include_disabled=force,
        )
        if not commands:
            raise ServiceError(ErrorKind.NOT_FOUND, "No commands found.")
        return [RenderedCommand.from_command(c) for c in commands]

    async def toggle_command(
        self,
        channel_id: str,
        keyword: str,
        enabled: bool | None = None,
        *,
        force: bool = False,
    ) -> RenderedCommand:
        """Set the enabled flag, or invert it when *enabled* is None."""
        validate_keyword(keyword)
        await self._check_channel(channel_id, force)

        command = await self.commands.set_enabled(channel_id, keyword, enabled)
        if command is None:
            raise ServiceError(ErrorKind.NOT_FOUND, COMMAND_NOT_FOUND)
        return RenderedCommand.from_command(command)

    async def delete_command(
        self, channel_id: str, keyword: str, *, force: bool = False
    ) -> RenderedCommand:
        """Delete a command with its variables and return its last rendered form."""
        validate_keyword(keyword)
        await self._check_channel(channel_id, force)

        command = await self.commands.delete(channel_id, keyword)
        if command is None:
            raise ServiceError(ErrorKind.NOT_FOUND, COMMAND_NOT_FOUND)

        logger.info(f"Command '{keyword}' deleted from channel {channel_id}")
        return RenderedCommand.from_command(command)

    # ==================== Variables ====================

    async def list_variables(
        self, channel_id: str, keyword: str, *, force: bool = False
    ) -> list[Variable]:
        command = await self._require_command(channel_id, keyword, force)
        return command.variables

    async def set_variable(
        self,
        channel_id: str,
        keyword: str,
        name: str,
        value: int,
        *,
        force: bool = False,
    ) -> Variable:
        """Overwrite a variable's value."""
        _check_range(value)
        command = await self._require_command(channel_id, keyword, force)
        variable = await self.commands.set_variable(command.id, name, value)
        if variable is None:
            raise ServiceError(ErrorKind.NOT_FOUND, VARIABLE_NOT_FOUND)
        return variable

    async def increment_variable(
        self,
        channel_id: str,
        keyword: str,
        name: str,
        delta: int = 1,
        *,
        force: bool = False,
    ) -> Variable:
        """Add *delta* to a variable atomically; a negative delta decrements."""
        _check_range(delta)
        command = await self._require_command(channel_id, keyword, force)
        try:
            variable = await self.commands.increment_variable(command.id, name, delta)
        except VariableOutOfRangeError as e:
            raise ServiceError(ErrorKind.INVALID_REQUEST, VALUE_OUT_OF_RANGE) from e
        if variable is None:
            raise ServiceError(ErrorKind.NOT_FOUND, VARIABLE_NOT_FOUND)
        return variable
