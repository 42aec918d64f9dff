"""In-memory repositories and mocked provider clients used across the tests."""

from __future__ import annotations

import copy
import dataclasses
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

import httpx

from shared.models.account import LinkedAccount, Platform
from shared.models.command import VARIABLE_MAX, VARIABLE_MIN, Command, Variable
from shared.models.state import OAuthState
from shared.repositories.command import VariableOutOfRangeError

from api.services.discord_api import DiscordAPIClient
from api.services.twitch_api import TwitchAPIClient

API_URL = "http://api.test"


# ============================================
# In-memory repositories
# ============================================


class FakeStateRepository:
    def __init__(self) -> None:
        self.states: dict[str, OAuthState] = {}

    async def create(self, value: str) -> OAuthState:
        state = OAuthState(value=value, created_at=datetime.now(UTC))
        self.states[value] = state
        return state

    async def pop(self, value: str) -> OAuthState | None:
        return self.states.pop(value, None)

    async def delete_older_than(self, cutoff: datetime) -> int:
        old = [v for v, s in self.states.items() if s.created_at < cutoff]
        for value in old:
            del self.states[value]
        return len(old)


class FakeAccountRepository:
    def __init__(self, platform: Platform = Platform.TWITCH) -> None:
        self.platform = platform
        self.accounts: dict[str, LinkedAccount] = {}

    def add(self, external_id: str, username: str = "", **kwargs) -> LinkedAccount:
        kwargs.setdefault("access_token", f"access-{external_id}")
        kwargs.setdefault("refresh_token", f"refresh-{external_id}")
        account = LinkedAccount(external_id=external_id, username=username, **kwargs)
        self.accounts[external_id] = account
        return dataclasses.replace(account)

    async def get(self, external_id: str) -> LinkedAccount | None:
        account = self.accounts.get(external_id)
        return dataclasses.replace(account) if account else None

    async def list_enabled(self) -> list[LinkedAccount]:
        return [dataclasses.replace(a) for a in self.accounts.values() if a.enabled]

    async def search(
        self,
        query: str = "",
        *,
        limit: int = 10,
        offset: int = 0,
        include_disabled: bool = False,
    ) -> list[LinkedAccount]:
        matches = sorted(
            (
                a
                for a in self.accounts.values()
                if (include_disabled or a.enabled) and query.lower() in a.username.lower()
            ),
            key=lambda a: (a.username, a.external_id),
        )
        return [dataclasses.replace(a) for a in matches[offset : offset + limit]]

    async def upsert(
        self, external_id: str, username: str, access_token: str, refresh_token: str
    ) -> LinkedAccount:
        now = datetime.now(UTC)
        existing = self.accounts.get(external_id)
        if existing is None:
            account = LinkedAccount(
                external_id, username, access_token, refresh_token, True, now, now
            )
        else:
            account = dataclasses.replace(
                existing,
                username=username or existing.username,
                access_token=access_token,
                refresh_token=refresh_token,
                enabled=True,
                last_refresh=now,
            )
        self.accounts[external_id] = account
        return dataclasses.replace(account)

    async def update_tokens(
        self, external_id: str, access_token: str, refresh_token: str
    ) -> LinkedAccount | None:
        existing = self.accounts.get(external_id)
        if existing is None:
            return None
        account = dataclasses.replace(
            existing,
            access_token=access_token,
            refresh_token=refresh_token,
            last_refresh=datetime.now(UTC),
        )
        self.accounts[external_id] = account
        return dataclasses.replace(account)

    async def set_enabled(self, external_id: str, enabled: bool | None) -> LinkedAccount | None:
        existing = self.accounts.get(external_id)
        if existing is None:
            return None
        new_value = (not existing.enabled) if enabled is None else enabled
        account = dataclasses.replace(existing, enabled=new_value)
        self.accounts[external_id] = account
        return dataclasses.replace(account)

    async def delete(self, external_id: str) -> LinkedAccount | None:
        return self.accounts.pop(external_id, None)


class FakeCommandRepository:
    def __init__(self) -> None:
        self.commands: dict[tuple[str, str], Command] = {}
        self._next_command_id = 1
        self._next_variable_id = 1

    def _add_variables(self, command: Command, names: Iterable[str]) -> None:
        existing = {v.name for v in command.variables}
        for name in names:
            if name in existing:
                continue
            command.variables.append(Variable(self._next_variable_id, command.id, name))
            self._next_variable_id += 1
            existing.add(name)

    def _by_id(self, command_id: int) -> Command | None:
        return next((c for c in self.commands.values() if c.id == command_id), None)

    async def get(self, channel_id: str, keyword: str) -> Command | None:
        return copy.deepcopy(self.commands.get((channel_id, keyword)))

    async def list_by_channel(
        self,
        channel_id: str,
        *,
        limit: int = 10,
        offset: int = 0,
        include_disabled: bool = False,
    ) -> list[Command]:
        matches = sorted(
            (
                c
                for c in self.commands.values()
                if c.channel_id == channel_id and (include_disabled or c.enabled)
            ),
            key=lambda c: c.keyword,
        )
        return copy.deepcopy(matches[offset : offset + limit])

    async def create(
        self, channel_id: str, keyword: str, content: str, variable_names: Iterable[str]
    ) -> Command | None:
        if (channel_id, keyword) in self.commands:
            return None
        now = datetime.now(UTC)
        command = Command(self._next_command_id, channel_id, keyword, content, True, now, now)
        self._next_command_id += 1
        self._add_variables(command, variable_names)
        self.commands[(channel_id, keyword)] = command
        return copy.deepcopy(command)

    async def update(
        self,
        command: Command,
        content: str,
        *,
        create: Iterable[str] = (),
        delete: Iterable[str] = (),
    ) -> Command:
        stored = self.commands[(command.channel_id, command.keyword)]
        stored.content = content
        stored.updated_at = datetime.now(UTC)
        removed = set(delete)
        stored.variables = [v for v in stored.variables if v.name not in removed]
        self._add_variables(stored, create)
        return copy.deepcopy(stored)

    async def set_enabled(
        self, channel_id: str, keyword: str, enabled: bool | None
    ) -> Command | None:
        stored = self.commands.get((channel_id, keyword))
        if stored is None:
            return None
        stored.enabled = (not stored.enabled) if enabled is None else enabled
        return copy.deepcopy(stored)

    async def delete(self, channel_id: str, keyword: str) -> Command | None:
        return self.commands.pop((channel_id, keyword), None)

    async def set_variable(self, command_id: int, name: str, value: int) -> Variable | None:
        return self._update_variable(command_id, name, lambda _: value)

    async def increment_variable(self, command_id: int, name: str, delta: int) -> Variable | None:
        def add(current: int) -> int:
            if not VARIABLE_MIN <= current + delta <= VARIABLE_MAX:
                raise VariableOutOfRangeError(f"Variable '{name}' would overflow")
            return current + delta

        return self._update_variable(command_id, name, add)

    def _update_variable(
        self, command_id: int, name: str, new_value: Callable[[int], int]
    ) -> Variable | None:
        command = self._by_id(command_id)
        if command is None:
            return None
        for variable in command.variables:
            if variable.name == name:
                variable.value = new_value(variable.value)
                return dataclasses.replace(variable)
        return None


# ============================================
# Provider HTTP helpers
# ============================================


def mock_http(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def make_twitch(handler: Callable[[httpx.Request], httpx.Response]) -> TwitchAPIClient:
    return TwitchAPIClient("tw-id", "tw-secret", API_URL, http=mock_http(handler))


def make_discord(
    handler: Callable[[httpx.Request], httpx.Response],
    client_id: str = "dc-id",
    client_secret: str = "dc-secret",
) -> DiscordAPIClient:
    return DiscordAPIClient(client_id, client_secret, API_URL, http=mock_http(handler))


