"""Fake Discord interactions that record every response."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import discord


class FakeResponse:
    """Stand-in for discord.InteractionResponse."""

    def __init__(self) -> None:
        self.messages: List[Dict[str, Any]] = []
        self.autocompletes: List[list] = []
        self.deferred = False
        self._done = False

    def is_done(self) -> bool:
        return self._done

    def _mark_done(self) -> None:
        if self._done:
            raise discord.InteractionResponded(MagicMock())
        self._done = True

    async def send_message(self, content: Optional[str] = None, *, ephemeral: bool = False, **kwargs) -> None:
        self._mark_done()
        self.messages.append({"content": content, "ephemeral": ephemeral})

    async def defer(self, *, ephemeral: bool = False, **kwargs) -> None:
        self._mark_done()
        self.deferred = True

    async def autocomplete(self, choices) -> None:
        self._mark_done()
        self.autocompletes.append(list(choices))


class FakeFollowup:
    def __init__(self) -> None:
        self.messages: List[Dict[str, Any]] = []

    async def send(self, content: Optional[str] = None, *, ephemeral: bool = False, **kwargs) -> None:
        self.messages.append({"content": content, "ephemeral": ephemeral})


class FakeInteraction:
    """Stand-in for discord.Interaction carrying a raw command payload."""

    def __init__(
        self,
        name: Optional[str],
        *,
        user=None,
        options: Optional[List[Dict[str, Any]]] = None,
        guild=None,
        interaction_type: discord.InteractionType = discord.InteractionType.application_command,
    ) -> None:
        self.data = {"name": name, "options": options or []}
        self.user = user if user is not None else make_member()
        self.guild = guild
        self.type = interaction_type
        self.response = FakeResponse()
        self.followup = FakeFollowup()

    @property
    def all_messages(self) -> List[Dict[str, Any]]:
        return self.response.messages + self.followup.messages


def make_member(member_id: int = 1000, **permissions: bool):
    """A guild member holding exactly the given permissions."""
    member = MagicMock(spec=discord.Member)
    member.id = member_id
    member.guild_permissions = discord.Permissions(**permissions)
    member.display_name = f"member{member_id}"
    member.created_at = datetime(2020, 1, 2, tzinfo=timezone.utc)
    member.joined_at = datetime(2021, 3, 4, tzinfo=timezone.utc)
    member.roles = []
    return member


def make_dm_user(user_id: int = 2000):
    """A user invoking from a DM (not a guild member)."""
    user = MagicMock(spec=discord.User)
    user.id = user_id
    return user


def make_role(name: str, default: bool = False):
    role = MagicMock(spec=discord.Role)
    role.name = name
    role.is_default.return_value = default
    return role
