"""Shared data models for the R0 backend."""

from .account import LinkedAccount, Platform
from .command import Command, Variable
from .state import OAuthState

__all__ = [
    "Command",
    "LinkedAccount",
    "OAuthState",
    "Platform",
    "Variable",
]
