"""Shared repository layer for the R0 backend."""

from .account import AccountRepository
from .command import CommandRepository
from .state import StateRepository

__all__ = [
    "AccountRepository",
    "CommandRepository",
    "StateRepository",
]
