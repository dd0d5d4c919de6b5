"""Session log parsing and discovery."""

from backstep.log.discovery import SessionInfo, SessionLocator
from backstep.log.parser import SessionLogParser

__all__ = [
    "SessionInfo",
    "SessionLocator",
    "SessionLogParser",
]
