"""Local session tracking used by the hook recorder."""

from backstep.sessions.models import LocalSession, new_session_id
from backstep.sessions.storage import LocalSessionStorage, SessionNotFoundError

__all__ = [
    "LocalSession",
    "LocalSessionStorage",
    "SessionNotFoundError",
    "new_session_id",
]
