"""
Client-side session lifecycle: persisted token state, the single-slot
refresh timer and the LOGGED_OUT/LOGGED_IN/REFRESH_TOKEN_EXPIRED machine.

Auth operations and the wired SessionClient live in
authsession.core.session.operations / .client.
"""

from authsession.core.session.machine import SessionMachine
from authsession.core.session.models import AuthResult, RefreshResult, RefreshStatus, SessionPhase, SessionSnapshot, TokenInfo
from authsession.core.session.scheduler import RefreshScheduler
from authsession.core.session.state import SessionState
from authsession.core.session.store import JsonFileKeyValueStore, MemoryKeyValueStore, SessionStore

__all__ = [
    "AuthResult",
    "JsonFileKeyValueStore",
    "MemoryKeyValueStore",
    "RefreshResult",
    "RefreshScheduler",
    "RefreshStatus",
    "SessionMachine",
    "SessionPhase",
    "SessionSnapshot",
    "SessionState",
    "SessionStore",
    "TokenInfo",
]
