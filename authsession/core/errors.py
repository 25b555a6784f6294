from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from authsession.core.events import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class SessionError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def __str__(self) -> str:
        return f"{self.code}: {self.user_message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


class ConfigError(SessionError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class StorageError(SessionError):
    def __init__(self, user_message: str = "Session storage error.", **ctx: Any):
        super().__init__("storage_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class TransportError(SessionError):
    """
    Network or server failure on any transport call.

    Propagated unchanged to the caller of the auth operation; the session is
    never mutated when one is raised.
    """

    def __init__(self, user_message: str = "Unable to reach the authentication service.", *, status_code: Optional[int] = None, **ctx: Any):
        if status_code is not None:
            ctx["status_code"] = int(status_code)
        super().__init__("transport_error", user_message, severity=Severity.WARN, recoverable=True, context=ctx)
        self.status_code = status_code


class StateTransitionError(SessionError):
    def __init__(self, user_message: str = "Internal session state error.", **ctx: Any):
        super().__init__("state_transition_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)
