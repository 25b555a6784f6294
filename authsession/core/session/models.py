from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

# Identity records are opaque to the session core.
User = Dict[str, Any]


class TokenInfo(BaseModel):
    """
    Access token plus absolute expiry timestamps (epoch seconds).

    Wire names are camelCase; both spellings are accepted.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    access_token: str = Field(alias="accessToken")
    expires_in: float = Field(default=0.0, alias="expiresIn")
    refresh_token_expires_in: float = Field(default=0.0, alias="refreshTokenExpiresIn")


class AuthResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    user: Optional[User] = None
    token_info: TokenInfo = Field(alias="tokenInfo")


class RefreshStatus(str, Enum):
    OK = "ok"
    TOKEN_ALREADY_REFRESHED = "tokenAlreadyRefreshed"
    REFRESH_TOKEN_EXPIRED = "refreshTokenExpired"


class RefreshResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    # unknown statuses are treated as "ok"
    status: str = RefreshStatus.OK.value
    access_token: Optional[str] = Field(default=None, alias="accessToken")
    expires_in: Optional[float] = Field(default=None, alias="expiresIn")
    refresh_token_expires_in: Optional[float] = Field(default=None, alias="refreshTokenExpiresIn")

    def token_info(self) -> Optional[TokenInfo]:
        if not self.access_token:
            return None
        return TokenInfo(
            access_token=self.access_token,
            expires_in=float(self.expires_in or 0.0),
            refresh_token_expires_in=float(self.refresh_token_expires_in or 0.0),
        )


class SessionSnapshot(BaseModel):
    """Persisted session fields; the refresh-token-expired latch is process-local."""

    model_config = ConfigDict(extra="forbid")
    user: Optional[User] = None
    access_token: Optional[str] = None
    token_expires_at: float = 0.0
    refresh_token_expires_at: float = 0.0


class SessionPhase(str, Enum):
    LOGGED_OUT = "LOGGED_OUT"
    LOGGED_IN = "LOGGED_IN"
    REFRESH_TOKEN_EXPIRED = "REFRESH_TOKEN_EXPIRED"
