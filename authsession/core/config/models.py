from __future__ import annotations

from typing import Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RefreshConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    # seconds before access-token expiry at which a refresh is due
    margin_seconds: float = Field(default=50.0, ge=0.0, le=3600.0)
    revalidate_on_fire: bool = True
    # re-arm delay after a failed scheduled refresh while the token is still valid
    failure_rearm_seconds: float = Field(default=10.0, ge=0.0, le=3600.0)


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    path: str = "runtime/session.json"
    key_prefix: str = "auth__"


class TransportConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    base_url: str = "http://127.0.0.1:8000/api/"
    timeout_seconds: float = Field(default=15.0, gt=0.0, le=300.0)
    endpoints: Dict[str, str] = Field(
        default_factory=lambda: {
            "signin": "auth/signin",
            "signup": "auth/signup",
            "user": "auth/user",
            "logout": "auth/logout",
            "refresh": "auth/refresh",
        }
    )

    @field_validator("base_url")
    @classmethod
    def _base_url_scheme(cls, v: str) -> str:
        s = str(v or "").strip()
        if not (s.startswith("http://") or s.startswith("https://")):
            raise ValueError("base_url must start with http:// or https://")
        return s if s.endswith("/") else s + "/"

    def endpoint(self, name: str) -> str:
        return self.endpoints.get(name) or f"auth/{name}"


class RoutesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    signin: str = "signin"
    landing: str = "profile"
    home: str = "/"


class MessagesConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    logged_in: str = "Logged in successfully!"
    registered: str = "Registered successfully!"
    logged_out: str = "Logged out successfully."
    relogin_required: str = "Please, log in again"


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    log_dir: str = "logs"
    events_file: str = "session_events.jsonl"
    level: str = "INFO"


class SessionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    config_version: int = Field(default=1, ge=1)
    refresh: RefreshConfig = Field(default_factory=RefreshConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    routes: RoutesConfig = Field(default_factory=RoutesConfig)
    messages: MessagesConfig = Field(default_factory=MessagesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
