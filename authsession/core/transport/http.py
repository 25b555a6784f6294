from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Optional

import requests
from pydantic import ValidationError

from authsession.core.config.models import TransportConfig
from authsession.core.errors import TransportError
from authsession.core.session.models import AuthResult, RefreshResult, User
from authsession.core.transport.base import Transport

TokenProvider = Callable[[], Optional[str]]


class HttpTransport(Transport):
    """
    JSON-over-HTTP transport backed by a requests.Session.

    Blocking requests calls run in a worker thread so the event loop keeps
    servicing the refresh timer. Every request carries the current access
    token from token_provider as a Bearer header; nothing else is persisted.
    """

    name = "http"

    def __init__(self, cfg: TransportConfig, *, token_provider: Optional[TokenProvider] = None, http: Optional[requests.Session] = None, logger=None):
        self.cfg = cfg
        self.token_provider = token_provider
        self.http = http or requests.Session()
        self.logger = logger

    def _url(self, endpoint: str) -> str:
        return f"{self.cfg.base_url}{self.cfg.endpoint(endpoint).lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = self._url(endpoint)
        try:
            r = self.http.request(method, url, json=payload, headers=self._headers(), timeout=float(self.cfg.timeout_seconds))
        except requests.Timeout as e:
            raise TransportError("The authentication service timed out.", endpoint=endpoint) from e
        except requests.RequestException as e:
            raise TransportError(endpoint=endpoint, error=str(e)) from e
        if r.status_code >= 400:
            raise TransportError(_error_message(r), status_code=r.status_code, endpoint=endpoint)
        if not r.content:
            return {}
        try:
            data = r.json()
        except ValueError as e:
            raise TransportError("Malformed response from the authentication service.", status_code=r.status_code, endpoint=endpoint) from e
        if not isinstance(data, dict):
            raise TransportError("Malformed response from the authentication service.", status_code=r.status_code, endpoint=endpoint)
        return data

    async def _call(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if self.logger:
            self.logger.debug(f"{method} {endpoint}")
        return await asyncio.to_thread(self._request, method, endpoint, payload)

    async def signin(self, credentials: Dict[str, Any]) -> AuthResult:
        return _parse(AuthResult, await self._call("POST", "signin", credentials), "signin")

    async def signup(self, form: Dict[str, Any]) -> AuthResult:
        return _parse(AuthResult, await self._call("POST", "signup", form), "signup")

    async def fetch_current_user(self) -> User:
        data = await self._call("GET", "user")
        user = data.get("user")
        if not isinstance(user, dict):
            raise TransportError("Malformed response from the authentication service.", endpoint="user")
        return user

    async def logout(self) -> None:
        await self._call("POST", "logout")

    async def refresh(self) -> RefreshResult:
        return _parse(RefreshResult, await self._call("POST", "refresh"), "refresh")

    async def aclose(self) -> None:
        self.http.close()


def _parse(model, data: Dict[str, Any], endpoint: str):  # noqa: ANN001
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise TransportError("Malformed response from the authentication service.", endpoint=endpoint, error=str(e)) from e


def _error_message(r: requests.Response) -> str:
    try:
        data = r.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        msg = data.get("message") or data.get("error") or data.get("detail")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()[:300]
    return f"Authentication service returned HTTP {r.status_code}."
