"""
Client configuration (refresh margin, storage, transport endpoints, routes, messages).

Loaded once from config/session.json; every section has defaults.
"""

from __future__ import annotations

import os
from typing import Optional

from pydantic import ValidationError

from authsession.core.config.io import read_json_file
from authsession.core.config.models import SessionConfig
from authsession.core.errors import ConfigError

DEFAULT_CONFIG_PATH = os.path.join("config", "session.json")


def load_config(path: Optional[str] = None, *, logger=None) -> SessionConfig:
    p = path or os.environ.get("AUTHSESSION_CONFIG") or DEFAULT_CONFIG_PATH
    rr = read_json_file(p)
    if not rr.ok:
        if rr.error == "missing":
            if logger:
                logger.info(f"Missing config {p}; using defaults.")
            return SessionConfig()
        raise ConfigError(f"Unable to read config {p}.", path=p, error=rr.error)
    try:
        return SessionConfig.model_validate(rr.data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {p}.", path=p, errors=e.errors(include_url=False)) from e


__all__ = ["DEFAULT_CONFIG_PATH", "SessionConfig", "load_config"]
