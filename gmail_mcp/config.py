"""Runtime settings for the Gmail tool server."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_CREDENTIALS_PATH = Path("credentials.json")
DEFAULT_TOKEN_PATH = Path(".gmail-tokens.json")


@dataclass(frozen=True)
class Settings:
    credentials_path: Path = DEFAULT_CREDENTIALS_PATH
    token_path: Path = DEFAULT_TOKEN_PATH
    user_id: str = "me"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            credentials_path=Path(env.get("GMAIL_CREDENTIALS_PATH") or DEFAULT_CREDENTIALS_PATH),
            token_path=Path(env.get("GMAIL_TOKEN_PATH") or DEFAULT_TOKEN_PATH),
            user_id=env.get("GMAIL_USER_ID") or "me",
            log_level=(env.get("GMAIL_MCP_LOG_LEVEL") or "INFO").upper(),
        )

    def override(
        self,
        *,
        credentials_path: str | Path | None = None,
        token_path: str | Path | None = None,
        log_level: str | None = None,
    ) -> "Settings":
        """Apply command-line overrides; None leaves a field unchanged."""
        changes = {}
        if credentials_path:
            changes["credentials_path"] = Path(credentials_path)
        if token_path:
            changes["token_path"] = Path(token_path)
        if log_level:
            changes["log_level"] = log_level.upper()
        return replace(self, **changes)


__all__ = ["DEFAULT_CREDENTIALS_PATH", "DEFAULT_TOKEN_PATH", "Settings"]
