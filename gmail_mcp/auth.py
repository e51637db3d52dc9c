"""Build an authenticated Gmail API handle from the credential and token files."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Sequence

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

SCOPES: Sequence[str] = ("https://www.googleapis.com/auth/gmail.modify",)
TOKEN_URI = "https://oauth2.googleapis.com/token"


class ConfigurationError(RuntimeError):
    """Credential or token files are missing or unusable. Fatal at startup."""


def _read_json(path: Path, hint: str) -> Dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigurationError(f"{path} not found. {hint}") from None
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"{path} could not be read as JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a JSON object.")
    return data


def load_client_config(credentials_path: str | Path) -> Dict[str, Any]:
    """
    Return the "installed" or "web" section of a Google OAuth client file.
    """
    credentials = _read_json(
        Path(credentials_path),
        "Download an OAuth client (Desktop app) from Google Cloud Console.",
    )
    config = credentials.get("installed") or credentials.get("web")
    if not isinstance(config, dict) or not config.get("client_id"):
        raise ConfigurationError(
            f"Invalid {credentials_path} format. Expected an \"installed\" or \"web\" client."
        )
    return config


def _expiry_from(tokens: Dict[str, Any]) -> str | None:
    if tokens.get("expiry"):
        return tokens["expiry"]
    # Node-style token files store milliseconds since the epoch.
    expiry_ms = tokens.get("expiry_date")
    if isinstance(expiry_ms, (int, float)):
        when = datetime.fromtimestamp(expiry_ms / 1000, tz=timezone.utc)
        return when.replace(tzinfo=None).isoformat(timespec="seconds") + "Z"
    return None


def load_credentials(
    *,
    credentials_path: str | Path,
    token_path: str | Path,
    scopes: Sequence[str] = SCOPES,
) -> Credentials:
    """
    Combine the client descriptor and the stored refresh token into Credentials.
    """
    config = load_client_config(credentials_path)
    tokens = _read_json(
        Path(token_path),
        "Run `python scripts/get_refresh_token.py` to authenticate with Gmail.",
    )
    if not tokens.get("refresh_token"):
        raise ConfigurationError(f"{token_path} has no refresh_token. Re-run the auth setup.")

    info: Dict[str, Any] = {
        "client_id": config["client_id"],
        "client_secret": config.get("client_secret", ""),
        "refresh_token": tokens["refresh_token"],
        "token_uri": config.get("token_uri") or TOKEN_URI,
    }
    access_token = tokens.get("token") or tokens.get("access_token")
    if access_token:
        info["token"] = access_token
    expiry = _expiry_from(tokens)
    if expiry:
        info["expiry"] = expiry
    try:
        return Credentials.from_authorized_user_info(info, list(scopes))
    except ValueError as exc:
        raise ConfigurationError(f"{token_path} is malformed: {exc}") from exc


def build_gmail_service(
    *,
    credentials_path: str | Path = "credentials.json",
    token_path: str | Path = ".gmail-tokens.json",
    scopes: Sequence[str] = SCOPES,
    cache_discovery: bool = False,
):
    """
    Create an authenticated Gmail API client. Never prompts: a missing or
    revoked token is a ConfigurationError.
    """
    creds = load_credentials(
        credentials_path=credentials_path, token_path=token_path, scopes=scopes
    )
    if not creds.valid:
        logger.info("Refreshing Gmail access token")
        try:
            creds.refresh(Request())
        except GoogleAuthError as exc:
            raise ConfigurationError(f"Could not refresh Gmail token: {exc}") from exc
        Path(token_path).write_text(creds.to_json(), encoding="utf-8")

    return build("gmail", "v1", credentials=creds, cache_discovery=cache_discovery)


__all__ = [
    "SCOPES",
    "ConfigurationError",
    "build_gmail_service",
    "load_client_config",
    "load_credentials",
]
