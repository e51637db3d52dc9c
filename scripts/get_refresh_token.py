# scripts/get_refresh_token.py
"""Run the OAuth consent flow once and store the refresh token for the server."""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

from google_auth_oauthlib.flow import InstalledAppFlow

from gmail_mcp.auth import SCOPES, ConfigurationError, load_client_config
from gmail_mcp.config import Settings

SETUP_HELP = """\
To get your credentials:
1. Go to https://console.cloud.google.com/
2. Create a project and enable the Gmail API
3. Go to APIs & Services > Credentials
4. Create an OAuth 2.0 Client ID (Desktop app)
5. Download the JSON and save it as {path}
"""


def build_parser() -> argparse.ArgumentParser:
    settings = Settings.from_env()
    parser = argparse.ArgumentParser(description="Authorize Gmail access and save tokens.")
    parser.add_argument(
        "--credentials",
        default=str(settings.credentials_path),
        help="OAuth client file downloaded from Google Cloud (default: %(default)s).",
    )
    parser.add_argument(
        "--token",
        "-o",
        default=str(settings.token_path),
        help="Where to write the tokens (default: %(default)s).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=3000,
        help="Local port for the OAuth redirect (default: %(default)s).",
    )
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Print the authorization URL instead of opening a browser.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    credentials_path = Path(args.credentials)

    print("Gmail MCP Server - OAuth2 Setup")
    print("================================")
    print()

    try:
        load_client_config(credentials_path)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print(file=sys.stderr)
        print(SETUP_HELP.format(path=credentials_path), file=sys.stderr)
        return 1

    flow = InstalledAppFlow.from_client_secrets_file(str(credentials_path), list(SCOPES))
    creds = flow.run_local_server(
        port=args.port,
        open_browser=not args.no_browser,
        access_type="offline",
        prompt="consent",
    )
    if not creds.refresh_token:
        print("Error: Google did not return a refresh token. Revoke access and retry.", file=sys.stderr)
        return 1

    token_path = Path(args.token)
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json(), encoding="utf-8")

    print()
    print(f"Tokens saved to {token_path}")
    print("You can now start the MCP server with: python main.py")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
