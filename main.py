from gmail_mcp.server import main

# Reads credentials.json and .gmail-tokens.json (or $GMAIL_CREDENTIALS_PATH /
# $GMAIL_TOKEN_PATH) and serves the Gmail tools over stdio.
# Create the token file first with: python scripts/get_refresh_token.py
if __name__ == "__main__":
    raise SystemExit(main())
