#!/usr/bin/env python3
"""One-time OAuth bootstrap for Google Calendar booking.

Opens the Google consent screen, listens for the redirect on a local port
and prints the refresh token to put in ``.env`` as GOOGLE_REFRESH_TOKEN.
"""
import os
import sys
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from google_auth_oauthlib.flow import InstalledAppFlow

CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar.events"]
DEFAULT_PORT = 3000


def mask(value: Optional[str]) -> str:
    if not value:
        return "<empty>"
    return value[:3] + "***" + value[-4:] if len(value) > 7 else "***"


def print_header(title: str):
    print("\n" + "=" * 80)
    print(title)
    print("=" * 80)


def redirect_port(redirect_uri: Optional[str]) -> int:
    if not redirect_uri:
        return DEFAULT_PORT
    return urlparse(redirect_uri).port or DEFAULT_PORT


def main() -> int:
    load_dotenv()

    client_id = os.getenv("GOOGLE_CLIENT_ID", "")
    client_secret = os.getenv("GOOGLE_CLIENT_SECRET", "")
    if not client_id or not client_secret:
        print("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be set (environment or .env)")
        return 1

    port = redirect_port(os.getenv("GOOGLE_REDIRECT_URI"))
    print_header("Google Calendar authorization")
    print(f"Client ID: {mask(client_id)}")
    print(f"Listening for the OAuth redirect on http://localhost:{port}/")

    flow = InstalledAppFlow.from_client_config(
        {
            "installed": {
                "client_id": client_id,
                "client_secret": client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": [f"http://localhost:{port}/"],
            }
        },
        scopes=CALENDAR_SCOPES,
    )
    # offline access + forced consent so Google always returns a refresh token
    credentials = flow.run_local_server(
        port=port,
        access_type="offline",
        prompt="consent",
    )

    if not credentials.refresh_token:
        print("No refresh token returned. Revoke the app's access in your Google account and retry.")
        return 1

    print_header("Success")
    print("Add this line to your .env:\n")
    print(f"GOOGLE_REFRESH_TOKEN={credentials.refresh_token}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
