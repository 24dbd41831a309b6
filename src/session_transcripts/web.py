"""Fetch sessions over HTTP: Claude web sessions and session files by URL."""

import json
import os
import platform
import subprocess
import tempfile
from pathlib import Path

import httpx

API_BASE_URL = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"


class CredentialsError(Exception):
    """Raised when credentials cannot be obtained."""


def get_access_token_from_keychain():
    """Get access token from macOS keychain.

    Returns the access token or None if not found.
    """
    if platform.system() != "Darwin":
        return None

    try:
        result = subprocess.run(
            [
                "security",
                "find-generic-password",
                "-a",
                os.environ.get("USER", ""),
                "-s",
                "Claude Code-credentials",
                "-w",
            ],
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            return None

        creds = json.loads(result.stdout.strip())
        return creds.get("claudeAiOauth", {}).get("accessToken")
    except (json.JSONDecodeError, subprocess.SubprocessError, OSError):
        return None


def get_org_uuid_from_config(config_path=None):
    """Get organization UUID from ~/.claude.json.

    Returns the organization UUID or None if not found.
    """
    config_path = Path(config_path) if config_path else Path.home() / ".claude.json"
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            config = json.load(f)
        return config.get("oauthAccount", {}).get("organizationUuid")
    except (json.JSONDecodeError, OSError, AttributeError):
        return None


def resolve_credentials(token, org_uuid):
    """Resolve token and org_uuid from arguments or auto-detect.

    Returns (token, org_uuid) tuple.
    Raises CredentialsError if credentials cannot be resolved.
    """
    if token is None:
        token = get_access_token_from_keychain()
        if token is None:
            if platform.system() == "Darwin":
                raise CredentialsError(
                    "Could not retrieve access token from macOS keychain. "
                    "Make sure you are logged into Claude Code, or provide --token."
                )
            raise CredentialsError(
                "On non-macOS platforms, you must provide --token with your access token."
            )

    if org_uuid is None:
        org_uuid = get_org_uuid_from_config()
        if org_uuid is None:
            raise CredentialsError(
                "Could not find organization UUID in ~/.claude.json. "
                "Provide --org-uuid with your organization UUID."
            )

    return token, org_uuid


def get_api_headers(token, org_uuid):
    """Build API request headers."""
    return {
        "Authorization": f"Bearer {token}",
        "anthropic-version": ANTHROPIC_VERSION,
        "Content-Type": "application/json",
        "x-organization-uuid": org_uuid,
    }


def fetch_sessions(token, org_uuid):
    """Fetch list of sessions from the API.

    Raises httpx.HTTPError on network/API errors.
    """
    headers = get_api_headers(token, org_uuid)
    response = httpx.get(f"{API_BASE_URL}/sessions", headers=headers, timeout=30.0)
    response.raise_for_status()
    return response.json()


def fetch_session(token, org_uuid, session_id):
    """Fetch a specific session from the API.

    Returns the session data as a dict with a ``loglines`` list.
    Raises httpx.HTTPError on network/API errors.
    """
    headers = get_api_headers(token, org_uuid)
    response = httpx.get(
        f"{API_BASE_URL}/session_ingress/session/{session_id}",
        headers=headers,
        timeout=60.0,
    )
    response.raise_for_status()
    return response.json()


def format_session_for_display(session_data, max_title=50):
    """One-line description of a web session for the picker."""
    title = session_data.get("title") or "Untitled"
    created_at = session_data.get("created_at") or ""
    if len(title) > max_title:
        title = title[: max_title - 3] + "..."
    return f"{created_at[:19] if created_at else 'N/A':19}  {title}"


def is_url(path):
    """Check if a path is a URL (starts with http:// or https://)."""
    return path.startswith("http://") or path.startswith("https://")


def url_stem(url):
    return Path(url.split("?")[0]).stem or "session"


def fetch_url_to_tempfile(url):
    """Fetch a URL and save it to a temporary file.

    Returns the Path to the temporary file. Raises httpx.HTTPError on
    network errors and non-2xx responses.
    """
    response = httpx.get(url, timeout=60.0, follow_redirects=True)
    response.raise_for_status()

    url_path = url.split("?")[0]
    suffix = ".json" if url_path.endswith(".json") else ".jsonl"

    temp_file = Path(tempfile.gettempdir()) / f"claude-url-{url_stem(url)}{suffix}"
    temp_file.write_text(response.text, encoding="utf-8")
    return temp_file
