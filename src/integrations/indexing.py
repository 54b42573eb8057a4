"""Search-index announcements via the Google Indexing API.

Authenticates as a service account: a short-lived RS256 JWT signed with
the account's private key is exchanged for an OAuth access token, which
is cached until shortly before it expires.
"""

from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Any

import jwt

from pressroom.errors import IndexingError
from pressroom.integrations.base import Announcer

logger = logging.getLogger(__name__)

INDEXING_ENDPOINT = "https://indexing.googleapis.com/v3/urlNotifications:publish"
INDEXING_SCOPE = "https://www.googleapis.com/auth/indexing"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
_TOKEN_LIFETIME = 3600
_TOKEN_MARGIN = 60


class GoogleIndexer(Announcer):
    """Notify Google that a URL was published or updated."""

    def __init__(self, service_account_path: str | Path, *, timeout: int = 30) -> None:
        self.service_account_path = Path(service_account_path).expanduser()
        self.timeout = timeout
        self._credentials: dict[str, Any] | None = None
        self._token: str = ""
        self._token_expires: float = 0.0

    def _load_credentials(self) -> dict[str, Any]:
        if self._credentials is None:
            try:
                raw = self.service_account_path.read_text(encoding="utf-8")
                self._credentials = json.loads(raw)
            except (OSError, ValueError) as exc:
                raise IndexingError(
                    f"Cannot read service account file {self.service_account_path}: {exc}"
                ) from exc
            for key in ("client_email", "private_key"):
                if key not in self._credentials:
                    raise IndexingError(f"Service account file is missing {key!r}")
        return self._credentials

    def _signed_assertion(self, now: int) -> str:
        credentials = self._load_credentials()
        payload = {
            "iss": credentials["client_email"],
            "scope": INDEXING_SCOPE,
            "aud": credentials.get("token_uri", DEFAULT_TOKEN_URI),
            "iat": now,
            "exp": now + _TOKEN_LIFETIME,
        }
        key_id = credentials.get("private_key_id")
        headers = {"kid": key_id} if key_id else None
        return jwt.encode(payload, credentials["private_key"], algorithm="RS256", headers=headers)

    def _access_token(self) -> str:
        now = int(time.time())
        if self._token and now < self._token_expires - _TOKEN_MARGIN:
            return self._token

        credentials = self._load_credentials()
        body = urllib.parse.urlencode(
            {
                "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
                "assertion": self._signed_assertion(now),
            }
        ).encode("utf-8")
        req = urllib.request.Request(
            credentials.get("token_uri", DEFAULT_TOKEN_URI),
            data=body,
            method="POST",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        data = self._send(req, "token exchange")
        token = data.get("access_token")
        if not token:
            raise IndexingError("Token exchange response did not include an access token")
        self._token = token
        self._token_expires = now + int(data.get("expires_in", _TOKEN_LIFETIME))
        return self._token

    def _send(self, req: urllib.request.Request, label: str) -> dict[str, Any]:
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # noqa: S310
                return json.loads(resp.read().decode("utf-8") or "{}")
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")[:200]
            raise IndexingError(f"Indexing {label} failed: {exc.code} {detail}") from exc
        except (urllib.error.URLError, TimeoutError, OSError, ValueError) as exc:
            raise IndexingError(f"Indexing {label} failed: {exc}") from exc

    def submit(self, url: str) -> dict[str, Any]:
        token = self._access_token()
        req = urllib.request.Request(
            INDEXING_ENDPOINT,
            data=json.dumps({"url": url, "type": "URL_UPDATED"}).encode("utf-8"),
            method="POST",
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
        )
        result = self._send(req, "submission")
        logger.info("Submitted %s for indexing", url)
        return result
