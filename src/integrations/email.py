"""Report delivery through the Resend email API."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request

from pressroom.errors import ReportDeliveryError
from pressroom.integrations.base import ReportSender

logger = logging.getLogger(__name__)

RESEND_ENDPOINT = "https://api.resend.com/emails"


class ResendSender(ReportSender):
    """Send HTML email via Resend."""

    def __init__(self, api_key: str, sender: str, *, timeout: int = 30) -> None:
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    def send(self, recipient: str, subject: str, html: str) -> str:
        payload = {"from": self.sender, "to": [recipient], "subject": subject, "html": html}
        req = urllib.request.Request(
            RESEND_ENDPOINT,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # noqa: S310
                data = json.loads(resp.read().decode("utf-8") or "{}")
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")[:200]
            raise ReportDeliveryError(f"Resend API error {exc.code}: {detail}") from exc
        except (urllib.error.URLError, TimeoutError, OSError, ValueError) as exc:
            raise ReportDeliveryError(f"Send failed: {exc}") from exc

        message_id = str(data.get("id", ""))
        logger.info("Report sent to %s (id=%s)", recipient, message_id or "?")
        return message_id
