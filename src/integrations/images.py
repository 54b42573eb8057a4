"""Hero image rendering over HTTP (fal.ai-style JSON API) and local download."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from pressroom.errors import ImageError
from pressroom.integrations.base import ImageProvider
from pressroom.shared.fileio import atomic_write_bytes

logger = logging.getLogger(__name__)


class HttpImageProvider(ImageProvider):
    """Render images with a hosted text-to-image endpoint.

    The endpoint takes ``{"prompt", "image_size"}`` and answers with
    ``{"images": [{"url": ...}]}``.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        *,
        image_size: str = "landscape_16_9",
        timeout: int = 120,
    ) -> None:
        self.api_url = api_url
        self.api_key = api_key
        self.image_size = image_size
        self.timeout = timeout

    def render_image(self, prompt: str) -> str:
        payload = {"prompt": prompt, "image_size": self.image_size}
        request = Request(  # noqa: S310
            self.api_url,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Authorization": f"Key {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        try:
            with urlopen(request, timeout=self.timeout) as response:  # noqa: S310
                data = json.loads(response.read().decode("utf-8"))
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")[:200]
            raise ImageError(f"Image API error ({exc.code}): {detail}") from exc
        except (URLError, TimeoutError, OSError, ValueError) as exc:
            raise ImageError(f"Image API request failed: {exc}") from exc

        images = data.get("images") or []
        if not images or not images[0].get("url"):
            raise ImageError("No images returned from image API")
        return images[0]["url"]

    def fetch(self, url: str, destination: Path) -> Path:
        return download(url, destination, timeout=self.timeout)


def download(url: str, destination: Path, *, timeout: int = 60) -> Path:
    """Save the bytes at *url* to *destination*."""
    try:
        with urlopen(Request(url), timeout=timeout) as response:  # noqa: S310
            payload = response.read()
    except (URLError, TimeoutError, OSError) as exc:
        raise ImageError(f"Failed to download image {url}: {exc}") from exc
    atomic_write_bytes(destination, payload)
    logger.info("Saved image to %s", destination)
    return destination
