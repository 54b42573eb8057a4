"""Tests for the destination CMS client and its rate limiter."""

from __future__ import annotations

import io
import json
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from pressroom.errors import PublisherError, RateLimitError
from pressroom.integrations.cms import CMSClient, RateLimiter


def _response(payload: dict, headers: dict | None = None) -> MagicMock:
    response = MagicMock()
    response.read.return_value = json.dumps(payload).encode()
    response.headers = headers or {}
    response.__enter__ = lambda s: s
    response.__exit__ = MagicMock(return_value=False)
    return response


def _http_error(
    code: int, headers: dict | None = None, body: bytes = b""
) -> urllib.error.HTTPError:
    return urllib.error.HTTPError(
        "https://api.test/v2", code, "error", headers or {}, io.BytesIO(body)
    )


def _client(**kwargs) -> tuple[CMSClient, MagicMock]:
    sleep = MagicMock()
    limiter = RateLimiter(2, clock=lambda: 1000.0, sleep=sleep)
    client = CMSClient(
        "secret", "col-1", api_base="https://api.test/v2/", limiter=limiter, **kwargs
    )
    return client, sleep


class TestRequests:
    def test_create_record_request_format(self):
        client, _ = _client()
        with patch("urllib.request.urlopen", return_value=_response({"id": "item-9"})) as mocked:
            record_id = client.create_record({"name": "Budget Basics"})

        assert record_id == "item-9"
        req = mocked.call_args[0][0]
        assert req.full_url == "https://api.test/v2/collections/col-1/items"
        assert req.method == "POST"
        assert req.get_header("Authorization") == "Bearer secret"
        body = json.loads(req.data)
        assert body["isDraft"] is False
        assert body["fieldData"] == {"name": "Budget Basics"}

    def test_create_without_id_is_an_error(self):
        client, _ = _client()
        with patch("urllib.request.urlopen", return_value=_response({})):
            with pytest.raises(PublisherError, match="did not include an id"):
                client.create_record({"name": "x"})

    def test_update_and_publish(self):
        client, _ = _client()
        with patch("urllib.request.urlopen", return_value=_response({})) as mocked:
            client.update_record("item-9", {"name": "New"})
            client.publish_records(["item-9"])

        update_req, publish_req = (call[0][0] for call in mocked.call_args_list)
        assert update_req.method == "PATCH"
        assert update_req.full_url.endswith("/collections/col-1/items/item-9")
        assert publish_req.full_url.endswith("/collections/col-1/items/publish")
        assert json.loads(publish_req.data) == {"itemIds": ["item-9"]}

    def test_server_error_raises(self):
        client, _ = _client()
        error = _http_error(500, body=b'{"message": "boom"}')
        with patch("urllib.request.urlopen", side_effect=error):
            with pytest.raises(PublisherError, match="500"):
                client.get_record("item-9")

    def test_network_error_raises(self):
        client, _ = _client()
        with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("no route")):
            with pytest.raises(PublisherError, match="no route"):
                client.get_record("item-9")


class TestRateLimiting:
    def test_429_is_retried_after_retry_after(self):
        client, sleep = _client()
        side_effects = [_http_error(429, {"Retry-After": "2"}), _response({"id": "item-1"})]
        with patch("urllib.request.urlopen", side_effect=side_effects) as mocked:
            assert client.create_record({"name": "x"}) == "item-1"

        assert mocked.call_count == 2
        sleep.assert_called_once_with(2.0)

    def test_429_without_header_waits_default(self):
        client, sleep = _client()
        side_effects = [_http_error(429), _response({"id": "item-1"})]
        with patch("urllib.request.urlopen", side_effect=side_effects):
            client.create_record({"name": "x"})
        sleep.assert_called_once_with(60.0)

    def test_gives_up_after_max_retries(self):
        client, sleep = _client(max_retries=2)
        error = _http_error(429, {"Retry-After": "1"})
        with patch("urllib.request.urlopen", side_effect=error) as mocked:
            with pytest.raises(RateLimitError):
                client.create_record({"name": "x"})
        assert mocked.call_count == 3
        assert sleep.call_count == 2

    def test_limiter_waits_when_budget_low(self):
        sleep = MagicMock()
        limiter = RateLimiter(2, clock=lambda: 1000.0, sleep=sleep)
        limiter.record({"x-ratelimit-remaining": "1", "x-ratelimit-reset": "1010"})

        assert limiter.before_request() == 11.0
        sleep.assert_called_once_with(11.0)
        assert limiter.before_request() == 0.0

    def test_limiter_ignores_healthy_budget_and_bad_headers(self):
        sleep = MagicMock()
        limiter = RateLimiter(2, sleep=sleep)
        limiter.record({"X-Ratelimit-Remaining": "50"})
        assert limiter.remaining == 50
        limiter.record({"x-ratelimit-remaining": "lots"})
        assert limiter.remaining == 50
        assert limiter.before_request() == 0.0
        sleep.assert_not_called()

    def test_budget_read_from_responses(self):
        client, sleep = _client()
        low = _response({}, {"x-ratelimit-remaining": "1", "x-ratelimit-reset": "1005"})
        with patch("urllib.request.urlopen", side_effect=[low, _response({})]):
            client.get_record("a")
            client.get_record("b")
        sleep.assert_called_once_with(6.0)


class TestBuildFields:
    def test_default_mapping(self):
        client, _ = _client()
        header = {
            "title": "Budget Basics",
            "meta_title": "Budget Basics | Site",
            "slug": "budget-basics",
            "description": "Short summary",
        }
        fields = client.build_fields(header, "<p>Hi</p>", "https://img.test/a.png")
        assert fields == {
            "name": "Budget Basics | Site",
            "slug": "budget-basics",
            "post-body": "<p>Hi</p>",
            "post-summary": "Short summary",
            "thumbnail": "https://img.test/a.png",
        }

    def test_custom_mapping_without_thumbnail(self):
        mapping = {"title": "title", "slug": "slug", "body": "content", "summary": "excerpt"}
        client, _ = _client(field_mapping=mapping)
        fields = client.build_fields({"title": "T", "slug": "t"}, "<p/>", "https://img.test/a.png")
        assert fields == {"title": "T", "slug": "t", "content": "<p/>", "excerpt": ""}
