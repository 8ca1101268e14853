"""Tests for stackbuddy.forms.client - FormsApiClient over httpx.MockTransport"""

import json

import httpx
import pytest

from stackbuddy.constants import FORMS_API_KEY_ENV
from stackbuddy.forms.client import ApiResponse, FormsApiClient, FormsApiConfig


def _client(handler, api_key="test-key"):
    config = FormsApiConfig(base_url="https://forms.test/api/v2", api_key=api_key)
    return FormsApiClient(config, transport=httpx.MockTransport(handler))


class TestApiResponse:

    def test_to_dict(self):
        assert ApiResponse.error("bad").to_dict() == {
            "isSuccess": False,
            "response": None,
            "errorItems": ["bad"],
        }

    def test_config_from_dict_defaults(self):
        config = FormsApiConfig.from_dict({"timeout": 5})
        assert config.base_url.startswith("https://")
        assert config.timeout == 5.0


class TestRequests:

    @pytest.mark.asyncio
    async def test_get_form_sends_bearer_auth(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"id": "123", "fields": []})

        client = _client(handler)
        result = await client.get_form("123")
        await client.close()

        assert result.is_success is True
        assert result.response == {"id": "123", "fields": []}
        assert seen["url"] == "https://forms.test/api/v2/form/123.json"
        assert seen["auth"] == "Bearer test-key"

    @pytest.mark.asyncio
    async def test_put_field_logic_sends_json_body(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "77"})

        client = _client(handler)
        await client.put_field_logic("77", None)
        await client.close()

        assert seen == {"method": "PUT", "path": "/api/v2/field/77", "body": {"logic": None}}

    @pytest.mark.asyncio
    async def test_missing_key_does_not_send(self, monkeypatch):
        monkeypatch.delenv(FORMS_API_KEY_ENV, raising=False)
        sent = []

        client = _client(lambda request: sent.append(request), api_key=None)
        result = await client.get_form("1")

        assert sent == []
        assert result.is_success is False
        assert FORMS_API_KEY_ENV in result.error_items[0]

    @pytest.mark.asyncio
    async def test_key_read_from_environment(self, monkeypatch):
        monkeypatch.setenv(FORMS_API_KEY_ENV, "env-key")
        client = _client(lambda request: httpx.Response(200, json={}), api_key=None)
        assert client.api_key == "env-key"


class TestErrors:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,body,expected", [
        (401, {}, "Authentication failed: Invalid API key"),
        (403, {}, "Access forbidden: API key lacks required permissions"),
        (400, {"error": "invalid_request", "error_description": "Missing authentication header"},
         "Authentication failed: Invalid API key or malformed authentication header"),
        (400, {"error": "invalid_request", "error_description": "bad field type"},
         "Bad Request: bad field type"),
        (404, {"error": "Form not found"}, "Form not found"),
        (500, {}, "API request failed"),
    ])
    async def test_status_mapping(self, status, body, expected):
        client = _client(lambda request: httpx.Response(status, json=body))
        result = await client.get_form("1")
        await client.close()
        assert result.is_success is False
        assert result.error_items == [expected]

    @pytest.mark.asyncio
    async def test_transport_error_becomes_response(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        result = await client.delete_field("5")
        await client.close()
        assert result.is_success is False
        assert result.error_items == ["connection refused"]


class TestFormEnabled:

    @pytest.mark.asyncio
    async def test_enabled_when_marker_field_present(self):
        body = {"id": "1", "fields": [{"id": "9", "label": "MARV_ENABLED"}]}
        client = _client(lambda request: httpx.Response(200, json=body))
        assert await client.is_form_enabled("1") is True

    @pytest.mark.asyncio
    async def test_not_enabled_without_marker(self):
        body = {"id": "1", "fields": [{"id": "9", "label": "Name"}]}
        client = _client(lambda request: httpx.Response(200, json=body))
        assert await client.is_form_enabled("1") is False

    @pytest.mark.asyncio
    async def test_not_enabled_when_request_fails(self):
        client = _client(lambda request: httpx.Response(401, json={}))
        assert await client.is_form_enabled("1") is False
