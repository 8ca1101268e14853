"""
Forms API Client - Formstack REST API v2 over httpx

Every request returns an ApiResponse; HTTP and transport failures are
reported in ``error_items`` rather than raised.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..constants import FORM_ENABLED_LABEL, FORMS_API_KEY_ENV, FORMS_API_ROOT

logger = logging.getLogger(__name__)

NO_API_KEY_MESSAGE = (
    f"Authentication failed: No API key provided "
    f"({FORMS_API_KEY_ENV} environment variable not set)"
)


@dataclass
class FormsApiConfig:
    """
    Forms API settings.

    Attributes:
        base_url: API root
        api_key: Bearer token; falls back to the CORE_FORMS_API_V2_KEY
            environment variable when empty
        timeout: Request timeout in seconds
    """
    base_url: str = FORMS_API_ROOT
    api_key: Optional[str] = None
    timeout: float = 30.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormsApiConfig":
        """Create from dictionary"""
        return cls(
            base_url=data.get("base_url") or FORMS_API_ROOT,
            api_key=data.get("api_key"),
            timeout=float(data.get("timeout", 30.0)),
        )


@dataclass
class ApiResponse:
    """Universal response of every forms call"""
    is_success: bool
    response: Any = None
    error_items: Optional[List[str]] = None

    @classmethod
    def ok(cls, response: Any = None) -> "ApiResponse":
        return cls(is_success=True, response=response)

    @classmethod
    def error(cls, *items: str) -> "ApiResponse":
        return cls(is_success=False, error_items=[str(item) for item in items])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isSuccess": self.is_success,
            "response": self.response,
            "errorItems": self.error_items,
        }


class FormsApiClient:
    """
    Thin async client for the forms API.

    Usage:
        async with FormsApiClient(FormsApiConfig(api_key="...")) as client:
            result = await client.get_form("123456")
            if result.is_success:
                fields = result.response["fields"]
    """

    def __init__(
        self,
        config: Optional[FormsApiConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or FormsApiConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def api_key(self) -> str:
        # Loaded lazily so the key can be provided after construction
        return self.config.api_key or os.environ.get(FORMS_API_KEY_ENV, "")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                transport=self._transport,
            )
        return self._client

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _error_message(self, status_code: int, data: Dict[str, Any]) -> str:
        """Map an unsuccessful HTTP response onto a user-readable message"""
        if status_code == 401:
            return "Authentication failed: Invalid API key"
        if status_code == 403:
            return "Access forbidden: API key lacks required permissions"
        if status_code == 400 and data.get("error") == "invalid_request":
            description = data.get("error_description") or ""
            if "authentication header" in description:
                if not self.api_key:
                    return NO_API_KEY_MESSAGE
                return "Authentication failed: Invalid API key or malformed authentication header"
            return f"Bad Request: {description or data.get('error')}"
        return data.get("error") or "API request failed"

    async def request(
        self,
        method: str,
        endpoint: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> ApiResponse:
        """Send one request and normalize the outcome"""
        if not self.api_key:
            return ApiResponse.error(NO_API_KEY_MESSAGE)

        try:
            response = await self._get_client().request(
                method,
                endpoint,
                headers=self._get_headers(),
                json=body if method != "GET" else None,
            )
        except httpx.HTTPError as e:
            logger.error(f"[Forms] {method} {endpoint} failed: {e}")
            return ApiResponse.error(str(e) or e.__class__.__name__)

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_success:
            logger.debug(f"[Forms] {method} {endpoint} -> {response.status_code}")
            return ApiResponse.ok(data)

        if not isinstance(data, dict):
            data = {}
        message = self._error_message(response.status_code, data)
        logger.warning(f"[Forms] {method} {endpoint} -> {response.status_code}: {message}")
        return ApiResponse.error(message)

    # ===== Forms =====

    async def get_form(self, form_id: str) -> ApiResponse:
        return await self.request("GET", f"/form/{form_id}.json")

    async def post_form(self, form_name: str, fields: List[Dict[str, Any]]) -> ApiResponse:
        return await self.request("POST", "/form.json", {"name": form_name, "fields": fields})

    async def post_form_copy(self, form_id: str) -> ApiResponse:
        return await self.request("POST", f"/form/{form_id}/copy")

    # ===== Fields =====

    async def post_field(self, form_id: str, field_data: Dict[str, Any]) -> ApiResponse:
        return await self.request("POST", f"/form/{form_id}/field.json", field_data)

    async def put_field(self, field_id: str, field_data: Dict[str, Any]) -> ApiResponse:
        return await self.request("PUT", f"/field/{field_id}", field_data)

    async def put_field_logic(self, field_id: str, logic: Any) -> ApiResponse:
        return await self.put_field(field_id, {"logic": logic})

    async def delete_field(self, field_id: str) -> ApiResponse:
        return await self.request("DELETE", f"/field/{field_id}")

    # ===== Related entities =====

    async def get_form_webhooks(self, form_id: str) -> ApiResponse:
        return await self.request("GET", f"/form/{form_id}/webhook.json")

    async def get_form_notifications(self, form_id: str) -> ApiResponse:
        return await self.request("GET", f"/form/{form_id}/notification.json")

    async def get_form_confirmations(self, form_id: str) -> ApiResponse:
        return await self.request("GET", f"/form/{form_id}/confirmation.json")

    async def is_form_enabled(self, form_id: str) -> bool:
        """True if the form carries the enablement marker field"""
        result = await self.get_form(form_id)
        if not result.is_success or not isinstance(result.response, dict):
            return False
        fields = result.response.get("fields") or []
        return any(f.get("label") == FORM_ENABLED_LABEL for f in fields)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
