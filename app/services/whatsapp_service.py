"""WhatsApp delivery service – sends a document link through the Exotel API."""

import json
import re
from collections.abc import Callable
from typing import Any

import httpx

from app.config import settings
from app.models.delivery import UNKNOWN_MESSAGE_ID, DeliveryResult
from app.utils.logger import logger
from app.utils.validators import normalize_phone


class DeliveryError(Exception):
    """Raised when the gateway rejects the message or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def sanitize_filename(name: str) -> str:
    """Replace characters outside [A-Za-z0-9._-] so the provider accepts the name."""
    return re.sub(r"[^A-Za-z0-9._-]", "_", name or "") or "document.pdf"


def _path(*keys: Any) -> Callable[[Any], Any]:
    """Build an extractor that walks dict keys / list indexes, None when absent."""

    def extract(data: Any) -> Any:
        current = data
        for key in keys:
            if isinstance(key, int):
                if not isinstance(current, list) or len(current) <= key:
                    return None
            elif not isinstance(current, dict):
                return None
            current = current[key] if isinstance(key, int) else current.get(key)
            if current is None:
                return None
        return current

    return extract


# Tried in order; the Exotel response shape has varied between API versions.
MESSAGE_ID_EXTRACTORS: list[Callable[[Any], Any]] = [
    _path("response", "whatsapp", "messages", 0, "data", "sid"),
    _path("data", "messages", 0, "id"),
    _path("messages", 0, "id"),
    _path("messageId"),
]

ERROR_MESSAGE_EXTRACTORS: list[Callable[[Any], Any]] = [
    _path("message"),
    _path("error"),
    _path("error_description"),
    _path("errors", 0, "message"),
    _path("errors", 0, "detail"),
    _path("response", "whatsapp", "messages", 0, "error_data", "message"),
]


def extract_message_id(payload: Any) -> str:
    for extractor in MESSAGE_ID_EXTRACTORS:
        value = extractor(payload)
        if isinstance(value, (str, int)) and str(value):
            return str(value)
    return UNKNOWN_MESSAGE_ID


def extract_error_message(payload: Any) -> str | None:
    for extractor in ERROR_MESSAGE_EXTRACTORS:
        value = extractor(payload)
        if isinstance(value, str) and value:
            return value
        if isinstance(value, dict) and value.get("message"):
            return str(value["message"])
    if payload in (None, "", {}, []):
        return None
    return payload if isinstance(payload, str) else json.dumps(payload)


class WhatsAppService:
    """Service for sending WhatsApp template messages with a document header."""

    def __init__(
        self,
        api_key: str | None = None,
        api_token: str | None = None,
        sid: str | None = None,
        api_base_url: str | None = None,
        template_name: str | None = None,
        template_language: str | None = None,
        from_number: str | None = None,
        status_callback: str | None = None,
        timeout: float | None = None,
        probe_timeout: float | None = None,
    ):
        self.api_key = api_key or settings.exotel_api_key
        self.api_token = api_token or settings.exotel_api_token
        self.sid = sid or settings.exotel_sid
        self.api_base_url = (api_base_url or settings.exotel_api_base_url).rstrip("/")
        self.template_name = template_name or settings.exotel_template_name
        self.template_language = template_language or settings.exotel_template_language
        self.from_number = from_number or settings.exotel_from_number
        self.status_callback = status_callback or settings.exotel_status_callback
        self.timeout = timeout or settings.gateway_timeout_seconds
        self.probe_timeout = probe_timeout or settings.url_probe_timeout_seconds

    @property
    def endpoint(self) -> str:
        return f"{self.api_base_url}/v2/accounts/{self.sid}/messages"

    async def send_document(
        self,
        phone_number: str,
        document_url: str,
        display_name: str,
    ) -> DeliveryResult:
        """Send ``document_url`` to ``phone_number`` as a WhatsApp document message.

        Raises InvalidPhoneNumber before any network call if the number cannot
        be normalized, and DeliveryError for bad URLs, missing credentials,
        non-2xx responses and transport failures.
        """
        to_number = normalize_phone(phone_number)
        filename = sanitize_filename(display_name)

        if not document_url or not document_url.startswith(("http://", "https://")):
            raise DeliveryError(f"Invalid document URL: {document_url}")
        self._check_credentials()

        await self._probe_url(document_url)

        payload = self._build_payload(to_number, document_url, filename)
        logger.info(f"Sending WhatsApp message to {to_number} via Exotel")
        logger.info(f"Document URL: {document_url}")
        logger.debug(f"Payload: {json.dumps(payload)}")

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.endpoint,
                    json=payload,
                    auth=(self.api_key, self.api_token),
                    timeout=self.timeout,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                error_message = self._error_detail(e.response)
                logger.error(
                    f"Exotel API error: status {e.response.status_code}, body: {e.response.text[:1000]}"
                )
                raise DeliveryError(
                    f"Failed to send WhatsApp message: {error_message}",
                    status_code=e.response.status_code,
                ) from e
            except httpx.RequestError as e:
                logger.error(f"Exotel API request failed: {e!r}")
                raise DeliveryError(f"Failed to send WhatsApp message: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = response.text

        logger.info(f"Exotel API response: {body}")
        return DeliveryResult(
            succeeded=True,
            provider_message_id=extract_message_id(body),
            raw_provider_payload=body,
        )

    def _check_credentials(self) -> None:
        if not self.api_key:
            raise DeliveryError("Exotel API key not configured")
        if not self.api_token:
            raise DeliveryError("Exotel API token not configured")
        if not self.sid:
            raise DeliveryError("Exotel account SID not configured")

    def _build_payload(self, to_number: str, document_url: str, filename: str) -> dict:
        payload: dict[str, Any] = {
            "custom_data": f"Fee Receipt - {filename}",
            "whatsapp": {
                "messages": [
                    {
                        "from": self.from_number,
                        "to": to_number,
                        "content": {
                            "type": "template",
                            "template": {
                                "name": self.template_name,
                                "language": {
                                    "policy": "deterministic",
                                    "code": self.template_language,
                                },
                                "components": [
                                    {
                                        "type": "header",
                                        "parameters": [
                                            {
                                                "type": "document",
                                                "document": {
                                                    "link": document_url,
                                                    "filename": filename,
                                                },
                                            }
                                        ],
                                    }
                                ],
                            },
                        },
                    }
                ]
            },
        }
        if self.status_callback:
            payload["status_callback"] = self.status_callback
        return payload

    async def _probe_url(self, document_url: str) -> None:
        """HEAD the document URL; only ever logs, the gateway does its own fetch."""
        try:
            async with httpx.AsyncClient() as client:
                response = await client.head(
                    document_url, timeout=self.probe_timeout, follow_redirects=True
                )
            logger.info(f"Document URL is accessible (status: {response.status_code})")
        except Exception as e:
            logger.warning(f"Document URL might not be accessible: {e!r}")

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = response.text[:500]
        return extract_error_message(body) or f"HTTP {response.status_code}"
