"""Async HTTP client for the helpdesk REST API.

Covers the three calls the relay needs: attachment upload, ticket
creation, and attachment deletion for cleanup after a failed ticket.
"""

import httpx

from formrelay.helpdesk.models import CreatedTicket, HelpdeskConfig, UploadedAttachment
from formrelay.multipart.models import FileAttachment


class HelpdeskError(Exception):
    """Helpdesk call failed: transport error, non-2xx status, or bad response body."""

    def __init__(self, message: str, status_code: int | None = None, details=None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details if details is not None else message


class HelpdeskClient:
    """Sends authenticated requests to https://{subdomain}.{domain}/api/..."""

    def __init__(self, config: HelpdeskConfig):
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._config.timeout_seconds))
        return self._client

    def _build_headers(self) -> dict:
        return {"Authorization": self._config.authorization}

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(method, url, headers=self._build_headers(), **kwargs)
        except httpx.TimeoutException as e:
            raise HelpdeskError("Helpdesk API timed out") from e
        except httpx.HTTPError as e:
            raise HelpdeskError(f"Cannot reach helpdesk API: {e}") from e

        if not 200 <= response.status_code < 300:
            message = f"Helpdesk API returned status {response.status_code}"
            raise HelpdeskError(
                message,
                status_code=response.status_code,
                details=_error_details(response, message),
            )
        return response

    async def upload_attachment(self, file: FileAttachment) -> UploadedAttachment:
        """Upload a file and return where the helpdesk stored it."""
        response = await self._request(
            "POST",
            f"{self._config.base_url}/api/upload",
            params={"type": "attachment"},
            files={"file": (file.name, file.data, file.content_type)},
        )
        data = _json(response)

        # The upload endpoint may answer with a list of stored files
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict) or not data.get("url"):
            raise HelpdeskError("Helpdesk upload response has no attachment url", response.status_code)

        return UploadedAttachment(
            url=data["url"],
            name=data.get("name") or file.name,
            size=data.get("size") or file.size,
            content_type=data.get("content_type") or file.content_type,
        )

    async def create_ticket(self, payload: dict) -> CreatedTicket:
        response = await self._request(
            "POST",
            f"{self._config.base_url}/api/tickets",
            json=payload,
        )
        data = _json(response)
        if not isinstance(data, dict) or data.get("id") is None:
            raise HelpdeskError("Helpdesk ticket response has no id", response.status_code)
        return CreatedTicket(id=data["id"], status=data.get("status"))

    async def delete_attachment(self, attachment: UploadedAttachment) -> None:
        await self._request("DELETE", attachment.url)

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


def _json(response: httpx.Response):
    try:
        return response.json()
    except ValueError as e:
        raise HelpdeskError("Helpdesk API returned invalid JSON", response.status_code) from e


def _error_details(response: httpx.Response, fallback: str):
    """Prefer the API's own `errors` payload over our generic message."""
    try:
        body = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and body.get("errors"):
        return body["errors"]
    return fallback
