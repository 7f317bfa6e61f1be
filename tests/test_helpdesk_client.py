"""Tests for formrelay/helpdesk/client.py — helpdesk REST client."""

import base64
from unittest.mock import AsyncMock, MagicMock

import pytest
import httpx

from formrelay.helpdesk.client import HelpdeskClient, HelpdeskError
from formrelay.helpdesk.models import HelpdeskConfig
from formrelay.multipart.models import FileAttachment


def _response(status_code: int = 200, body=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def client(helpdesk_config) -> HelpdeskClient:
    return HelpdeskClient(helpdesk_config)


@pytest.fixture
def http():
    mock_client = AsyncMock()
    mock_client.is_closed = False
    return mock_client


@pytest.fixture
def pdf() -> FileAttachment:
    return FileAttachment(name="price-list.pdf", data=b"%PDF-1.4 abc", content_type="application/pdf")


class TestHelpdeskConfig:

    def test_base_url(self, helpdesk_config):
        assert helpdesk_config.base_url == "https://acme.example-helpdesk.com"

    def test_custom_domain(self):
        config = HelpdeskConfig("acme", "u", "k", "r@acme.test", domain="gorgias.com")
        assert config.base_url == "https://acme.gorgias.com"

    def test_basic_authorization(self, helpdesk_config):
        expected = base64.b64encode(b"agent@acme.test:secret-key").decode()
        assert helpdesk_config.authorization == f"Basic {expected}"


class TestUploadAttachment:

    async def test_upload_success(self, client, http, pdf, helpdesk_config):
        http.request.return_value = _response(200, {
            "url": "https://uploads.example-helpdesk.com/acme/price-list.pdf",
            "name": "price-list.pdf",
            "size": 12,
            "content_type": "application/pdf",
        })
        client._client = http

        attachment = await client.upload_attachment(pdf)

        assert attachment.url == "https://uploads.example-helpdesk.com/acme/price-list.pdf"
        assert attachment.size == 12

        args, kwargs = http.request.call_args
        assert args == ("POST", "https://acme.example-helpdesk.com/api/upload")
        assert kwargs["params"] == {"type": "attachment"}
        assert kwargs["files"] == {"file": ("price-list.pdf", b"%PDF-1.4 abc", "application/pdf")}
        assert kwargs["headers"]["Authorization"] == helpdesk_config.authorization

    async def test_upload_list_response(self, client, http, pdf):
        http.request.return_value = _response(201, [{"url": "https://cdn.test/a.pdf"}])
        client._client = http

        attachment = await client.upload_attachment(pdf)

        assert attachment.url == "https://cdn.test/a.pdf"
        # Missing metadata falls back to the uploaded file's own
        assert attachment.name == "price-list.pdf"
        assert attachment.size == pdf.size
        assert attachment.content_type == "application/pdf"

    async def test_upload_null_metadata_falls_back(self, client, http, pdf):
        http.request.return_value = _response(200, {
            "url": "https://cdn.test/a.pdf", "name": None, "size": None, "content_type": None,
        })
        client._client = http

        attachment = await client.upload_attachment(pdf)

        assert attachment.name == "price-list.pdf"
        assert attachment.size == pdf.size
        assert attachment.content_type == "application/pdf"

    async def test_upload_without_url_raises(self, client, http, pdf):
        http.request.return_value = _response(200, {"name": "x"})
        client._client = http

        with pytest.raises(HelpdeskError):
            await client.upload_attachment(pdf)

    async def test_upload_error_status_surfaces_upstream_errors(self, client, http, pdf):
        http.request.return_value = _response(500, {"errors": {"file": ["too large"]}})
        client._client = http

        with pytest.raises(HelpdeskError) as exc_info:
            await client.upload_attachment(pdf)
        assert exc_info.value.status_code == 500
        assert exc_info.value.details == {"file": ["too large"]}

    async def test_error_status_without_json_body(self, client, http, pdf):
        http.request.return_value = _response(502, ValueError("not json"))
        client._client = http

        with pytest.raises(HelpdeskError) as exc_info:
            await client.upload_attachment(pdf)
        assert exc_info.value.details == "Helpdesk API returned status 502"

    async def test_invalid_json_raises(self, client, http, pdf):
        http.request.return_value = _response(200, ValueError("not json"))
        client._client = http

        with pytest.raises(HelpdeskError):
            await client.upload_attachment(pdf)

    async def test_connect_error(self, client, http, pdf):
        http.request.side_effect = httpx.ConnectError("Connection refused")
        client._client = http

        with pytest.raises(HelpdeskError) as exc_info:
            await client.upload_attachment(pdf)
        assert exc_info.value.status_code is None
        assert "Cannot reach" in str(exc_info.value)

    async def test_timeout(self, client, http, pdf):
        http.request.side_effect = httpx.ReadTimeout("Timed out")
        client._client = http

        with pytest.raises(HelpdeskError) as exc_info:
            await client.upload_attachment(pdf)
        assert "timed out" in str(exc_info.value)


class TestCreateTicket:

    async def test_create_ticket_success(self, client, http):
        http.request.return_value = _response(201, {"id": 42, "status": "open"})
        client._client = http

        ticket = await client.create_ticket({"subject": "hi"})

        assert ticket.id == 42
        assert ticket.status == "open"
        args, kwargs = http.request.call_args
        assert args == ("POST", "https://acme.example-helpdesk.com/api/tickets")
        assert kwargs["json"] == {"subject": "hi"}

    async def test_missing_id_raises(self, client, http):
        http.request.return_value = _response(200, {"status": "open"})
        client._client = http

        with pytest.raises(HelpdeskError):
            await client.create_ticket({})

    async def test_rejected_ticket(self, client, http):
        http.request.return_value = _response(400, {"errors": {"customer": ["invalid email"]}})
        client._client = http

        with pytest.raises(HelpdeskError) as exc_info:
            await client.create_ticket({})
        assert exc_info.value.status_code == 400
        assert exc_info.value.details == {"customer": ["invalid email"]}


class TestDeleteAndClose:

    async def test_delete_attachment(self, client, http, uploaded_attachment):
        http.request.return_value = _response(204, None)
        client._client = http

        await client.delete_attachment(uploaded_attachment)

        args, _ = http.request.call_args
        assert args == ("DELETE", uploaded_attachment.url)

    async def test_close(self, client, http):
        client._client = http

        await client.close()
        http.aclose.assert_called_once()
        assert client._client is None

    async def test_close_when_no_client(self, client):
        await client.close()
