"""Helpdesk configuration and API result models."""

import base64
from dataclasses import dataclass


@dataclass(frozen=True)
class HelpdeskConfig:
    subdomain: str
    username: str
    api_key: str
    reply_to_email: str
    domain: str = "example-helpdesk.com"
    timeout_seconds: float | None = None  # None = no client-side timeout
    cleanup_orphaned_attachments: bool = True

    @property
    def base_url(self) -> str:
        return f"https://{self.subdomain}.{self.domain}"

    @property
    def authorization(self) -> str:
        """HTTP Basic credentials header value."""
        token = base64.b64encode(f"{self.username}:{self.api_key}".encode()).decode("ascii")
        return f"Basic {token}"


@dataclass
class UploadedAttachment:
    url: str
    name: str
    size: int
    content_type: str

    def as_ticket_attachment(self) -> dict:
        return {
            "url": self.url,
            "name": self.name,
            "size": self.size,
            "content_type": self.content_type,
        }


@dataclass
class CreatedTicket:
    id: int | str
    status: str | None = None  # helpdesk ticket status, e.g. "open"
