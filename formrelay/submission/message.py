"""Ticket message rendering for B2B form submissions."""

from html import escape

from formrelay.helpdesk.models import UploadedAttachment
from formrelay.multipart.models import FileAttachment

TITLE = "B2B Form Submission"
NO_MESSAGE = "No message provided"
FORM_TAG = "b2b-form"


def build_message_html(fields: dict[str, str], file: FileAttachment) -> str:
    message = fields.get("message")
    message_html = escape(message).replace("\n", "<br>") if message else NO_MESSAGE
    return "\n".join([
        f"<h3>{TITLE}</h3>",
        f"<p><strong>Company:</strong> {escape(fields.get('companyName', ''))}</p>",
        f"<p><strong>Email:</strong> {escape(fields.get('email', ''))}</p>",
        f"<p><strong>Organization Type:</strong> {escape(fields.get('organizationType', ''))}</p>",
        "<p><strong>Message:</strong></p>",
        f"<p>{message_html}</p>",
        f"<p><strong>Attached Document:</strong> {escape(file.name)}</p>",
    ])


def build_message_text(fields: dict[str, str], file: FileAttachment) -> str:
    return "\n".join([
        TITLE,
        f"Company: {fields.get('companyName', '')}",
        f"Email: {fields.get('email', '')}",
        f"Organization Type: {fields.get('organizationType', '')}",
        f"Message: {fields.get('message') or NO_MESSAGE}",
        f"Attached Document: {file.name}",
    ])


def build_ticket_payload(
    fields: dict[str, str],
    file: FileAttachment,
    attachment: UploadedAttachment,
    reply_to_email: str,
) -> dict:
    """Build the ticket-creation body: one inbound email message carrying the attachment."""
    company = fields.get("companyName", "")
    email = fields.get("email", "")
    organization_type = fields.get("organizationType")

    tags = [FORM_TAG]
    if organization_type:
        tags.append(organization_type)

    return {
        "channel": "email",
        "via": "api",
        "customer": {"email": email, "name": company},
        "messages": [
            {
                "source": {
                    "type": "email",
                    "to": [{"address": reply_to_email}],
                    "from": {"address": email},
                },
                "body_html": build_message_html(fields, file),
                "body_text": build_message_text(fields, file),
                "channel": "email",
                "from_agent": False,
                "via": "api",
                "attachments": [attachment.as_ticket_attachment()],
            }
        ],
        "subject": f"{TITLE} - {company}",
        "tags": tags,
    }
