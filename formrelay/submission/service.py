"""Submission orchestrator: decoded form -> attachment upload -> ticket.

The two helpdesk calls run strictly in sequence since the ticket
references the uploaded attachment. When ticket creation fails the
uploaded attachment is deleted on a best-effort basis and reported
back so the caller can reconcile by hand.
"""

from dataclasses import dataclass

from formrelay.helpdesk.client import HelpdeskClient, HelpdeskError
from formrelay.helpdesk.models import HelpdeskConfig, UploadedAttachment
from formrelay.logging.audit import RequestTimer, get_audit_logger
from formrelay.multipart.models import DecodedForm
from formrelay.submission.message import build_ticket_payload


class MissingFileError(Exception):
    """The form decoded cleanly but carried no file part."""


class SubmissionError(Exception):
    """A helpdesk call failed; nothing was retried."""

    def __init__(
        self,
        message: str,
        details=None,
        attachment_url: str | None = None,
        attachment_removed: bool | None = None,
    ):
        super().__init__(message)
        self.details = details if details is not None else message
        self.attachment_url = attachment_url
        self.attachment_removed = attachment_removed


@dataclass
class SubmissionResult:
    ticket_id: int | str
    attachment_url: str


class SubmissionService:
    def __init__(self, config: HelpdeskConfig, client: HelpdeskClient):
        self._config = config
        self._client = client

    async def submit(self, form: DecodedForm) -> SubmissionResult:
        logger = get_audit_logger()
        fields = form.fields

        logger.info(
            "Processing submission",
            extra={"audit_data": {
                "company_name": fields.get("companyName"),
                "email": fields.get("email"),
                "organization_type": fields.get("organizationType"),
                "has_file": form.file is not None,
            }},
        )

        file = form.file
        if file is None:
            raise MissingFileError("No file uploaded")

        # 1. Upload the attachment
        try:
            with RequestTimer() as timer:
                attachment = await self._client.upload_attachment(file)
        except HelpdeskError as e:
            logger.error(
                "Attachment upload failed",
                extra={"audit_data": {"upstream_status": e.status_code, "details": e.details}},
            )
            raise SubmissionError(str(e), details=e.details) from e

        logger.info(
            "Attachment uploaded",
            extra={"audit_data": {
                "attachment_url": attachment.url,
                "file_name": file.name,
                "file_size": file.size,
                "content_type": file.content_type,
                "latency_ms": timer.elapsed_ms,
            }},
        )

        # 2. Create the ticket referencing it
        payload = build_ticket_payload(fields, file, attachment, self._config.reply_to_email)
        try:
            with RequestTimer() as timer:
                ticket = await self._client.create_ticket(payload)
        except HelpdeskError as e:
            logger.error(
                "Ticket creation failed",
                extra={"audit_data": {
                    "upstream_status": e.status_code,
                    "details": e.details,
                    "attachment_url": attachment.url,
                }},
            )
            removed = await self._discard_attachment(attachment)
            raise SubmissionError(
                str(e),
                details=e.details,
                attachment_url=attachment.url,
                attachment_removed=removed,
            ) from e

        logger.info(
            "Ticket created",
            extra={"audit_data": {
                "ticket_id": ticket.id,
                "ticket_status": ticket.status,
                "latency_ms": timer.elapsed_ms,
            }},
        )
        return SubmissionResult(ticket_id=ticket.id, attachment_url=attachment.url)

    async def _discard_attachment(self, attachment: UploadedAttachment) -> bool:
        """Best-effort removal of an attachment no ticket references. Never raises."""
        logger = get_audit_logger()
        if not self._config.cleanup_orphaned_attachments:
            logger.warning(
                "Orphaned attachment left in place",
                extra={"audit_data": {"attachment_url": attachment.url}},
            )
            return False

        try:
            await self._client.delete_attachment(attachment)
        except HelpdeskError as e:
            logger.warning(
                "Orphaned attachment cleanup failed",
                extra={"audit_data": {
                    "attachment_url": attachment.url,
                    "upstream_status": e.status_code,
                    "details": e.details,
                }},
            )
            return False

        logger.info(
            "Orphaned attachment removed",
            extra={"audit_data": {"attachment_url": attachment.url}},
        )
        return True

    async def close(self) -> None:
        await self._client.close()
