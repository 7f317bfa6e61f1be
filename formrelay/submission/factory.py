"""Factory for the process-wide submission service."""

from formrelay.config.settings import get_settings
from formrelay.helpdesk.client import HelpdeskClient
from formrelay.submission.service import SubmissionService

_service: SubmissionService | None = None


def get_submission_service() -> SubmissionService:
    """Get the submission service singleton, building it from settings on first use."""
    global _service
    if _service is not None:
        return _service

    config = get_settings().helpdesk_config()
    _service = SubmissionService(config, HelpdeskClient(config))
    return _service


async def close_submission_service() -> None:
    """Close the helpdesk connection pool on shutdown."""
    global _service
    if _service is not None:
        await _service.close()
        _service = None
