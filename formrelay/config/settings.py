"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings

from formrelay.helpdesk.models import HelpdeskConfig


class Settings(BaseSettings):
    # Helpdesk account (all four are required to relay submissions)
    helpdesk_subdomain: str = ""
    helpdesk_username: str = ""
    helpdesk_api_key: str = ""
    helpdesk_email: str = ""  # reply-to address on the ticket message

    helpdesk_domain: str = "example-helpdesk.com"
    helpdesk_timeout_seconds: float | None = None  # None = platform timeout applies

    # Delete the uploaded attachment if ticket creation fails
    cleanup_orphaned_attachments: bool = True

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_ignore_empty": True}

    @property
    def missing_secrets(self) -> list[str]:
        """Env var names of required helpdesk secrets that are unset."""
        required = {
            "HELPDESK_SUBDOMAIN": self.helpdesk_subdomain,
            "HELPDESK_USERNAME": self.helpdesk_username,
            "HELPDESK_API_KEY": self.helpdesk_api_key,
            "HELPDESK_EMAIL": self.helpdesk_email,
        }
        return [name for name, value in required.items() if not value.strip()]

    def helpdesk_config(self) -> HelpdeskConfig:
        """Build the explicit helpdesk config handed to the client and service."""
        missing = self.missing_secrets
        if missing:
            raise RuntimeError(f"Missing required helpdesk settings: {', '.join(missing)}")
        return HelpdeskConfig(
            subdomain=self.helpdesk_subdomain.strip(),
            username=self.helpdesk_username,
            api_key=self.helpdesk_api_key,
            reply_to_email=self.helpdesk_email.strip(),
            domain=self.helpdesk_domain.strip(),
            timeout_seconds=self.helpdesk_timeout_seconds,
            cleanup_orphaned_attachments=self.cleanup_orphaned_attachments,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
