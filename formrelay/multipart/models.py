"""Decoded form models."""

from dataclasses import dataclass, field

from python_multipart.multipart import parse_options_header

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class Part:
    """One section of a multipart body: raw headers plus payload bytes."""

    headers: list[tuple[bytes, bytes]] = field(default_factory=list)  # names lower-cased
    data: bytes = b""

    def header(self, name: bytes) -> bytes | None:
        """Return the last value sent for a header, or None."""
        value = None
        for key, val in self.headers:
            if key == name:
                value = val
        return value

    @property
    def content_disposition(self) -> dict[bytes, bytes] | None:
        """Parsed Content-Disposition options, or None when the header is absent."""
        value = self.header(b"content-disposition")
        if value is None:
            return None
        _, options = parse_options_header(value)
        return options

    @property
    def name(self) -> str:
        options = self.content_disposition or {}
        return options.get(b"name", b"").decode("utf-8", errors="replace")

    @property
    def filename(self) -> str:
        options = self.content_disposition or {}
        return options.get(b"filename", b"").decode("utf-8", errors="replace")

    @property
    def content_type(self) -> str | None:
        value = self.header(b"content-type")
        return value.decode("latin-1") if value is not None else None

    @property
    def charset(self) -> str | None:
        _, options = parse_options_header(self.header(b"content-type"))
        value = options.get(b"charset")
        return value.decode("latin-1") if value else None


@dataclass
class FileAttachment:
    name: str
    data: bytes
    content_type: str = DEFAULT_CONTENT_TYPE

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class DecodedForm:
    fields: dict[str, str] = field(default_factory=dict)
    file: FileAttachment | None = None  # last file part wins
