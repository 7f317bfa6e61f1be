"""Multipart request decoder.

Feeds the raw request body through python-multipart's streaming parser
and yields typed parts as soon as each one is complete. Payload bytes
are kept as bytes; only text field values are decoded. Any preamble
before the first delimiter line is discarded.

Form rules applied by collect_form():
- parts without a Content-Disposition header are ignored
- a non-empty filename makes the part the form's file (last one wins)
- otherwise a named part is a text field (last value wins)
- empty field values are dropped
"""

import codecs
from collections.abc import AsyncIterable, AsyncGenerator, Iterable, Iterator

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from formrelay.multipart.models import DEFAULT_CONTENT_TYPE, DecodedForm, FileAttachment, Part


class ParseError(ValueError):
    """Raised when the Content-Type header or the multipart body is malformed."""


def boundary_from_content_type(content_type: str | bytes | None) -> bytes:
    """Extract the multipart boundary from a Content-Type header value."""
    if not content_type:
        raise ParseError("Missing Content-Type header")

    ctype, options = parse_options_header(content_type)
    if not ctype.startswith(b"multipart/"):
        raise ParseError(f"Expected a multipart Content-Type, got {ctype.decode('latin-1')!r}")

    boundary = options.get(b"boundary", b"")
    if not boundary:
        raise ParseError("Content-Type header has no boundary parameter")
    return boundary


class MultipartDecoder:
    """Incremental decoder: feed() chunks, collect finished parts, close()."""

    def __init__(self, boundary: bytes | str):
        if isinstance(boundary, str):
            boundary = boundary.encode("latin-1")
        self._delimiter = b"--" + boundary
        self._preamble = bytearray()
        self._at_body_start = True
        self._in_body = False

        self._ready: list[Part] = []
        self._part: Part | None = None
        self._data = bytearray()
        self._header_field = b""
        self._header_value = b""
        self._finished = False

        self._parser = MultipartParser(
            boundary,
            callbacks={
                "on_part_begin": self._on_part_begin,
                "on_part_data": self._on_part_data,
                "on_part_end": self._on_part_end,
                "on_header_field": self._on_header_field,
                "on_header_value": self._on_header_value,
                "on_header_end": self._on_header_end,
                "on_end": self._on_end,
            },
        )

    # --- parser callbacks ---

    def _on_part_begin(self) -> None:
        self._part = Part()
        self._data = bytearray()

    def _on_part_data(self, data: bytes, start: int, end: int) -> None:
        self._data += data[start:end]

    def _on_part_end(self) -> None:
        if self._part is None:
            return
        self._part.data = bytes(self._data)
        self._ready.append(self._part)
        self._part = None
        self._data = bytearray()

    # Header names and values may arrive split across chunks
    def _on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def _on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def _on_header_end(self) -> None:
        if self._part is not None:
            self._part.headers.append((self._header_field.strip().lower(), self._header_value.strip()))
        self._header_field = b""
        self._header_value = b""

    def _on_end(self) -> None:
        self._finished = True

    # --- public API ---

    def _skip_preamble(self, chunk: bytes) -> bytes:
        """Drop bytes before the first delimiter line; return what the parser should see.

        The delimiter must open the body or follow a line break. The buffer's
        tail is held back so a delimiter split across chunks is still found.
        """
        self._preamble += chunk
        index = self._preamble.find(self._delimiter)
        while index != -1:
            if (index == 0 and self._at_body_start) or self._preamble[index - 1:index] == b"\n":
                body = bytes(self._preamble[index:])
                self._preamble = bytearray()
                self._in_body = True
                return body
            index = self._preamble.find(self._delimiter, index + 1)

        keep = len(self._delimiter)
        if len(self._preamble) > keep:
            del self._preamble[:-keep]
            self._at_body_start = False
        return b""

    def feed(self, chunk: bytes) -> list[Part]:
        """Parse a chunk and return the parts it completed."""
        if chunk and not self._in_body:
            chunk = self._skip_preamble(chunk)

        if chunk and not self._finished:
            try:
                self._parser.write(chunk)
            except MultipartParseError as e:
                raise ParseError(f"Malformed multipart body: {e}") from e

        ready, self._ready = self._ready, []
        return ready

    def close(self) -> None:
        """Signal end of input. Raises ParseError if the body was truncated."""
        self._parser.finalize()
        if not self._finished:
            raise ParseError("Multipart body ended before the closing boundary")


def iter_parts(boundary: bytes | str, chunks: Iterable[bytes]) -> Iterator[Part]:
    """Lazily yield parts from a sync iterable of body chunks."""
    decoder = MultipartDecoder(boundary)
    for chunk in chunks:
        yield from decoder.feed(chunk)
    decoder.close()


async def aiter_parts(boundary: bytes | str, chunks: AsyncIterable[bytes]) -> AsyncGenerator[Part, None]:
    """Lazily yield parts from an async iterable of body chunks (e.g. an ASGI stream)."""
    decoder = MultipartDecoder(boundary)
    async for chunk in chunks:
        for part in decoder.feed(chunk):
            yield part
    decoder.close()


def _charset(part: Part) -> str:
    """Codec for a text field: the part's declared charset, else UTF-8."""
    try:
        return codecs.lookup(part.charset or "utf-8").name
    except LookupError:
        return "utf-8"


def add_part(form: DecodedForm, part: Part) -> None:
    """Apply a single part to the form being built."""
    if part.content_disposition is None:
        return

    if part.filename:
        form.file = FileAttachment(
            name=part.filename,
            data=part.data,
            content_type=part.content_type or DEFAULT_CONTENT_TYPE,
        )
    elif part.name:
        value = part.data.decode(_charset(part), errors="replace")
        if value:
            form.fields[part.name] = value


def collect_form(parts: Iterable[Part]) -> DecodedForm:
    form = DecodedForm()
    for part in parts:
        add_part(form, part)
    return form


def decode_form(body: bytes, content_type: str | bytes | None) -> DecodedForm:
    """Decode a complete in-memory multipart body."""
    boundary = boundary_from_content_type(content_type)
    return collect_form(iter_parts(boundary, [body]))


async def decode_stream(stream: AsyncIterable[bytes], content_type: str | bytes | None) -> DecodedForm:
    """Decode a multipart body while it is being received."""
    boundary = boundary_from_content_type(content_type)
    form = DecodedForm()
    async for part in aiter_parts(boundary, stream):
        add_part(form, part)
    return form
