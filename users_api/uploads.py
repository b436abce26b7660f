"""Multipart parsing and validation for the single ``image`` attachment.

The request body is streamed through python-multipart. The image part is
collected into memory and refused as soon as it grows past the limit, so
no more than one stream chunk beyond ``max_bytes`` is ever read.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from fastapi import Request
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from .errors import BadRequest, PayloadTooLarge, UnexpectedFile, UnsupportedMediaType

logger = logging.getLogger(__name__)


@dataclass
class UploadForm:
    fields: Dict[str, str] = field(default_factory=dict)
    image: Optional[bytes] = None
    content_type: Optional[str] = None


class _PartCollector:
    """python-multipart callbacks that validate parts as they arrive."""

    def __init__(self, guard: "UploadGuard"):
        self.guard = guard
        self.form = UploadForm()
        self._headers: List[Tuple[bytes, bytes]] = []
        self._header_field = b""
        self._header_value = b""
        self._name = ""
        self._is_file = False
        self._skip = False
        self._data = bytearray()

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self.on_part_begin,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
        }

    def on_part_begin(self) -> None:
        self._headers = []
        self._data = bytearray()
        self._name = ""
        self._is_file = False
        self._skip = False

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_field += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        self._headers.append((self._header_field.lower(), self._header_value))
        self._header_field = b""
        self._header_value = b""

    def on_headers_finished(self) -> None:
        headers = dict(self._headers)
        _, options = parse_options_header(headers.get(b"content-disposition", b""))
        if b"name" not in options:
            raise BadRequest("Missing name in multipart part")
        self._name = options[b"name"].decode("utf-8")

        if b"filename" not in options:
            return
        if not options[b"filename"]:
            # Empty file input submitted by a browser form.
            self._skip = True
            return

        self._is_file = True
        content_type = headers.get(b"content-type", b"").decode("latin-1")
        self.guard.check_file(self._name, content_type, self.form)
        self.form.content_type = content_type

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self._skip:
            return
        self._data.extend(data[start:end])
        if len(self._data) > self.guard.max_bytes:
            if self._is_file:
                self.guard.reject_size(self._name)
            raise BadRequest(f"Field '{self._name}' is too large")

    def on_part_end(self) -> None:
        if self._skip:
            return
        if self._is_file:
            self.form.image = bytes(self._data)
        else:
            self.form.fields[self._name] = self._data.decode("utf-8")


class UploadGuard:
    """Accept at most one image file under ``field_name``, fully buffered.

    Rejections happen before the service runs, so a refused upload never
    creates or changes a record.
    """

    def __init__(self, max_bytes: int, field_name: str = "image"):
        self.max_bytes = max_bytes
        self.field_name = field_name

    async def parse(self, request: Request) -> UploadForm:
        content_type, params = parse_options_header(request.headers.get("content-type", ""))

        if content_type == b"multipart/form-data":
            return await self._parse_multipart(request, params)
        if content_type == b"application/x-www-form-urlencoded":
            # Plain forms carry no files; Starlette parses them in memory.
            form_data = await request.form()
            return UploadForm(fields={key: value for key, value in form_data.multi_items()})
        return UploadForm()

    async def _parse_multipart(self, request: Request, params: dict) -> UploadForm:
        boundary = params.get(b"boundary")
        if not boundary:
            raise BadRequest("Missing boundary in multipart")

        collector = _PartCollector(self)
        parser = MultipartParser(boundary, collector.callbacks())
        try:
            async for chunk in request.stream():
                parser.write(chunk)
            parser.finalize()
        except MultipartParseError as exc:
            logger.warning("Rejected malformed multipart body: %s", exc)
            raise BadRequest("Malformed multipart body") from exc
        return collector.form

    def check_file(self, name: str, content_type: str, form: UploadForm) -> None:
        if name != self.field_name or form.content_type is not None:
            logger.warning("Rejected unexpected file field %r", name)
            raise UnexpectedFile()
        if not content_type.startswith("image/"):
            logger.warning("Rejected upload with content type %r", content_type)
            raise UnsupportedMediaType()

    def reject_size(self, name: str) -> None:
        logger.warning("Rejected upload %r larger than %d bytes", name, self.max_bytes)
        raise PayloadTooLarge(
            f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)}MB"
        )
