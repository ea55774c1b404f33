"""Multipart form payloads.

A FormData payload passed to a non-GET action is sent as
multipart/form-data. The transport writes the ``Content-Type`` header
(with its boundary), so the action drops any configured one.

Example:
    >>> form = FormData()
    >>> form.append("name", "avatar")
    >>> form.append_file("file", "me.png", png_bytes, "image/png")
    >>> await upload_avatar(form)
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import IO, Any, Union

FileContent = Union[bytes, IO[bytes]]


@dataclass(frozen=True)
class FormField:
    """A plain text form field."""

    name: str
    value: str


@dataclass(frozen=True)
class FormFile:
    """A file part of a form."""

    name: str
    filename: str
    content: FileContent
    content_type: str | None = None


FormEntry = Union[FormField, FormFile]


class FormData:
    """Ordered multipart payload; names may repeat."""

    def __init__(self, fields: dict[str, Any] | None = None) -> None:
        self._entries: list[FormEntry] = []
        for name, value in (fields or {}).items():
            self.append(name, value)

    def append(self, name: str, value: Any) -> None:
        """Append a text field; non-string values are converted with ``str()``."""
        self._entries.append(FormField(name=name, value=value if isinstance(value, str) else str(value)))

    def append_file(
        self,
        name: str,
        filename: str,
        content: FileContent,
        content_type: str | None = None,
    ) -> None:
        self._entries.append(FormFile(name=name, filename=filename, content=content, content_type=content_type))

    def get(self, name: str) -> FormEntry | None:
        for entry in self._entries:
            if entry.name == name:
                return entry
        return None

    def get_all(self, name: str) -> list[FormEntry]:
        return [entry for entry in self._entries if entry.name == name]

    def to_httpx_files(self) -> list[tuple[str, tuple[Any, ...]]]:
        """Render entries as an httpx ``files=`` list.

        Text fields use a ``None`` filename so httpx emits them as plain
        form-data parts, which keeps the body multipart even without files.
        """
        parts: list[tuple[str, tuple[Any, ...]]] = []
        for entry in self._entries:
            if isinstance(entry, FormFile):
                if entry.content_type:
                    parts.append((entry.name, (entry.filename, entry.content, entry.content_type)))
                else:
                    parts.append((entry.name, (entry.filename, entry.content)))
            else:
                parts.append((entry.name, (None, entry.value.encode("utf-8"))))
        return parts

    def __iter__(self) -> Iterator[FormEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return any(entry.name == name for entry in self._entries)

    def __repr__(self) -> str:
        names = ", ".join(entry.name for entry in self._entries)
        return f"FormData([{names}])"


def empty_multipart_body(boundary: str) -> bytes:
    """Encode a multipart body with no parts.

    httpx sends nothing for an empty ``files=`` list, so an empty form is
    written out as just the closing delimiter.
    """
    return f"--{boundary}--\r\n".encode("ascii")
