"""Tag filter document reader.

Input is a stream of concatenated JSON documents, each shaped like
``{"TagFilters": [{"Key": "...", "Values": ["..."]}]}``. Documents need no
separator beyond their own braces; whitespace between them is ignored.
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import BinaryIO, Callable, Iterator, Optional, TextIO, Union

from tagreaper.exceptions import TagFilterDecodeError
from tagreaper.models.tag_filter import TagFilterDocument
from tagreaper.utils.diagnostics import emit_error

logger = logging.getLogger(__name__)


class TagFilterReader:
    """Lazily decode tag filter documents from a text or byte stream.

    Iterating the reader yields one TagFilterDocument per input document and
    stops cleanly at end of stream. A malformed document is fatal unless
    ignore_errors is set, in which case a diagnostic is emitted and reading
    resumes after the end of the malformed document, never inside it. Input
    is only read until the current document is complete.

    Attributes:
        stream: Input stream (text or bytes)
        ignore_errors: Skip malformed documents instead of raising
        chunk_size: Number of characters/bytes read per call
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(
        self,
        stream: Union[TextIO, BinaryIO],
        ignore_errors: bool = False,
        chunk_size: int = CHUNK_SIZE,
        diagnostics: Callable[[str], None] = emit_error,
    ) -> None:
        """Initialize reader.

        Args:
            stream: Input stream (text or bytes)
            ignore_errors: Skip malformed documents instead of raising
            chunk_size: Read size per call (default: 64 KiB)
            diagnostics: Callback receiving diagnostic messages (default: JSON line on stdout)
        """
        self.stream = stream
        self.ignore_errors = ignore_errors
        self.chunk_size = chunk_size
        self._diagnostics = diagnostics
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def __iter__(self) -> Iterator[TagFilterDocument]:
        decoder = json.JSONDecoder()
        buffer = ""
        offset = 0  # characters consumed before buffer[0]
        eof = False

        while True:
            stripped = buffer.lstrip()
            offset += len(buffer) - len(stripped)
            buffer = stripped

            if not buffer:
                if eof:
                    return
                chunk = self._read()
                if chunk is None:
                    eof = True
                else:
                    buffer += chunk
                continue

            try:
                data, end = decoder.raw_decode(buffer)
            except json.JSONDecodeError as e:
                skip = top_level_end(buffer)
                if skip is None and not eof:
                    # The document may just be incomplete; read more before deciding
                    chunk = self._read()
                    if chunk is None:
                        eof = True
                    else:
                        buffer += chunk
                    continue

                self._handle_error(f"{e.msg} at offset {offset + e.pos}", offset + e.pos)
                if skip is None:
                    # Unbalanced document at end of stream; resume at the next brace
                    resume = buffer.find("{", max(e.pos, 1))
                    skip = len(buffer) if resume < 0 else resume
                offset += skip
                buffer = buffer[skip:]
                continue

            position = offset
            offset += end
            buffer = buffer[end:]

            try:
                document = TagFilterDocument.from_dict(data)
            except ValueError as e:
                self._handle_error(f"invalid tag filter document at offset {position}: {e}", position)
                continue

            logger.debug(f"Decoded tag filter document with {len(document.tag_filters)} filter(s)")
            yield document

    def _read(self) -> Optional[str]:
        """Read the next chunk as text, returning None at end of stream."""
        chunk = self.stream.read(self.chunk_size)
        if isinstance(chunk, bytes):
            final = not chunk
            text = self._utf8.decode(chunk, final=final)
            if final and not text:
                return None
            return text
        return chunk or None

    def _handle_error(self, message: str, position: Optional[int]) -> None:
        if not self.ignore_errors:
            raise TagFilterDecodeError(message, position)
        logger.warning(f"Skipping malformed tag filter document: {message}")
        self._diagnostics(message)


def top_level_end(text: str) -> Optional[int]:
    """Find where the next top-level document can start after the one at text[0].

    For an object or array this is the index just past its closing bracket,
    found by counting brackets outside string literals. For any other leading
    token it is the index of the next ``{``.

    Args:
        text: Buffer starting at a (possibly malformed) document

    Returns:
        Index to resume reading at, or None if the document is not complete yet
    """
    if text[0] not in "{[":
        resume = text.find("{", 1)
        return resume if resume > 0 else None

    depth = 0
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return i + 1

    return None
