"""
Incremental table-row tokenizer for EDGAR statement pages.

The document is fed chunk by chunk to lxml's HTML pull parser, so a caller that
stops early never reads (or parses) the rest of the page. Each <tr> becomes a
list of cleaned cell strings; everything else in the markup is ignored, except
the text ahead of the first row, which is kept as `preamble` for unit detection.
Finished elements are cleared as they close, so markup after the table (notes,
exhibits) does not pile up in memory.
"""
from __future__ import annotations

import re
from collections import deque
from typing import IO, Deque, Iterator, List, Optional, Union

from lxml import etree

from edgarfin.errors import StreamError

WS_RE = re.compile(r"\s+")

Row = List[str]
Source = Union[bytes, str, IO[bytes], IO[str]]

_CELL_TAGS = {"td", "th"}
_MAX_PREAMBLE_CHARS = 4000


def _clean_text(s: str) -> str:
    return WS_RE.sub(" ", (s or "").replace("\xa0", " ")).strip()


class RowTokenizer:
    """Yield table rows from a markup stream, one `list[str]` per <tr>."""

    def __init__(self, source: Source, *, chunk_size: int = 64 * 1024, encoding: Optional[str] = None):
        self._source = source
        self._chunk_size = chunk_size
        self._parser = etree.HTMLPullParser(events=("start", "end"), encoding=encoding)
        self._pending: Deque[Row] = deque()
        self._open_rows: List[Row] = []
        self._preamble_parts: List[str] = []
        self._preamble_chars = 0
        self._consumed_inline = False
        self._saw_element = False
        self._root: Optional[etree._Element] = None
        self._eof = False
        self.rows_read = 0

    @property
    def preamble(self) -> str:
        """Text that appeared outside any row before the first row started."""
        return _clean_text(" ".join(self._preamble_parts))

    def __iter__(self) -> Iterator[Row]:
        return self

    def __next__(self) -> Row:
        row = self.next_row()
        if row is None:
            raise StopIteration
        return row

    def next_row(self) -> Optional[Row]:
        """Return the next row's cell texts, or None once the stream is exhausted."""
        while not self._pending:
            if self._eof:
                return None
            self._feed_next_chunk()
        self.rows_read += 1
        return self._pending.popleft()

    # ----------------------------
    # Feeding
    # ----------------------------

    def _read_chunk(self) -> Union[bytes, str]:
        src = self._source
        if isinstance(src, (bytes, str)):
            if self._consumed_inline:
                return b""
            self._consumed_inline = True
            return src
        try:
            return src.read(self._chunk_size)
        except (OSError, ValueError) as e:
            raise StreamError(f"Failed reading document stream: {type(e).__name__}: {e}") from e

    def _feed_next_chunk(self) -> None:
        chunk = self._read_chunk()
        try:
            if chunk:
                self._parser.feed(chunk)
            else:
                self._eof = True
                self._close_parser()
        except etree.LxmlError as e:
            raise StreamError(f"Failed parsing document stream: {e}") from e
        self._drain_events()

    def _close_parser(self) -> None:
        try:
            self._root = self._parser.close()
        except etree.LxmlError:
            # An empty or whitespace-only document has no root element; that is
            # simply a document without rows.
            if self._saw_element:
                raise

    # ----------------------------
    # Event handling
    # ----------------------------

    def _drain_events(self) -> None:
        for event, el in self._parser.read_events():
            tag = el.tag if isinstance(el.tag, str) else ""
            if event == "start":
                self._saw_element = True
                if tag == "tr":
                    self._open_rows.append([])
                continue

            if tag in _CELL_TAGS:
                if self._open_rows:
                    self._open_rows[-1].append(_clean_text(" ".join(el.itertext())))
            elif tag == "tr":
                if self._open_rows:
                    self._pending.append(self._open_rows.pop())
                self._release(el)
            elif self._open_rows:
                # inline markup inside a cell; the cell reads it when it closes
                continue
            elif self._collecting_preamble():
                self._collect_preamble(el)
                # the parent still reads this element's tail, so it stays attached
                el.clear(keep_tail=True)
            else:
                self._release(el)

    def _collecting_preamble(self) -> bool:
        return (
            not self._open_rows
            and not self._pending
            and self.rows_read == 0
            and self._preamble_chars < _MAX_PREAMBLE_CHARS
        )

    def _collect_preamble(self, el: etree._Element) -> None:
        parts = [el.text or ""] + [child.tail or "" for child in el]
        txt = _clean_text(" ".join(parts))
        if txt:
            self._preamble_parts.append(txt)
            self._preamble_chars += len(txt) + 1

    @staticmethod
    def _release(el: etree._Element) -> None:
        """Drop a finished element (and already-finished siblings) from the tree."""
        el.clear(keep_tail=True)
        parent = el.getparent()
        if parent is None:
            return
        while el.getprevious() is not None:
            del parent[0]
