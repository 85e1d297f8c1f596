"""Plain console rendering of planned documentation items."""

from __future__ import annotations

import sys
from typing import Iterable, TextIO

from .models import ContentItem, ItemKind


class ConsoleRenderer:
    """Writes file-backed and text-backed items to a stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stdout

    def show(self, items: Iterable[ContentItem], *, raw: bool = False) -> None:
        for index, item in enumerate(items):
            if index and not raw:
                self.stream.write("\n")
            self.show_item(item, raw=raw)

    def show_item(self, item: ContentItem, *, raw: bool = False) -> None:
        if item.kind is ItemKind.FILE and item.path is not None:
            body = item.path.read_text(encoding="utf-8", errors="replace")
        else:
            body = item.content or ""
        if not raw:
            self.stream.write(f"{item.title}\n{'=' * len(item.title)}\n\n")
        self.stream.write(body)
        if not body.endswith("\n"):
            self.stream.write("\n")


__all__ = ["ConsoleRenderer"]
