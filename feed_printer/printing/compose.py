"""
Print job composition.

A PrintJob is an ordered, single-use list of directives. Each directive knows how
to replay itself onto a python-escpos printer object, so the same job can be
serialized into an in-memory command buffer and then flushed over whichever
transport the connection uses. Composers never reorder or drop directives and
always end with a cut.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Sequence, Tuple, Union

from feed_printer.printing.dither import BinaryRaster

logger = logging.getLogger(__name__)

DEFAULT_MIN_DOTS = 800  # ~10 cm of paper
DOTS_PER_LINE = 24

DENSITY_D24 = "d24"

# python-escpos image() arguments per density mode
_DENSITY_MODES = {
    "d8": {"impl": "bitImageColumn", "high_density_vertical": False, "high_density_horizontal": False},
    "s8": {"impl": "bitImageColumn", "high_density_vertical": False, "high_density_horizontal": True},
    "d24": {"impl": "bitImageColumn", "high_density_vertical": True, "high_density_horizontal": True},
    "s24": {"impl": "bitImageColumn", "high_density_vertical": True, "high_density_horizontal": False},
}


@dataclass(frozen=True)
class Style:
    font: str = "a"
    align: str = "left"
    bold: bool = False
    width: int = 1
    height: int = 1

    def apply(self, p: Any) -> None:
        p.set(
            font=self.font,
            align=self.align,
            bold=self.bold,
            custom_size=True,
            width=self.width,
            height=self.height,
        )


@dataclass(frozen=True)
class TextLine:
    text: str

    def apply(self, p: Any) -> None:
        p.textln(self.text)


@dataclass(frozen=True)
class Feed:
    def apply(self, p: Any) -> None:
        p.ln()


@dataclass(frozen=True)
class RasterBlock:
    raster: BinaryRaster
    density: str = DENSITY_D24

    def apply(self, p: Any) -> None:
        p.image(self.raster.to_image(), **_DENSITY_MODES[self.density])


@dataclass(frozen=True)
class Cut:
    def apply(self, p: Any) -> None:
        p.cut()


Directive = Union[Style, TextLine, Feed, RasterBlock, Cut]


class PrintJob:
    """
    Ordered directives for one receipt. Built once, consumed once.
    """

    def __init__(self, kind: str, directives: Sequence[Directive]):
        if not directives or not isinstance(directives[-1], Cut):
            raise ValueError("a print job must end with a cut")
        self.kind = kind
        self.directives: Tuple[Directive, ...] = tuple(directives)
        self._consumed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    def consume(self) -> Tuple[Directive, ...]:
        """Hand out the directives exactly once."""
        if self._consumed:
            raise RuntimeError(f"{self.kind} print job was already written")
        self._consumed = True
        return self.directives

    def count(self, directive_type: type) -> int:
        return sum(1 for d in self.directives if isinstance(d, directive_type))

    def __repr__(self) -> str:
        return f"PrintJob(kind={self.kind!r}, directives={len(self.directives)})"


def minimum_feed_lines(min_dots: int = DEFAULT_MIN_DOTS, dots_per_line: int = DOTS_PER_LINE) -> int:
    """
    Number of feed lines needed so a receipt is at least min_dots long.
    """
    if dots_per_line <= 0:
        raise ValueError("dots_per_line must be positive")
    return max(0, math.ceil(min_dots / dots_per_line))


def format_timestamp(value: str) -> str:
    """
    Render an ISO-8601 timestamp in local time; return the input unchanged when
    it cannot be parsed.
    """
    raw = (value or "").strip()
    try:
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return raw
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def _tail(min_dots: int, dots_per_line: int) -> List[Directive]:
    feeds: List[Directive] = [Feed() for _ in range(minimum_feed_lines(min_dots, dots_per_line))]
    return [*feeds, Cut()]


def compose_message(
    name: str,
    body: str,
    *,
    min_dots: int = DEFAULT_MIN_DOTS,
    dots_per_line: int = DOTS_PER_LINE,
) -> PrintJob:
    """
    "{name}: {body}" in bold, padded to the minimum receipt length, then cut.
    """
    directives: List[Directive] = [
        Style(font="a", align="left", bold=True),
        TextLine(f"{name}: {body}"),
        *_tail(min_dots, dots_per_line),
    ]
    return PrintJob("message", directives)


def compose_feed_item(
    display_name: str,
    handle: str,
    created_at: str,
    body: str,
    *,
    min_dots: int = DEFAULT_MIN_DOTS,
    dots_per_line: int = DOTS_PER_LINE,
) -> PrintJob:
    """
    Bold author header, then the timestamp and body in normal weight.
    """
    directives: List[Directive] = [
        Style(font="a", align="left", bold=True),
        TextLine(f"{display_name} (@{handle})"),
        Style(font="a", align="left", bold=False),
        TextLine(format_timestamp(created_at)),
        TextLine(body),
        *_tail(min_dots, dots_per_line),
    ]
    return PrintJob("feed_item", directives)


def compose_image(raster: BinaryRaster, density: str = DENSITY_D24) -> PrintJob:
    if density not in _DENSITY_MODES:
        raise ValueError(f"Unsupported image density: {density}")
    return PrintJob("image", [RasterBlock(raster, density), Cut()])


__all__ = [
    "DEFAULT_MIN_DOTS",
    "DENSITY_D24",
    "DOTS_PER_LINE",
    "Cut",
    "Directive",
    "Feed",
    "PrintJob",
    "RasterBlock",
    "Style",
    "TextLine",
    "compose_feed_item",
    "compose_image",
    "compose_message",
    "format_timestamp",
    "minimum_feed_lines",
]
