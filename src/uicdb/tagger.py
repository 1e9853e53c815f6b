"""Propagate UIC control numbers from header rows into detail rows.

The RRC UIC flat file has no foreign keys: a detail record belongs to the
closest "01" header above it. Tagging copies the header's control number into
every detail line so each table can be joined back after extraction.

Modes:
- insert: place the control number right after the record-type code. Detail
  lines grow by CONTROL_WIDTH characters, so every detail field moves right by
  the same amount (see extractor.offset_for).
- overwrite: replace the CONTROL_WIDTH characters after the record-type code,
  keeping the line length.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Literal

HEADER_TYPE = "01"
TYPE_WIDTH = 2
CONTROL_WIDTH = 9

TagMode = Literal["insert", "overwrite"]
TAG_MODES: tuple[str, ...] = ("insert", "overwrite")


class MalformedHeaderError(ValueError):
    """A detail line appeared before any header line."""

    def __init__(self, index: int, line: str) -> None:
        self.index = index
        self.line = line
        super().__init__(
            f"Line {index + 1} has record type {line[:TYPE_WIDTH]!r} but no "
            f"{HEADER_TYPE!r} header precedes it."
        )


class AlreadyTaggedError(ValueError):
    """The sequence was already produced by tag_lines."""


class TaggedLines(list):
    """Lines carrying the control number of their header."""

    def __init__(self, lines: Iterable[str] = (), mode: TagMode = "insert") -> None:
        super().__init__(lines)
        self.mode = mode


def record_type(line: str) -> str:
    return line[:TYPE_WIDTH]


def control_number(header: str) -> str:
    """Read the control number from positions 3-11 of a header line."""
    return header[TYPE_WIDTH : TYPE_WIDTH + CONTROL_WIDTH]


def tag_line(
    current: str | None, line: str, mode: TagMode = "insert", index: int = 0
) -> tuple[str | None, str]:
    """One step of the tagging scan: (current control number, line) -> (next, tagged)."""
    if record_type(line) == HEADER_TYPE:
        return control_number(line), line
    if current is None:
        raise MalformedHeaderError(index, line)

    prefix = line[:TYPE_WIDTH]
    if mode == "insert":
        suffix = line[TYPE_WIDTH:]
    elif mode == "overwrite":
        suffix = line[TYPE_WIDTH + CONTROL_WIDTH :]
    else:
        raise ValueError(f"Unknown tag mode '{mode}'. Choose from {TAG_MODES}.")
    return current, prefix + current + suffix


def tag_lines(lines: Iterable[str], mode: TagMode = "insert") -> TaggedLines:
    """Tag every detail line with the control number of the header above it."""
    if isinstance(lines, TaggedLines):
        raise AlreadyTaggedError(
            f"Lines were already tagged in {lines.mode!r} mode; tag the raw file instead."
        )
    if mode not in TAG_MODES:
        raise ValueError(f"Unknown tag mode '{mode}'. Choose from {TAG_MODES}.")
    tagged = TaggedLines(mode=mode)
    current: str | None = None
    for idx, line in enumerate(lines):
        current, out = tag_line(current, line, mode=mode, index=idx)
        tagged.append(out)
    return tagged
