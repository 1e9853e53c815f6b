"""Helpers for reading the UIC flat file and caching the tagged line sequence."""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from pathlib import Path

from uicdb.tagger import TaggedLines, TagMode, tag_lines

# one byte per character so positions match the layout documents
FILE_ENCODING = "latin-1"


def read_lines(path: Path) -> list[str]:
    """Read a fixed-width file into lines without trimming any padding."""
    text = path.read_text(encoding=FILE_ENCODING)
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def write_lines(path: Path, lines: Iterable[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding=FILE_ENCODING, newline="\n") as f:
        for line in lines:
            f.write(line + "\n")


def latest_download(data_dir: Path) -> Path:
    """Return the most recent (date-named) download folder under data_dir."""
    folders = sorted((p for p in data_dir.iterdir() if p.is_dir()), reverse=True)
    if not folders:
        raise FileNotFoundError(f"No download folders under {data_dir}")
    return folders[0]


def file_digest(path: Path, algo: str = "sha256") -> str:
    h = hashlib.new(algo)
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return f"{algo}:{h.hexdigest()}"


def cache_path(path: Path, cache_dir: Path, mode: TagMode = "insert") -> Path:
    digest = file_digest(path).split(":", 1)[1]
    return cache_dir / f"uic_tagged_{mode}_{digest[:16]}.txt"


def load_or_tag(
    path: Path, cache_dir: Path | None = None, mode: TagMode = "insert"
) -> tuple[TaggedLines, bool]:
    """Tag a flat file, reusing a cached result keyed by the file's content hash.

    Returns the tagged lines and whether they came from the cache.
    """
    if cache_dir is None:
        return tag_lines(read_lines(path), mode=mode), False

    cached = cache_path(path, cache_dir, mode)
    if cached.exists():
        return TaggedLines(read_lines(cached), mode=mode), True

    tagged = tag_lines(read_lines(path), mode=mode)
    # only a fully written file ever appears under the cache name
    partial = cached.with_suffix(".tmp")
    write_lines(partial, tagged)
    partial.replace(cached)
    return tagged, False
