from pathlib import Path

import pytest

from uicdb.data.loader import (
    cache_path,
    file_digest,
    latest_download,
    load_or_tag,
    read_lines,
    write_lines,
)
from uicdb.tagger import TaggedLines


def test_read_lines_keeps_padding_and_handles_crlf(tmp_path: Path):
    path = tmp_path / "uif700a_mod.txt"
    path.write_bytes(b"01AAAAAAAAA  \r\n07X   \r\n")
    assert read_lines(path) == ["01AAAAAAAAA  ", "07X   "]


def test_read_lines_one_char_per_byte(tmp_path: Path):
    path = tmp_path / "latin.txt"
    path.write_bytes(b"01\xe9AAAAAAAAZ\n")
    lines = read_lines(path)
    assert len(lines[0]) == 12
    assert lines[0][11] == "Z"


def test_write_then_read_lines(tmp_path: Path):
    path = tmp_path / "out" / "lines.txt"
    write_lines(path, ["01A", "07 "])
    assert read_lines(path) == ["01A", "07 "]


def test_latest_download_picks_newest_folder(tmp_path: Path):
    for name in ("2024-08-01", "2024-09-03", "2023-12-31"):
        (tmp_path / name).mkdir()
    (tmp_path / "notes.txt").write_text("ignored")
    assert latest_download(tmp_path).name == "2024-09-03"


def test_latest_download_without_folders(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        latest_download(tmp_path)


def test_file_digest_format(tmp_path: Path):
    path = tmp_path / "sample.txt"
    path.write_bytes(b"abcd")
    assert file_digest(path) == (
        "sha256:88d4266fd4e6338d13b845fcf289579d209c897823b9217da3e161936f031589"
    )


def test_load_or_tag_reuses_cache(tmp_path: Path):
    path = tmp_path / "uic.txt"
    path.write_text("01AAAAAAAAA\n07X\n")
    cache_dir = tmp_path / "cache"

    first, cached_first = load_or_tag(path, cache_dir=cache_dir)
    assert cached_first is False
    assert list(first) == ["01AAAAAAAAA", "07AAAAAAAAAX"]
    assert len(list(cache_dir.iterdir())) == 1

    second, cached_second = load_or_tag(path, cache_dir=cache_dir)
    assert cached_second is True
    assert isinstance(second, TaggedLines)
    assert list(second) == list(first)


def test_load_or_tag_cache_keyed_by_content(tmp_path: Path):
    path = tmp_path / "uic.txt"
    cache_dir = tmp_path / "cache"
    path.write_text("01AAAAAAAAA\n07X\n")
    load_or_tag(path, cache_dir=cache_dir)
    path.write_text("01BBBBBBBBB\n07X\n")
    tagged, cached = load_or_tag(path, cache_dir=cache_dir)
    assert cached is False
    assert tagged[1] == "07BBBBBBBBBX"


def test_load_or_tag_without_cache(tmp_path: Path):
    path = tmp_path / "uic.txt"
    path.write_text("01AAAAAAAAA\n")
    tagged, cached = load_or_tag(path)
    assert cached is False
    assert list(tagged) == ["01AAAAAAAAA"]


def test_load_or_tag_ignores_interrupted_cache_write(tmp_path: Path):
    path = tmp_path / "uic.txt"
    cache_dir = tmp_path / "cache"
    path.write_text("01AAAAAAAAA\n07X\n10Y\n07Z\n")
    final = cache_path(path, cache_dir)
    # a run killed mid-write leaves only the partial file behind
    write_lines(final.with_suffix(".tmp"), ["01AAAAAAAAA", "07AAAAAAAAAX"])
    assert not final.exists()

    tagged, cached = load_or_tag(path, cache_dir=cache_dir)
    assert cached is False
    assert len(tagged) == 4
    assert read_lines(final) == list(tagged)
    assert not final.with_suffix(".tmp").exists()

    again, cached_again = load_or_tag(path, cache_dir=cache_dir)
    assert cached_again is True
    assert list(again) == list(tagged)


def test_load_or_tag_cache_keeps_latin1_bytes(tmp_path: Path):
    path = tmp_path / "uic.txt"
    cache_dir = tmp_path / "cache"
    path.write_bytes(b"01AAAAAAAAA\n07CA\xd1ON\n")
    first, _ = load_or_tag(path, cache_dir=cache_dir)
    assert cache_path(path, cache_dir).read_bytes() == b"01AAAAAAAAA\n07AAAAAAAAACA\xd1ON\n"
    second, cached = load_or_tag(path, cache_dir=cache_dir)
    assert cached is True
    assert second[1] == first[1] == "07AAAAAAAAACAÑON"
