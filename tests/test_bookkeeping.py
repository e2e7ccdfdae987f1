import os

import pytest

from textsave.buffer import Buffer
from textsave.save import BookkeepingError, save_as, serialize, unserialize
from textsave.save.bookkeeping import escape_path, state_file
from textsave.settings import BufferSettings, GlobalSettings


def make_settings(tmp_path) -> GlobalSettings:
    return GlobalSettings({"state_dir": str(tmp_path / "state")})


def make_buffer(text: str, *, savecursor: bool = True) -> Buffer:
    return Buffer.from_text(
        text, settings=BufferSettings({"savecursor": savecursor, "eofnewline": False})
    )


def test_escape_path_flattens_separators() -> None:
    assert escape_path("/home/a%b") == "%2Fhome%2Fa%25b"


def test_escape_path_keeps_distinct_paths_apart() -> None:
    assert escape_path("/a%b") != escape_path("/a/25b")


def test_disabled_savecursor_writes_nothing(tmp_path) -> None:
    settings = make_settings(tmp_path)
    buffer = make_buffer("x", savecursor=False)
    save_as(buffer, str(tmp_path / "out.txt"), settings=settings)

    assert serialize(buffer, settings) is None
    assert not (tmp_path / "state").exists()


def test_cursor_restored_when_file_unchanged(tmp_path) -> None:
    settings = make_settings(tmp_path)
    target = tmp_path / "out.txt"
    buffer = make_buffer("one\ntwo\nthree")
    buffer.state.set_cursor(2, 3)
    save_as(buffer, str(target), settings=settings)

    reopened = Buffer.from_file(str(target), settings=BufferSettings({"savecursor": True}))

    assert unserialize(reopened, settings) is True
    assert reopened.state.cursor == (2, 3)


def test_cursor_ignored_when_file_changed(tmp_path) -> None:
    settings = make_settings(tmp_path)
    target = tmp_path / "out.txt"
    buffer = make_buffer("one\ntwo")
    buffer.state.set_cursor(1, 1)
    save_as(buffer, str(target), settings=settings)
    stat = os.stat(target)
    os.utime(target, (stat.st_atime, stat.st_mtime + 10))

    reopened = Buffer.from_file(str(target), settings=BufferSettings({"savecursor": True}))

    assert unserialize(reopened, settings) is False
    assert reopened.state.cursor == (0, 0)


def test_corrupt_state_file_raises(tmp_path) -> None:
    settings = make_settings(tmp_path)
    target = tmp_path / "out.txt"
    buffer = make_buffer("one")
    save_as(buffer, str(target), settings=settings)
    with open(state_file(buffer, settings), "w", encoding="utf-8") as handle:
        handle.write("{not json")

    with pytest.raises(BookkeepingError):
        unserialize(buffer, settings)


@pytest.mark.parametrize(
    "content",
    ['{"mod_time": 1.0}', "[1, 2]", '{"cursor": 5, "mod_time": 1.0}'],
)
def test_misshapen_state_file_raises(tmp_path, content: str) -> None:
    settings = make_settings(tmp_path)
    buffer = make_buffer("one")
    save_as(buffer, str(tmp_path / "out.txt"), settings=settings)
    with open(state_file(buffer, settings), "w", encoding="utf-8") as handle:
        handle.write(content)

    with pytest.raises(BookkeepingError):
        unserialize(buffer, settings)
