import os

import pytest

from textsave.buffer import LARGE_FILE_THRESHOLD, Buffer, LineEnding
from textsave.save import (
    EncodingLookupError,
    MissingParentError,
    ScratchBufferError,
    save,
    save_as,
    save_with_sudo,
)
from textsave.save import orchestrator
from textsave.settings import BufferSettings, GlobalSettings


def make_buffer(
    text: str,
    *,
    endings: LineEnding = LineEnding.UNIX,
    **settings: object,
) -> Buffer:
    options = {"eofnewline": False, **settings}
    return Buffer.from_text(text, settings=BufferSettings(options), endings=endings)


def make_settings(tmp_path) -> GlobalSettings:
    return GlobalSettings({"state_dir": str(tmp_path / "state")})


def test_unix_serialization(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("one\ntwo\nthree")

    outcome = save_as(buffer, str(target))

    assert target.read_bytes() == b"one\ntwo\nthree"
    assert outcome.size == len(b"one\ntwo\nthree")
    assert outcome.error is None


def test_dos_serialization(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("one\ntwo\nthree", endings=LineEnding.DOS)

    outcome = save_as(buffer, str(target))

    assert target.read_bytes() == b"one\r\ntwo\r\nthree"
    assert outcome.size == len(b"one\r\ntwo\r\nthree")


def test_single_line_has_no_terminator(tmp_path) -> None:
    target = tmp_path / "out.txt"

    save_as(make_buffer("only"), str(target))

    assert target.read_bytes() == b"only"


def test_zero_line_buffer_writes_empty_file(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("")
    buffer.document = buffer.document.replace([])

    outcome = save_as(buffer, str(target))

    assert target.read_bytes() == b""
    assert outcome.size == 0
    assert buffer.modified is False


def test_successful_save_updates_buffer_state(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("hello")
    buffer.insert_text("!", cursor=(0, 5))
    assert buffer.modified is True

    save_as(buffer, str(target))

    assert buffer.modified is False
    assert buffer.path == str(target)
    assert buffer.abs_path == str(target)
    assert buffer.mod_time == os.stat(target).st_mtime
    assert buffer.orig_hash == buffer.content_hash()


def test_save_uses_current_path(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("first")
    save_as(buffer, str(target))

    buffer.insert_text("second ", cursor=(0, 0))
    save(buffer)

    assert target.read_bytes() == b"second first"


def test_home_directory_is_expanded(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    buffer = make_buffer("notes")

    save_as(buffer, "~/notes.txt")

    assert (tmp_path / "notes.txt").read_bytes() == b"notes"
    assert buffer.path == "~/notes.txt"
    assert buffer.abs_path == str(tmp_path / "notes.txt")


def test_new_file_permissions(tmp_path) -> None:
    target = tmp_path / "out.txt"
    mask = os.umask(0)
    os.umask(mask)

    save_as(make_buffer("x"), str(target))

    assert os.stat(target).st_mode & 0o777 == 0o644 & ~mask


def test_scratch_buffer_refuses_every_save(tmp_path) -> None:
    buffer = Buffer.from_text("scratch", scratch=True)
    buffer.path = str(tmp_path / "out.txt")

    with pytest.raises(ScratchBufferError):
        save(buffer)
    with pytest.raises(ScratchBufferError):
        save_as(buffer, str(tmp_path / "other.txt"))
    with pytest.raises(ScratchBufferError):
        save_with_sudo(buffer, settings=GlobalSettings({"sucmd": "true"}))

    assert list(tmp_path.iterdir()) == []


def test_eofnewline_appends_exactly_once(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("abc", eofnewline=True)

    save_as(buffer, str(target))
    first = target.read_bytes()
    save(buffer)

    assert first == b"abc\n"
    assert target.read_bytes() == b"abc\n"


def test_saving_twice_is_idempotent(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("a  \nb", rmtrailingws=True, eofnewline=True)

    save_as(buffer, str(target))
    first = target.read_bytes()
    save(buffer)

    assert target.read_bytes() == first == b"a\nb\n"


def test_rmtrailingws_trims_before_writing(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("keep me   \n\t\nend ", rmtrailingws=True)
    buffer.state.set_cursor(0, 10)

    save_as(buffer, str(target))

    assert target.read_bytes() == b"keep me\n\nend"
    assert buffer.state.cursor == (0, 7)


def test_rule_hooks_run_before_serialization(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("lower")
    buffer.add_rule_hook(
        lambda buf: setattr(buf, "document", buf.document.replace(["UPPER"]))
    )

    save_as(buffer, str(target))

    assert target.read_bytes() == b"UPPER"


def test_missing_parent_without_mkparents(tmp_path) -> None:
    target = tmp_path / "a" / "b" / "out.txt"
    buffer = make_buffer("x")

    with pytest.raises(MissingParentError, match="mkparents"):
        save_as(buffer, str(target))

    assert not (tmp_path / "a").exists()
    assert buffer.path == ""


def test_missing_parent_with_mkparents(tmp_path) -> None:
    target = tmp_path / "a" / "b" / "out.txt"

    save_as(make_buffer("x", mkparents=True), str(target))

    assert target.read_bytes() == b"x"


def test_unknown_encoding_creates_nothing(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("x", encoding="no-such-charset")

    with pytest.raises(EncodingLookupError):
        save_as(buffer, str(target))

    assert not target.exists()


def test_configured_encoding_is_applied(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("naïve\ncafé", encoding="latin-1")

    outcome = save_as(buffer, str(target))

    assert target.read_bytes() == "naïve\ncafé".encode("latin-1")
    assert outcome.size == len("naïve\ncafé".encode("utf-8"))


def test_round_trip_through_reload(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("α\nβ  \n\ngamma", endings=LineEnding.DOS)

    save_as(buffer, str(target))
    reloaded = Buffer.from_file(str(target))

    assert reloaded.document.snapshot() == buffer.document.snapshot()
    assert reloaded.endings is LineEnding.DOS


def test_threshold_boundary_keeps_hashing(tmp_path) -> None:
    buffer = make_buffer("x" * LARGE_FILE_THRESHOLD)

    outcome = save_as(buffer, str(tmp_path / "out.txt"))

    assert outcome.size == LARGE_FILE_THRESHOLD
    assert outcome.fast_dirty_engaged is False
    assert buffer.settings.get_bool("fastdirty") is False
    assert buffer.orig_hash == buffer.content_hash()


def test_one_byte_over_threshold_engages_fast_dirty(tmp_path) -> None:
    buffer = make_buffer("x" * LARGE_FILE_THRESHOLD)
    buffer.insert_text("y", cursor=(0, 0))
    stale_hash = buffer.orig_hash

    outcome = save_as(buffer, str(tmp_path / "out.txt"))

    assert outcome.size == LARGE_FILE_THRESHOLD + 1
    assert outcome.fast_dirty_engaged is True
    assert buffer.settings.get_bool("fastdirty") is True
    assert buffer.orig_hash == stale_hash
    assert buffer.modified is False


def test_fast_dirty_stays_on_after_shrinking(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("x" * LARGE_FILE_THRESHOLD)
    buffer.insert_text("y", cursor=(0, 0))
    save_as(buffer, str(target))

    buffer.delete_range((0, 0), (0, 10))
    outcome = save(buffer)

    assert outcome.fast_dirty_engaged is False
    assert buffer.settings.get_bool("fastdirty") is True


def test_bookkeeping_error_surfaces_after_clean_write(tmp_path, monkeypatch) -> None:
    target = tmp_path / "out.txt"

    def broken(*args) -> None:
        raise OSError("stat failed")

    monkeypatch.setattr(orchestrator, "finalize_bookkeeping", broken)

    with pytest.raises(OSError, match="stat failed"):
        save_as(make_buffer("x"), str(target))

    assert target.read_bytes() == b"x"


def test_bookkeeping_error_does_not_mask_earlier_error(tmp_path, monkeypatch) -> None:
    calls = []

    def broken(*args) -> None:
        calls.append(args)
        raise OSError("stat failed")

    monkeypatch.setattr(orchestrator, "finalize_bookkeeping", broken)

    with pytest.raises(MissingParentError):
        save_as(make_buffer("x"), str(tmp_path / "missing" / "out.txt"))

    assert len(calls) == 1


def test_bookkeeping_runs_after_failed_write(tmp_path) -> None:
    target = tmp_path / "out.txt"
    buffer = make_buffer("x", encoding="no-such-charset")
    buffer.mod_time = 123.0

    with pytest.raises(EncodingLookupError):
        save_as(buffer, str(target))

    assert buffer.mod_time is None


def test_save_state_persisted_when_savecursor(tmp_path) -> None:
    target = tmp_path / "out.txt"
    settings = make_settings(tmp_path)
    buffer = make_buffer("one\ntwo", savecursor=True)
    buffer.state.set_cursor(1, 2)

    save_as(buffer, str(target), settings=settings)

    state_files = list((tmp_path / "state").iterdir())
    assert len(state_files) == 1
