import sys
import tempfile
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from uploadgate.multipart import FilePart
from uploadgate.storage import MoveWriter, StreamWriter, get_writer


def _spooled_part(data: bytes) -> FilePart:
    spool = tempfile.SpooledTemporaryFile(max_size=4)
    spool.write(data)
    return FilePart("f", "a.bin", "application/octet-stream", spool, size=len(data))


def _named_part(data: bytes, directory: Path) -> FilePart:
    handle = tempfile.NamedTemporaryFile(dir=directory, delete=False)
    handle.write(data)
    return FilePart("f", "a.bin", None, handle, temp_path=Path(handle.name), size=len(data))


def test_stream_writer_copies_in_chunks(tmp_path, monkeypatch):
    monkeypatch.setattr(StreamWriter, "chunk_size", 3)
    data = b"0123456789"
    target = tmp_path / "out.bin"
    copy = StreamWriter().write(_spooled_part(data), target, keep_copy=True)
    assert target.read_bytes() == data
    assert copy == data


def test_stream_writer_never_overwrites(tmp_path):
    target = tmp_path / "out.bin"
    target.write_bytes(b"old")
    with pytest.raises(FileExistsError):
        StreamWriter().write(_spooled_part(b"new"), target)
    assert target.read_bytes() == b"old"


def test_move_writer_moves_spooled_file(tmp_path):
    spool_dir = tmp_path / "spool"
    spool_dir.mkdir()
    part = _named_part(b"payload", spool_dir)
    temp_path = part.temp_path
    target = tmp_path / "out.bin"

    copy = MoveWriter().write(part, target, keep_copy=True)

    assert target.read_bytes() == b"payload"
    assert copy == b"payload"
    assert not temp_path.exists()
    assert part.temp_path is None
    part.close()


def test_move_writer_streams_in_memory_parts(tmp_path):
    target = tmp_path / "out.bin"
    assert MoveWriter().write(_spooled_part(b"abc"), target) is None
    assert target.read_bytes() == b"abc"


def test_get_writer():
    assert isinstance(get_writer("stream"), StreamWriter)
    assert isinstance(get_writer("move"), MoveWriter)
    with pytest.raises(ValueError):
        get_writer("copy")
