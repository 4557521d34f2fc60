import os

import pytest

from mailsieve.shm import SharedFile, ShmError


@pytest.fixture
def shared(tmp_path):
    shm = SharedFile(str(tmp_path), "mailsieve")
    yield shm
    shm.destroy()


def test_create_makes_zero_filled_file(shared, tmp_path):
    data = shared.create(100)
    assert len(data) == 100
    assert data[:] == bytes(100)
    assert os.path.getsize(shared.path) == 100
    assert shared.name.startswith("mailsieve.")
    assert os.path.dirname(shared.path) == str(tmp_path)


def test_create_zero_size_rejected(shared):
    with pytest.raises(ValueError):
        shared.create(0)


def test_create_in_missing_directory(tmp_path):
    shm = SharedFile(str(tmp_path / "missing"))
    with pytest.raises(ShmError):
        shm.create(10)


def test_written_data_survives_reopen(shared):
    data = shared.create(16)
    data[0:5] = b"hello"
    shared.close()
    assert shared.data is None
    again = shared.reopen()
    assert again[0:5] == b"hello"
    assert len(again) == 16


def test_data_reaches_file(shared):
    data = shared.create(8)
    data[0:4] = b"mail"
    data.flush()
    with open(shared.path, "rb") as f:
        assert f.read(4) == b"mail"


def test_resize_grows_and_keeps_data(shared):
    data = shared.create(10)
    data[0:3] = b"abc"
    grown = shared.resize(4, 10)
    assert shared.size == 40
    assert len(grown) == 40
    assert grown[0:3] == b"abc"
    assert grown[10:40] == bytes(30)


def test_resize_shrinks(shared):
    data = shared.create(50)
    data[0:2] = b"xy"
    smaller = shared.resize(1, 20)
    assert len(smaller) == 20
    assert os.path.getsize(shared.path) == 20
    assert smaller[0:2] == b"xy"


def test_resize_zero_rejected(shared):
    shared.create(10)
    with pytest.raises(ValueError):
        shared.resize(3, 0)


def test_destroy_removes_file(tmp_path):
    shm = SharedFile(str(tmp_path))
    shm.create(10)
    path = shm.path
    shm.destroy()
    assert not os.path.exists(path)
    assert shm.name == ""
    assert os.listdir(tmp_path) == []


def test_context_manager_destroys(tmp_path):
    with SharedFile(str(tmp_path)) as shm:
        data = shm.create(10)
        assert len(data) == 10
        path = shm.path
        assert os.path.exists(path)
    assert shm.name == ""
    assert shm.data is None
    assert not os.path.exists(path)
    assert os.listdir(tmp_path) == []


def test_chown_to_self(shared):
    shared.create(10)
    uid, gid = os.getuid(), os.getgid()
    shared.chown(uid, gid)
    info = os.stat(shared.path)
    assert (info.st_uid, info.st_gid) == (uid, gid)


def test_reopen_missing_file(shared):
    shared.create(10)
    shared.close()
    os.unlink(shared.path)
    with pytest.raises(ShmError):
        shared.reopen()
    shared.name = ""