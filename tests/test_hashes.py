import sqlite3

import pytest

from codesage.hashes import FileHashStore, calculate_md5_hash


def test_md5_of_empty_file(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_bytes(b"")
    assert calculate_md5_hash(path) == "d41d8cd98f00b204e9800998ecf8427e"


def test_md5_of_known_content(tmp_path):
    path = tmp_path / "hello.txt"
    path.write_bytes(b"hello world")
    assert calculate_md5_hash(path) == "5eb63bbbe01eeed093cb22bb8f5acdc3"


def test_md5_depends_only_on_content(tmp_path):
    big = bytes(range(256)) * 1000
    first = tmp_path / "a.bin"
    second = tmp_path / "b.bin"
    third = tmp_path / "c.bin"
    first.write_bytes(big)
    second.write_bytes(big)
    third.write_bytes(big + b"x")
    assert calculate_md5_hash(first) == calculate_md5_hash(second)
    assert calculate_md5_hash(first) != calculate_md5_hash(third)
    assert len(calculate_md5_hash(first)) == 32


def test_md5_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        calculate_md5_hash(tmp_path / "missing")


def test_store_get_missing_returns_none(tmp_path):
    with FileHashStore(tmp_path / "h.db") as store:
        assert store.get("/nowhere.py") is None


def test_store_set_and_replace(tmp_path):
    with FileHashStore(tmp_path / "h.db") as store:
        store.set("/p/a.py", "one")
        assert store.get("/p/a.py") == "one"
        store.set("/p/a.py", "two")
        assert store.get("/p/a.py") == "two"


def test_store_persists_between_connections(tmp_path):
    db = tmp_path / "h.db"
    with FileHashStore(db) as store:
        store.set("/p/a.py", "abc")
    with FileHashStore(db) as store:
        assert store.get("/p/a.py") == "abc"


def test_delete_prefix_removes_only_matching(tmp_path):
    with FileHashStore(tmp_path / "h.db") as store:
        store.set("/proj/a.py", "1")
        store.set("/proj/sub/b.py", "2")
        store.set("/other/c.py", "3")
        removed = store.delete_prefix("/proj/")
        assert removed == 2
        assert store.get("/proj/a.py") is None
        assert store.get("/proj/sub/b.py") is None
        assert store.get("/other/c.py") == "3"


def test_delete_prefix_treats_wildcards_literally(tmp_path):
    with FileHashStore(tmp_path / "h.db") as store:
        store.set("/abc/x.py", "1")
        assert store.delete_prefix("/a%") == 0
        assert store.get("/abc/x.py") == "1"


def test_closed_store_rejects_queries(tmp_path):
    store = FileHashStore(tmp_path / "h.db")
    store.close()
    with pytest.raises(sqlite3.ProgrammingError):
        store.get("/p/a.py")