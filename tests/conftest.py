import hashlib

import pytest

from torrent_bencode import bencode

ANNOUNCE = "http://tracker.example.com:8080/announce"


@pytest.fixture
def single_file_torrent():
    return {
        "announce": ANNOUNCE,
        "announce-list": [[ANNOUNCE], ["udp://tracker.example.org:1337/announce"]],
        "comment": "test torrent",
        "created by": "pytest",
        "creation date": 1700000000,
        "info": {
            "length": 5,
            "name": "hello.txt",
            "piece length": 16384,
            "pieces": hashlib.sha1(b"hello").digest(),
        },
    }


@pytest.fixture
def multi_file_torrent():
    return {
        "announce": ANNOUNCE,
        "info": {
            "files": [
                {"length": 3, "path": ["a", "one.txt"]},
                {"length": 4, "path": ["two.txt"], "md5sum": "0" * 32},
            ],
            "name": "bundle",
            "piece length": 4,
            "pieces": b"\x01" * 20 + b"\x02" * 20,
            "private": 1,
        },
    }


@pytest.fixture
def torrent_file(tmp_path, single_file_torrent):
    path = tmp_path / "hello.torrent"
    path.write_bytes(bencode.dumps(single_file_torrent))
    return path
