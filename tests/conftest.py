"""Shared fixtures: in-memory BeReal exports, event logs and images."""

import gzip
import io
import json
import zipfile

import pytest
from PIL import Image

BUCKET = "AbCdEfGhIjKlMnOpQrStUvWx12"

# ISO BMFF header with an mp42 brand, enough for magic-byte sniffing
FAKE_MP4 = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom" + b"\x00" * 64


def _jpeg(width, height, color):
    buffer = io.BytesIO()
    Image.new('RGB', (width, height), color).save(buffer, 'JPEG', quality=95)
    return buffer.getvalue()


# Compression method id no zipfile decompressor supports
UNSUPPORTED_COMPRESSION = 99


def _zip(files, wrapper=None, unreadable=()):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as zf:
        if wrapper:
            zf.writestr(f"{wrapper}/", b"")
        for name, content in files.items():
            if isinstance(content, (dict, list)):
                content = json.dumps(content)
            full_name = f"{wrapper}/{name}" if wrapper else name
            if name in unreadable:
                # Stored as-is, but the central directory advertises a method
                # ZipFile.read cannot decompress
                zf.writestr(full_name, content, compress_type=zipfile.ZIP_STORED)
                zf.getinfo(full_name).compress_type = UNSUPPORTED_COMPRESSION
            else:
                zf.writestr(full_name, content)
    return buffer.getvalue()


def _gzip_log(events):
    text = "\n".join(json.dumps(e) for e in events) + "\n"
    return gzip.compress(text.encode("utf-8"))


@pytest.fixture
def make_jpeg():
    """Factory: (width, height, color) -> JPEG bytes."""
    return _jpeg


@pytest.fixture
def make_zip():
    """Factory: ({path: bytes|str|json}, wrapper=None, unreadable=()) -> zip bytes.

    Paths listed in ``unreadable`` are listed in the archive but fail to read.
    """
    return _zip


@pytest.fixture
def make_gzip_log():
    """Factory: list of JSON values -> gzip NDJSON bytes."""
    return _gzip_log


@pytest.fixture
def export_files():
    """Logical content of a small but complete BeReal export."""
    def media(name, width=400, height=600):
        return {"path": f"/Photos/{BUCKET}/post/{name}", "bucket": "storage.bere.al", "width": width, "height": height}

    return {
        "user.json": {
            "id": "user-1",
            "username": "alice",
            "fullname": "Alice Archive",
            "platform": "android",
            "createdAt": "2022-01-01T00:00:00.000Z",
            "profilePicture": {
                "path": f"/Photos/{BUCKET}/profile/pp.jpg",
                "bucket": "storage.bere.al",
                "height": "100",
                "width": "100",
            },
            "birthdate": {"year": 1999, "month": 12, "day": 31},
            "countryCode": "FR",
        },
        "friends.json": [
            {"friendUsername": "bob", "friendFullname": "Bob Builder", "createdAt": "2022-02-01T00:00:00.000Z"},
        ],
        "posts.json": [
            {
                "id": "post-a",
                "primary": media("a-primary.jpg"),
                "secondary": media("a-secondary.jpg"),
                "takenAt": "2023-05-01T12:00:03.000Z",
            },
            {
                "id": "post-b",
                "primary": media("b-primary.jpg"),
                "secondary": media("b-secondary.jpg"),
                "btsMedia": media("b-bts.mp4"),
                "takenAt": "2023-05-02T08:30:00.000Z",
                "retakeCounter": 2,
                "visibility": ["friends"],
                "caption": "sunset",
            },
        ],
        "memories.json": [
            {
                "id": "mem-1",
                "frontImage": media("a-primary.jpg"),
                "backImage": media("a-secondary.jpg"),
                "takenTime": "2023-05-01T12:00:08.000Z",
                "berealMoment": "2023-05-01T12:00:03.000Z",
                "date": "2023-05-01",
                "isLate": True,
            },
        ],
        "comments.json": [{"postId": "post-a", "content": "nice"}],
        "conversations/conv-1/chat_log.json": {
            "participants": [{"id": "user-1", "username": "alice"}, {"id": "user-2", "username": "bob"}],
            "messages": [
                {"id": "m2", "userId": "user-2", "message": "second", "createdAt": "2023-05-01T10:00:00.000Z"},
                {"userId": "user-1", "message": "first", "createdAt": "2023-05-01T09:00:00.000Z",
                 "media": {"path": "/conversations/conv-1/clip.mp4"}},
                {"id": "m3", "userId": "user-1", "message": "third", "createdAt": "2023-05-01T11:00:00.000Z"},
            ],
        },
        "Photos/post/a-primary.jpg": _jpeg(400, 600, (200, 30, 30)),
        "Photos/post/a-secondary.jpg": _jpeg(300, 400, (30, 30, 200)),
        "Photos/post/b-primary.jpg": _jpeg(400, 600, (30, 200, 30)),
        "Photos/post/b-secondary.jpg": _jpeg(300, 400, (200, 200, 30)),
        "Photos/post/b-bts.mp4": FAKE_MP4,
        "Photos/profile/pp.jpg": _jpeg(100, 100, (128, 128, 128)),
        "conversations/conv-1/clip.mp4": FAKE_MP4,
    }


@pytest.fixture
def export_zip(export_files):
    """Unwrapped export zip bytes."""
    return _zip(export_files)


@pytest.fixture
def wrapped_export_zip(export_files):
    """Export zip bytes with every entry under a single wrapper folder."""
    return _zip(export_files, wrapper="bereal-export-2023")


@pytest.fixture
def event_log():
    """gzip event log with three events."""
    return _gzip_log([
        {"event": "app_open", "ts": 1},
        {"event": "post_taken", "ts": 2},
        {"event": "app_close", "ts": 3},
    ])
