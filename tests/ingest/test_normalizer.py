"""Tests for the schema normalizer."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest
from bereal_archive.common.timestamps import EPOCH
from bereal_archive.ingest.archive_reader import open_archive
from bereal_archive.ingest.normalizer import (
    build_data,
    normalize_friend,
    normalize_friend_request,
    normalize_memory,
    normalize_post,
    normalize_push_token,
    normalize_realmoji,
    normalize_term,
    normalize_user,
    read_source_files,
)
from bereal_archive.models import DEFAULT_BIRTHDATE

BUCKET = "AbCdEfGhIjKlMnOpQrStUvWx12"


def _sources(archive, warnings):
    with ThreadPoolExecutor(max_workers=4) as executor:
        return read_source_files(archive, executor, warnings)


class TestUser:
    """Tests for normalize_user."""

    def test_android_user(self):
        """Test platform mapping, id fallback and profile picture."""
        user = normalize_user({
            "uid": "u-1",
            "username": "alice",
            "platform": "android",
            "profilePicture": {"path": f"/Photos/{BUCKET}/profile/pp.jpg", "width": "100", "height": "120"},
        })
        assert user.id == "u-1"
        assert user.device == "Android"
        assert user.platform == 2
        assert user.profile_picture.path == "Photos/profile/pp.jpg"
        assert (user.profile_picture.width, user.profile_picture.height) == (100, 120)

    def test_defaults(self):
        """Test defaults for a nearly empty user.json."""
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        user = normalize_user({"id": "u"}, now=now)
        assert user.device == "iOS"
        assert user.platform == 1
        assert user.fullname == ""
        assert user.biography == ""
        assert user.birthdate == DEFAULT_BIRTHDATE
        assert user.created_at == now
        assert user.profile_picture.is_empty


class TestCaptures:
    """Tests for post and memory normalization."""

    def test_post_defaults(self):
        """Test that missing retakeCounter and visibility default to 0 and ()."""
        post = normalize_post({
            "primary": {"path": f"/Photos/{BUCKET}/post/a.webp"},
            "secondary": {"path": f"/Photos/{BUCKET}/post/b.webp"},
            "takenAt": "2023-05-01T12:00:03.000Z",
        }, 3)
        assert post.id == "post-3"
        assert post.retake_counter == 0
        assert post.visibility == ()
        assert post.late_in_seconds == 0
        assert post.is_memory is False
        assert post.primary.path == "Photos/post/a.webp"
        assert post.bts_media is None

    def test_post_without_secondary_kept(self):
        """Test that absent media objects become None."""
        post = normalize_post({"id": "p", "primary": {"path": "Photos/post/a.webp"}}, 0)
        assert post.secondary is None
        assert post.taken_at is None

    def test_memory_lateness(self):
        """Test that a memory taken 5 s after the moment is 5 s late."""
        memory = normalize_memory({
            "frontImage": {"path": f"/Photos/{BUCKET}/post/a.webp"},
            "backImage": {"path": f"/Photos/{BUCKET}/post/b.webp"},
            "takenTime": "2023-05-01T12:00:08.000Z",
            "berealMoment": "2023-05-01T12:00:03.000Z",
        }, 0)
        assert memory.id == "memory-0"
        assert memory.late_in_seconds == 5
        assert memory.is_memory is True
        assert memory.primary.path == "Photos/post/a.webp"
        assert memory.secondary.path == "Photos/post/b.webp"
        assert memory.taken_at == memory.taken_time
        assert memory.visibility == ()
        assert memory.retake_counter == 0

    def test_memory_early_is_negative(self):
        """Test that lateness is signed and not clamped."""
        memory = normalize_memory({
            "takenTime": "2023-05-01T12:00:00.000Z",
            "berealMoment": "2023-05-01T12:00:03.000Z",
        }, 0)
        assert memory.late_in_seconds == -3

    def test_memory_unparsable_time(self):
        """Test that lateness is 0 without both timestamps."""
        assert normalize_memory({"takenTime": "soon"}, 0).late_in_seconds == 0

    def test_bts_video_type(self):
        """Test that media type is inferred from the extension."""
        post = normalize_post({"btsMedia": {"path": "/Photos/x/bts/clip.mp4"}}, 0)
        assert post.bts_media.media_type == "video"
        assert post.bts_media.is_video


class TestOtherEntities:
    """Tests for the remaining per-entity rules."""

    def test_friend(self):
        """Test friend id fallback and fixed status."""
        assert normalize_friend({"friendUsername": "bob"}, 0).id == "bob"
        friend = normalize_friend({"friendFullname": "No Name"}, 4)
        assert friend.id == "friend-4"
        assert friend.status == "friends"

    def test_friend_request(self):
        """Test friend request id synthesis."""
        request = normalize_friend_request(
            {"fromUserId": "u9", "createdAt": "2023-01-01T00:00:00Z", "status": "pending"}, 0
        )
        assert request.id == "u9-2023-01-01T00:00:00Z"
        assert request.status == "pending"
        assert normalize_friend_request({"status": "x"}, 2).id == "fr-2"

    def test_realmoji(self):
        """Test realmoji defaults."""
        realmoji = normalize_realmoji({"emoji": "😍"}, 1)
        assert realmoji.id == "realmoji-1"
        assert realmoji.media.is_empty
        assert realmoji.is_enabled is True
        assert realmoji.is_instant is False
        assert realmoji.username == "unknown"
        assert normalize_realmoji({"isEnabled": False}, 0).is_enabled is False

    def test_push_token(self):
        """Test token fallback and os mapping."""
        token = normalize_push_token({"deviceId": "dev-1", "platform": "ios"}, 0)
        assert token.token == "dev-1"
        assert token.os == "iOS"
        assert token.language == ""
        assert normalize_push_token({"token": "t", "platform": "android"}, 0).os == "Android"

    def test_term(self):
        """Test term defaults."""
        term = normalize_term({"code": "tos", "status": "ACCEPTED"}, 0)
        assert term.version == 1
        assert term.signed_at == EPOCH
        assert normalize_term({"version": 3}, 0).version == 3


class TestBuildData:
    """Tests for file-level behaviour."""

    def test_full_export(self, export_zip):
        """Test mapping a complete export."""
        warnings = []
        with open_archive(export_zip) as archive:
            data = build_data(_sources(archive, warnings), warnings, analytics=[{"e": 1}])

        assert warnings == []
        assert data.user.username == "alice"
        assert data.user.birthdate.year == 1999
        assert [p.id for p in data.posts] == ["post-a", "post-b"]
        assert data.posts[1].retake_counter == 2
        assert data.posts[1].visibility == ("friends",)
        assert data.memories[0].late_in_seconds == 5
        assert data.friends[0].username == "bob"
        assert data.comments[0].author.id == "user-1"
        assert data.comments[0].author.username == "unknown"
        assert data.comments[0].created_at == EPOCH
        assert data.analytics == [{"e": 1}]

    def test_absent_files_yield_none(self, export_zip):
        """Test that files not in the export give None, not []."""
        warnings = []
        with open_archive(export_zip) as archive:
            data = build_data(_sources(archive, warnings), warnings)

        assert data.realmojis is None
        assert data.terms is None
        assert data.push_tokens is None
        assert data.push_settings is None
        assert data.friend_requests is None
        assert warnings == []

    def test_malformed_file_does_not_block_others(self, make_zip):
        """Test that one unparsable file only loses its own collection."""
        archive_bytes = make_zip({
            "user.json": {"id": "u"},
            "posts.json": "{not json",
            "friends.json": [{"friendUsername": "bob"}],
        })
        warnings = []
        with open_archive(archive_bytes) as archive:
            data = build_data(_sources(archive, warnings), warnings)

        assert data.posts is None
        assert data.friends[0].id == "bob"
        assert data.user.id == "u"
        assert [(w.kind, w.source) for w in warnings] == [("malformed_file", "posts.json")]

    def test_unreadable_file_does_not_block_others(self, make_zip):
        """Test that a member the zip cannot decompress only loses its own collection."""
        archive_bytes = make_zip(
            {
                "user.json": {"id": "u"},
                "posts.json": [{"id": "p"}],
                "friends.json": [{"friendUsername": "bob"}],
            },
            unreadable={"posts.json"},
        )
        warnings = []
        with open_archive(archive_bytes) as archive:
            data = build_data(_sources(archive, warnings), warnings)

        assert data.posts is None
        assert data.user.id == "u"
        assert data.friends[0].id == "bob"
        assert [(w.kind, w.source) for w in warnings] == [("malformed_file", "posts.json")]

    def test_wrong_top_level_type_is_malformed(self, make_zip):
        """Test that an object where a list is expected counts as malformed."""
        archive_bytes = make_zip({"posts.json": {"id": "p"}, "user.json": ["x"]})
        warnings = []
        with open_archive(archive_bytes) as archive:
            data = build_data(_sources(archive, warnings), warnings)

        assert data.posts is None
        assert data.user is None
        assert sorted(w.source for w in warnings) == ["posts.json", "user.json"]
        assert all(w.kind == "malformed_file" for w in warnings)

    def test_malformed_entry_dropped(self, make_zip):
        """Test that a non-object entry is dropped with a warning."""
        archive_bytes = make_zip({"friends.json": [{"friendUsername": "bob"}, "oops", {"friendUsername": "eve"}]})
        warnings = []
        with open_archive(archive_bytes) as archive:
            data = build_data(_sources(archive, warnings), warnings)

        assert [f.id for f in data.friends] == ["bob", "eve"]
        assert len(warnings) == 1
        assert warnings[0].kind == "malformed_entry"
        assert warnings[0].source == "friends.json[1]"

    def test_push_settings_pass_through(self, make_zip):
        """Test that push settings are kept as a plain mapping."""
        archive_bytes = make_zip({"push-settings.json": {"comments": True, "friendRequests": False}})
        warnings = []
        with open_archive(archive_bytes) as archive:
            data = build_data(_sources(archive, warnings), warnings)
        assert data.push_settings == {"comments": True, "friendRequests": False}

    @pytest.mark.parametrize("wrapped", [False, True])
    def test_same_result_wrapped_or_not(self, export_files, make_zip, wrapped):
        """Test that a wrapper folder does not change the mapped data."""
        archive_bytes = make_zip(export_files, wrapper="wrap" if wrapped else None)
        warnings = []
        with open_archive(archive_bytes) as archive:
            data = build_data(_sources(archive, warnings), warnings)
        assert len(data.posts) == 2
        assert len(data.memories) == 1
