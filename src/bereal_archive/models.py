"""Canonical data model for an ingested BeReal export.

Every entity is a frozen dataclass built once by the schema normalizer.
Collections on ``BeRealData`` are ``None`` when the source file was not
exported (or could not be parsed), and a list when it was.

Captures are a tagged variant, ``Capture = Post | Memory``. Both variants
expose the same accessor surface (``primary``, ``secondary``, ``bts_media``,
``taken_at``, ``late_in_seconds``, ``is_memory``, ``visibility``,
``retake_counter``) so consumers never inspect the raw field names.
"""

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from .common.path_utils import is_video_path

MediaType = Literal["image", "video"]


@dataclass(frozen=True)
class Media:
    """A stored media file referenced by an export record.

    Attributes:
        path: Canonical path (bucket segment removed), the media map key
        bucket: Storage bucket name from the export
        width: Pixel width reported by the export
        height: Pixel height reported by the export
        media_type: 'image' or 'video'
        mime_type: MIME type reported by the export (may be empty)
    """
    path: str
    bucket: str = ""
    width: int = 0
    height: int = 0
    media_type: MediaType = "image"
    mime_type: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.path

    @property
    def is_video(self) -> bool:
        return self.media_type == "video" or is_video_path(self.path)


EMPTY_MEDIA = Media(path="")


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Music:
    """Song attached to a memory."""
    track: str = ""
    artist: str = ""
    open_url: str = ""
    artwork: str = ""
    provider_id: str = ""
    isrc: str = ""
    visibility: str = ""
    audio_type: str = ""
    provider: str = ""


@dataclass(frozen=True)
class Post:
    """Post-shaped capture (``posts.json``)."""
    id: str
    primary: Optional[Media]
    secondary: Optional[Media]
    taken_at: Optional[datetime]
    bts_media: Optional[Media] = None
    retake_counter: int = 0
    visibility: Tuple[str, ...] = ()
    caption: Optional[str] = None
    location: Optional[Location] = None

    kind = "post"

    @property
    def late_in_seconds(self) -> int:
        # posts.json does not report lateness
        return 0

    @property
    def is_memory(self) -> bool:
        return False


@dataclass(frozen=True)
class Memory:
    """Memory-shaped capture (``memories.json``)."""
    id: str
    front_image: Optional[Media]
    back_image: Optional[Media]
    taken_time: Optional[datetime]
    bereal_moment: Optional[datetime]
    late_in_seconds: int = 0
    date: Optional[datetime] = None
    is_late: bool = False
    bts_media: Optional[Media] = None
    caption: Optional[str] = None
    location: Optional[Location] = None
    music: Optional[Music] = None

    kind = "memory"

    @property
    def primary(self) -> Optional[Media]:
        return self.front_image

    @property
    def secondary(self) -> Optional[Media]:
        return self.back_image

    @property
    def taken_at(self) -> Optional[datetime]:
        return self.taken_time

    @property
    def is_memory(self) -> bool:
        return True

    @property
    def visibility(self) -> Tuple[str, ...]:
        return ()

    @property
    def retake_counter(self) -> int:
        return 0


Capture = Union[Post, Memory]


@dataclass(frozen=True)
class Birthdate:
    year: int
    month: int
    day: int


DEFAULT_BIRTHDATE = Birthdate(year=2000, month=1, day=1)


@dataclass(frozen=True)
class User:
    id: str
    username: str
    fullname: str
    created_at: datetime
    profile_picture: Media
    device: Literal["Android", "iOS"]
    platform: int
    birthdate: Birthdate = DEFAULT_BIRTHDATE
    device_id: str = ""
    biography: str = ""
    location: str = ""
    phone_number: str = ""
    client_version: str = ""
    timezone: str = ""
    language: str = ""
    country_code: str = ""
    region: str = ""


@dataclass(frozen=True)
class Friend:
    id: str
    username: str
    fullname: str
    status: Literal["friends", "pending"] = "friends"
    friendship_date: Optional[datetime] = None


@dataclass(frozen=True)
class FriendRequest:
    id: str
    from_user_id: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Author:
    id: str
    username: str


@dataclass(frozen=True)
class Comment:
    """Comment on a capture. The export carries no author identity."""
    id: str
    post_id: str
    text: str
    author: Author
    created_at: datetime


@dataclass(frozen=True)
class Realmoji:
    id: str
    emoji: str
    media: Media
    created_at: Optional[datetime]
    is_enabled: bool = True
    is_instant: bool = False
    author_id: str = ""
    username: str = "unknown"


@dataclass(frozen=True)
class PushToken:
    token: str
    os: Literal["iOS", "Android"]
    client_version: str = ""
    language: str = ""
    region: str = ""
    timezone: str = ""


@dataclass(frozen=True)
class Term:
    code: str
    status: str
    signed_at: datetime
    version: int = 1
    term_url: str = ""


@dataclass(frozen=True)
class Participant:
    id: str
    username: str


@dataclass(frozen=True)
class ChatMedia:
    path: str
    media_type: MediaType
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class ChatMessage:
    id: str
    sender_id: str
    text: str
    created_at: Optional[datetime]
    media: Optional[ChatMedia] = None


@dataclass(frozen=True)
class Conversation:
    id: str
    participants: Tuple[Participant, ...]
    messages: Tuple[ChatMessage, ...]


# Decoded analytics log record, passed through unchanged
AnalyticsEvent = Any


@dataclass
class BeRealData:
    """Aggregate root of one ingestion."""
    user: Optional[User] = None
    friends: Optional[List[Friend]] = None
    friend_requests: Optional[List[FriendRequest]] = None
    posts: Optional[List[Post]] = None
    memories: Optional[List[Memory]] = None
    comments: Optional[List[Comment]] = None
    realmojis: Optional[List[Realmoji]] = None
    push_settings: Optional[Dict[str, bool]] = None
    push_tokens: Optional[List[PushToken]] = None
    terms: Optional[List[Term]] = None
    conversations: Optional[List[Conversation]] = None
    analytics: Optional[List[AnalyticsEvent]] = None

    def captures(self) -> List[Capture]:
        """All posts followed by all memories."""
        return [*(self.posts or []), *(self.memories or [])]

    def summary(self) -> Dict[str, Optional[int]]:
        """Count per collection; None for collections that were not exported."""
        counts: Dict[str, Optional[int]] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if f.name == 'user':
                counts[f.name] = None if value is None else 1
            else:
                counts[f.name] = None if value is None else len(value)
        return counts


@dataclass(frozen=True)
class IngestionWarning:
    """A file or entry that was dropped during ingestion.

    Attributes:
        kind: 'malformed_file', 'malformed_entry' or 'media_decode_failed'
        source: Archive path of the file or entry
        detail: Human-readable reason
    """
    kind: str
    source: str
    detail: str = ""


def to_jsonable(value: Any) -> Any:
    """Convert model objects into JSON-serializable structures."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        result = {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
        kind = getattr(value, 'kind', None)
        if kind is not None:
            result['kind'] = kind
        return result
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value
