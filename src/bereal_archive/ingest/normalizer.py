"""Schema normalizer for BeReal export JSON files.

Maps the raw JSON shapes of the optional top-level files into the canonical
model in ``bereal_archive.models``. Failure handling is layered:

- A missing file yields ``None`` for its collection.
- A malformed file (bad JSON, wrong top-level type) yields ``None`` and an
  ``IngestionWarning`` of kind ``malformed_file``.
- A malformed entry inside a file is dropped with a ``malformed_entry``
  warning; the rest of the file is kept.
"""

import logging
from concurrent.futures import Executor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, TypeVar

from ..common.errors import EntryNotFoundError, EntryReadError
from ..common.path_utils import infer_media_type, normalize_media_path
from ..common.timestamps import EPOCH, parse_timestamp, parse_timestamp_or
from ..models import (
    DEFAULT_BIRTHDATE,
    EMPTY_MEDIA,
    Author,
    BeRealData,
    Birthdate,
    Comment,
    Friend,
    FriendRequest,
    IngestionWarning,
    Location,
    Media,
    Memory,
    Music,
    Post,
    PushToken,
    Realmoji,
    Term,
    User,
)
from .archive_reader import Archive

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Collection name -> file name at the data root
SOURCE_FILES: Dict[str, str] = {
    'user': 'user.json',
    'friends': 'friends.json',
    'friend_requests': 'friend-requests.json',
    'posts': 'posts.json',
    'memories': 'memories.json',
    'comments': 'comments.json',
    'realmojis': 'realmojis.json',
    'push_settings': 'push-settings.json',
    'push_tokens': 'push-tokens.json',
    'terms': 'terms.json',
}

UNKNOWN_USERNAME = "unknown"


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _int(value: Any, default: int = 0) -> int:
    """Coerce ints and numeric strings (profile pictures use "1000")."""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return default
    return default


def _media(raw: Any) -> Optional[Media]:
    """Build a Media with a canonical path, or None when absent."""
    if not isinstance(raw, dict):
        return None

    path = normalize_media_path(_str(raw.get('path')))
    media_type = raw.get('mediaType')
    if media_type not in ('image', 'video'):
        media_type = infer_media_type(path)

    return Media(
        path=path,
        bucket=_str(raw.get('bucket')),
        width=_int(raw.get('width')),
        height=_int(raw.get('height')),
        media_type=media_type,
        mime_type=_str(raw.get('mimeType')),
    )


def _location(raw: Any) -> Optional[Location]:
    if not isinstance(raw, dict):
        return None
    try:
        return Location(latitude=float(raw['latitude']), longitude=float(raw['longitude']))
    except (KeyError, TypeError, ValueError):
        return None


def _music(raw: Any) -> Optional[Music]:
    if not isinstance(raw, dict):
        return None
    return Music(
        track=_str(raw.get('track')),
        artist=_str(raw.get('artist')),
        open_url=_str(raw.get('openUrl')),
        artwork=_str(raw.get('artwork')),
        provider_id=_str(raw.get('providerId')),
        isrc=_str(raw.get('isrc')),
        visibility=_str(raw.get('visibility')),
        audio_type=_str(raw.get('audioType')),
        provider=_str(raw.get('provider')),
    )


def _birthdate(raw: Any) -> Birthdate:
    if not isinstance(raw, dict):
        return DEFAULT_BIRTHDATE
    return Birthdate(
        year=_int(raw.get('year'), DEFAULT_BIRTHDATE.year),
        month=_int(raw.get('month'), DEFAULT_BIRTHDATE.month),
        day=_int(raw.get('day'), DEFAULT_BIRTHDATE.day),
    )


def normalize_user(raw: Dict[str, Any], now: Optional[datetime] = None) -> User:
    """Map ``user.json`` to a User.

    Args:
        raw: Parsed user.json object
        now: Fallback creation time (defaults to the current time)
    """
    is_android = _str(raw.get('platform')).lower() == 'android'
    created_at = parse_timestamp(raw.get('createdAt')) or now or datetime.now(timezone.utc)

    return User(
        id=_str(raw.get('id')) or _str(raw.get('uid')),
        username=_str(raw.get('username')),
        fullname=_str(raw.get('fullname')),
        created_at=created_at,
        profile_picture=_media(raw.get('profilePicture')) or EMPTY_MEDIA,
        device="Android" if is_android else "iOS",
        platform=2 if is_android else 1,
        birthdate=_birthdate(raw.get('birthdate')),
        device_id=_str(raw.get('deviceId')),
        biography=_str(raw.get('biography')),
        location=_str(raw.get('location')),
        phone_number=_str(raw.get('phoneNumber')),
        client_version=_str(raw.get('clientVersion')),
        timezone=_str(raw.get('timezone')),
        language=_str(raw.get('language')),
        country_code=_str(raw.get('countryCode')),
        region=_str(raw.get('region')),
    )


def normalize_friend(raw: Dict[str, Any], index: int) -> Friend:
    username = _str(raw.get('friendUsername'))
    return Friend(
        id=username or f"friend-{index}",
        username=username,
        fullname=_str(raw.get('friendFullname')),
        status="friends",
        friendship_date=parse_timestamp(raw.get('createdAt')),
    )


def normalize_friend_request(raw: Dict[str, Any], index: int) -> FriendRequest:
    from_user_id = _str(raw.get('fromUserId'))
    created_at_raw = raw.get('createdAt')
    if from_user_id:
        request_id = f"{from_user_id}-{created_at_raw if created_at_raw is not None else ''}"
    else:
        request_id = f"fr-{index}"

    return FriendRequest(
        id=request_id,
        from_user_id=from_user_id,
        status=_str(raw.get('status')),
        created_at=parse_timestamp(created_at_raw),
        updated_at=parse_timestamp(raw.get('updatedAt')),
    )


def normalize_post(raw: Dict[str, Any], index: int) -> Post:
    visibility = raw.get('visibility')
    return Post(
        id=_str(raw.get('id')) or f"post-{index}",
        primary=_media(raw.get('primary')),
        secondary=_media(raw.get('secondary')),
        taken_at=parse_timestamp(raw.get('takenAt')),
        bts_media=_media(raw.get('btsMedia')),
        retake_counter=_int(raw.get('retakeCounter')),
        visibility=tuple(str(v) for v in visibility) if isinstance(visibility, list) else (),
        caption=raw.get('caption') if isinstance(raw.get('caption'), str) else None,
        location=_location(raw.get('location')),
    )


def normalize_memory(raw: Dict[str, Any], index: int) -> Memory:
    taken_time = parse_timestamp(raw.get('takenTime'))
    bereal_moment = parse_timestamp(raw.get('berealMoment'))

    # Signed and unclamped
    late_in_seconds = 0
    if taken_time is not None and bereal_moment is not None:
        late_in_seconds = int((taken_time - bereal_moment).total_seconds())

    return Memory(
        id=_str(raw.get('id')) or f"memory-{index}",
        front_image=_media(raw.get('frontImage')),
        back_image=_media(raw.get('backImage')),
        taken_time=taken_time,
        bereal_moment=bereal_moment,
        late_in_seconds=late_in_seconds,
        date=parse_timestamp(raw.get('date')),
        is_late=bool(raw.get('isLate', False)),
        bts_media=_media(raw.get('btsMedia')),
        caption=raw.get('caption') if isinstance(raw.get('caption'), str) else None,
        location=_location(raw.get('location')),
        music=_music(raw.get('music')),
    )


def normalize_comment(raw: Dict[str, Any], index: int, user_id: str = "") -> Comment:
    # comments.json carries neither author nor timestamp
    return Comment(
        id=f"comment-{index}",
        post_id=_str(raw.get('postId')),
        text=_str(raw.get('content')),
        author=Author(id=user_id, username=UNKNOWN_USERNAME),
        created_at=EPOCH,
    )


def normalize_realmoji(raw: Dict[str, Any], index: int) -> Realmoji:
    is_enabled = raw.get('isEnabled')
    return Realmoji(
        id=_str(raw.get('id')) or f"realmoji-{index}",
        emoji=_str(raw.get('emoji')),
        media=_media(raw.get('media')) or EMPTY_MEDIA,
        created_at=parse_timestamp(raw.get('createdAt')),
        is_enabled=is_enabled if isinstance(is_enabled, bool) else True,
        is_instant=False,
        author_id=_str(raw.get('userId')),
        username=_str(raw.get('username')) or UNKNOWN_USERNAME,
    )


def normalize_push_token(raw: Dict[str, Any], index: int) -> PushToken:
    return PushToken(
        token=_str(raw.get('token')) or _str(raw.get('deviceId')),
        os="iOS" if _str(raw.get('platform')).lower() == 'ios' else "Android",
        client_version=_str(raw.get('clientVersion')),
        language=_str(raw.get('language')),
        region=_str(raw.get('region')),
        timezone=_str(raw.get('timezone')),
    )


def normalize_term(raw: Dict[str, Any], index: int) -> Term:
    return Term(
        code=_str(raw.get('code')),
        status=_str(raw.get('status')),
        signed_at=parse_timestamp_or(raw.get('signedAt'), EPOCH),
        version=_int(raw.get('version')) or 1,
        term_url=_str(raw.get('termUrl')),
    )


def _map_entries(
    items: Any,
    source: str,
    mapper: Callable[[Dict[str, Any], int], T],
    warnings: List[IngestionWarning],
) -> Optional[List[T]]:
    """Map a JSON list entry by entry, dropping entries that fail."""
    if items is None:
        return None

    if not isinstance(items, list):
        logger.warning(f"Expected a JSON list: {{'file': {source!r}, 'type': {type(items).__name__!r}}}")
        warnings.append(IngestionWarning('malformed_file', source, f"expected a list, got {type(items).__name__}"))
        return None

    results = []
    for index, raw in enumerate(items):
        try:
            if not isinstance(raw, dict):
                raise ValueError(f"expected an object, got {type(raw).__name__}")
            results.append(mapper(raw, index))
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"Dropped malformed entry: {{'file': {source!r}, 'index': {index}, 'error': {str(e)!r}}}")
            warnings.append(IngestionWarning('malformed_entry', f"{source}[{index}]", str(e)))

    return results


def _read_json_file(archive: Archive, filename: str) -> Any:
    return archive.read_json(filename)


def read_source_files(
    archive: Archive,
    executor: Executor,
    warnings: List[IngestionWarning],
) -> Dict[str, Any]:
    """Read and parse all optional top-level JSON files concurrently.

    Args:
        archive: Opened export archive
        executor: Pool the parses run on
        warnings: Receives a ``malformed_file`` warning per unparsable file

    Returns:
        Collection name -> parsed JSON, for files that exist and parse
    """
    futures = {
        name: executor.submit(_read_json_file, archive, filename)
        for name, filename in SOURCE_FILES.items()
    }

    sources: Dict[str, Any] = {}
    for name, future in futures.items():
        filename = SOURCE_FILES[name]
        try:
            sources[name] = future.result()
        except EntryNotFoundError:
            logger.debug(f"Source file not exported: {{'file': {filename!r}}}")
        except (EntryReadError, ValueError) as e:
            # JSONDecodeError and UnicodeDecodeError are ValueErrors
            logger.warning(f"Failed to parse source file: {{'file': {filename!r}, 'error': {str(e)!r}}}")
            warnings.append(IngestionWarning('malformed_file', filename, str(e)))

    return sources


def build_data(
    sources: Dict[str, Any],
    warnings: List[IngestionWarning],
    analytics: Optional[List[Any]] = None,
) -> BeRealData:
    """Normalize parsed source files into a BeRealData aggregate.

    Args:
        sources: Output of ``read_source_files``
        warnings: Receives per-file and per-entry warnings
        analytics: Decoded event log, passed through unchanged
    """
    data = BeRealData(analytics=analytics)

    user_raw = sources.get('user')
    if isinstance(user_raw, dict):
        data.user = normalize_user(user_raw)
    elif user_raw is not None:
        warnings.append(IngestionWarning('malformed_file', SOURCE_FILES['user'], "expected an object"))

    user_id = data.user.id if data.user else ""

    data.friends = _map_entries(sources.get('friends'), SOURCE_FILES['friends'], normalize_friend, warnings)
    data.friend_requests = _map_entries(
        sources.get('friend_requests'), SOURCE_FILES['friend_requests'], normalize_friend_request, warnings
    )
    data.posts = _map_entries(sources.get('posts'), SOURCE_FILES['posts'], normalize_post, warnings)
    data.memories = _map_entries(sources.get('memories'), SOURCE_FILES['memories'], normalize_memory, warnings)
    data.comments = _map_entries(
        sources.get('comments'),
        SOURCE_FILES['comments'],
        lambda raw, index: normalize_comment(raw, index, user_id),
        warnings,
    )
    data.realmojis = _map_entries(sources.get('realmojis'), SOURCE_FILES['realmojis'], normalize_realmoji, warnings)
    data.push_tokens = _map_entries(
        sources.get('push_tokens'), SOURCE_FILES['push_tokens'], normalize_push_token, warnings
    )
    data.terms = _map_entries(sources.get('terms'), SOURCE_FILES['terms'], normalize_term, warnings)

    push_settings = sources.get('push_settings')
    if isinstance(push_settings, dict):
        data.push_settings = dict(push_settings)
    elif push_settings is not None:
        warnings.append(IngestionWarning('malformed_file', SOURCE_FILES['push_settings'], "expected an object"))

    return data
