"""Reconstruction of chat threads from ``conversations/<id>/chat_log.json``."""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..common.errors import EntryNotFoundError, EntryReadError
from ..common.path_utils import infer_media_type, normalize_media_path
from ..common.timestamps import parse_timestamp
from ..models import ChatMedia, ChatMessage, Conversation, IngestionWarning, Participant
from .archive_reader import Archive

logger = logging.getLogger(__name__)

# Optional leading segment tolerates a wrapper folder that was not stripped
CHAT_LOG_PATTERN = re.compile(r'^(?:[^/]+/)?conversations/([^/]+)/chat_log\.json$')


def _chat_media(raw: Any) -> Optional[ChatMedia]:
    if not isinstance(raw, dict):
        return None

    path = normalize_media_path(raw.get('path') if isinstance(raw.get('path'), str) else "")
    media_type = raw.get('mediaType')
    if media_type not in ('image', 'video'):
        media_type = infer_media_type(path)

    width = raw.get('width')
    height = raw.get('height')
    return ChatMedia(
        path=path,
        media_type=media_type,
        width=width if isinstance(width, int) else 0,
        height=height if isinstance(height, int) else 0,
    )


def _participants(raw: Any) -> Tuple[Participant, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(
        Participant(id=str(p.get('id', '')), username=str(p.get('username', '')))
        for p in raw
        if isinstance(p, dict)
    )


def _sort_key(message: ChatMessage) -> Tuple[int, datetime]:
    # Messages without a readable timestamp sort first
    if message.created_at is None:
        return (0, datetime.min)
    return (1, message.created_at)


def build_conversation(conversation_id: str, chat_log: Dict[str, Any]) -> Conversation:
    """Build a Conversation from a parsed chat log.

    Args:
        conversation_id: Folder name of the conversation
        chat_log: Parsed chat_log.json with a ``messages`` list

    Returns:
        Conversation with messages sorted by time
    """
    messages = []
    for index, raw in enumerate(chat_log['messages']):
        if not isinstance(raw, dict):
            logger.debug(f"Skipped non-object chat message: {{'conversation': {conversation_id!r}, 'index': {index}}}")
            continue
        message_id = raw.get('id')
        content = raw.get('message')
        messages.append(ChatMessage(
            id=str(message_id) if message_id else f"{conversation_id}-msg-{index}",
            sender_id=str(raw.get('userId') or ''),
            text=content if isinstance(content, str) else "",
            created_at=parse_timestamp(raw.get('createdAt')),
            media=_chat_media(raw.get('media')),
        ))

    messages.sort(key=_sort_key)

    return Conversation(
        id=conversation_id,
        participants=_participants(chat_log.get('participants')),
        messages=tuple(messages),
    )


def extract_conversations(archive: Archive, warnings: List[IngestionWarning]) -> List[Conversation]:
    """Find and parse every chat log in the archive.

    Args:
        archive: Opened export archive
        warnings: Receives a ``malformed_entry`` warning per unparsable chat log

    Returns:
        Conversations in archive order
    """
    conversations = []

    for entry in archive.list_entries():
        if entry.is_directory:
            continue
        match = CHAT_LOG_PATTERN.match(entry.path)
        if not match:
            continue

        conversation_id = match.group(1)
        try:
            chat_log = archive.read_json(entry.path)
        except (EntryNotFoundError, EntryReadError, ValueError) as e:
            logger.warning(f"Failed to parse chat log: {{'path': {entry.path!r}, 'error': {str(e)!r}}}")
            warnings.append(IngestionWarning('malformed_entry', entry.path, str(e)))
            continue

        if not isinstance(chat_log, dict) or not isinstance(chat_log.get('messages'), list):
            logger.debug(f"Chat log has no messages list: {{'path': {entry.path!r}}}")
            continue

        conversations.append(build_conversation(conversation_id, chat_log))

    logger.debug(f"Extracted conversations: {{'count': {len(conversations)}}}")
    return conversations
