"""
Session store: the ordered list of conversations plus the active one.

All mutations go through this object and each one re-serializes the whole
conversation list to the storage backend before returning.
"""
import json
import logging
import re
from typing import List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from errors import StorageCorruption
from models.schemas import Conversation, Message, SessionState
from services.storage import StorageBackend

logger = logging.getLogger(__name__)

TITLE_LENGTH = 30
DEFAULT_TITLE_RE = re.compile(r"^New Chat \d+$")

_conversation_list = TypeAdapter(List[Conversation])


def default_title(position: int) -> str:
    return f"New Chat {position}"


def derive_title(messages: Sequence[Message]) -> Optional[str]:
    """Title from the first message's leading characters, or None if it has no text."""
    if not messages:
        return None
    return messages[0].content[:TITLE_LENGTH] or None


def serialize_conversations(conversations: Sequence[Conversation]) -> str:
    return json.dumps([c.model_dump(mode="json", by_alias=True) for c in conversations])


def deserialize_conversations(payload: str) -> List[Conversation]:
    try:
        return _conversation_list.validate_json(payload)
    except ValidationError as e:
        raise StorageCorruption(f"Stored chats could not be parsed: {e}") from e


class SessionStore:
    def __init__(self, backend: StorageBackend):
        self._backend = backend
        self._conversations: List[Conversation] = []
        self._active_id: Optional[str] = None

    # -- loading / persistence ---------------------------------------------

    def load(self) -> "SessionStore":
        """Restore conversations from the backend and activate the most recent one.

        Unparseable data is logged and replaced by an empty session.
        """
        conversations: List[Conversation] = []
        try:
            payload = self._backend.load()
            if payload:
                conversations = deserialize_conversations(payload)
        except StorageCorruption:
            logger.exception("Discarding corrupt session storage")
        self._conversations = conversations
        self._active_id = conversations[-1].id if conversations else None
        return self

    def _persist(self):
        self._backend.save(serialize_conversations(self._conversations))

    # -- reads ---------------------------------------------------------------

    @property
    def conversations(self) -> List[Conversation]:
        return list(self._conversations)

    @property
    def active_conversation_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active_conversation(self) -> Optional[Conversation]:
        if self._active_id is None:
            return None
        return self.get_conversation(self._active_id)

    @property
    def state(self) -> SessionState:
        return SessionState(conversations=self.conversations, active_conversation_id=self._active_id)

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        for conv in self._conversations:
            if conv.id == conversation_id:
                return conv
        return None

    # -- mutations -----------------------------------------------------------

    def create_conversation(self) -> Conversation:
        conv = Conversation(title=default_title(len(self._conversations) + 1))
        self._conversations.append(conv)
        self._active_id = conv.id
        self._persist()
        return conv

    def select_conversation(self, conversation_id: str) -> bool:
        if self.get_conversation(conversation_id) is None:
            logger.warning("Ignoring selection of unknown conversation %s", conversation_id)
            return False
        self._active_id = conversation_id
        self._persist()
        return True

    def append_and_replace_messages(self, conversation_id: str, messages: Sequence[Message]) -> Optional[Conversation]:
        """Replace the conversation's messages with ``messages``.

        Used both to append the user's message and for every streaming update of
        the assistant reply. The title is derived once, while it is still the
        default one.
        """
        for index, conv in enumerate(self._conversations):
            if conv.id != conversation_id:
                continue
            update = {"messages": list(messages)}
            if DEFAULT_TITLE_RE.match(conv.title):
                title = derive_title(messages)
                if title:
                    update["title"] = title
            updated = conv.model_copy(update=update)
            self._conversations[index] = updated
            self._persist()
            return updated

        logger.warning("Ignoring update for unknown conversation %s", conversation_id)
        return None
