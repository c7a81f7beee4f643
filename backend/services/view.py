"""Read-only rendering of conversations for the chat UI."""
import datetime
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from models.schemas import Conversation, MessageRole

NO_CHAT_TITLE = "Select or Create a Chat"


@dataclass(frozen=True)
class MessageBlock:
    role: MessageRole
    content: str
    style: str
    time_label: Optional[str] = None


def message_style(role: MessageRole) -> str:
    """Two treatments only: the user's bubbles and everyone else's."""
    return "user" if role == "user" else "assistant"


def format_time(timestamp: Optional[datetime.datetime]) -> Optional[str]:
    if timestamp is None:
        return None
    return timestamp.astimezone().strftime("%H:%M:%S")


class ConversationView:
    """Iterable of MessageBlocks in stored order; each iteration starts over."""

    def __init__(self, conversation: Conversation):
        self.conversation = conversation

    def __iter__(self) -> Iterator[MessageBlock]:
        for message in self.conversation.messages:
            yield MessageBlock(
                role=message.role,
                content=message.content,
                style=message_style(message.role),
                time_label=format_time(message.timestamp),
            )

    def __len__(self) -> int:
        return len(self.conversation.messages)


def to_chatbot_messages(conversation: Optional[Conversation]) -> List[dict]:
    """Message dicts for gr.Chatbot, timestamps appended as small print."""
    if conversation is None:
        return []
    rendered = []
    for block in ConversationView(conversation):
        content = block.content
        if block.time_label:
            content = f"{content}\n\n<sub>{block.time_label}</sub>"
        rendered.append({"role": block.style, "content": content})
    return rendered


def sidebar_choices(conversations: List[Conversation]) -> List[Tuple[str, str]]:
    return [(conv.title, conv.id) for conv in conversations]


def header_title(conversation: Optional[Conversation]) -> str:
    return conversation.title if conversation else NO_CHAT_TITLE
