import logging
from typing import AsyncIterator, Set

from errors import ConversationBusy
from models.schemas import Conversation, Message, utcnow
from services.session_store import SessionStore
from services.streaming import StreamingAssembler

logger = logging.getLogger(__name__)


def create_persona_prompt(user_input: str) -> str:
    return (
        "You are Rick from Rick and Morty. Respond to the following message in Rick's characteristic style, "
        "complete with his mannerisms, catchphrases, and attitude. Be sarcastic, scientific, and occasionally "
        "burp (use *burp* in text). Keep responses under 200 words.\n\n"
        f"User message: {user_input}\n\n"
        "Rick's response:"
    )


class ChatController:
    """The send flow: user message in, streamed persona reply folded into the store."""

    def __init__(self, store: SessionStore, assembler: StreamingAssembler, model: str):
        self.store = store
        self.assembler = assembler
        self.model = model
        self._in_flight: Set[str] = set()

    def is_streaming(self, conversation_id: str) -> bool:
        return conversation_id in self._in_flight

    async def send(self, user_input: str) -> AsyncIterator[Conversation]:
        """Append ``user_input`` to the active conversation and stream the reply.

        Yields the updated conversation after the user message is stored and
        after every delta. Blank input does nothing. Raises ConversationBusy if
        the active conversation is still streaming, and RequestFailure if the
        gateway fails (the messages stored up to that point are kept).
        """
        if not user_input.strip():
            return

        conv = self.store.active_conversation or self.store.create_conversation()
        if conv.id in self._in_flight:
            logger.warning("Rejected send into conversation %s while a reply is streaming", conv.id)
            raise ConversationBusy(conv.id)

        self._in_flight.add(conv.id)
        try:
            user_message = Message(role="user", content=user_input, timestamp=utcnow())
            prior = [*conv.messages, user_message]
            yield self.store.append_and_replace_messages(conv.id, prior)

            prompt = create_persona_prompt(user_input)
            async for messages in self.assembler.stream(prior, prompt, self.model):
                yield self.store.append_and_replace_messages(conv.id, messages)
        finally:
            self._in_flight.discard(conv.id)
