from typing import AsyncIterable, AsyncIterator, List, Sequence

from models.schemas import Message, utcnow
from services.gateway import CompletionGateway


async def assemble_reply(deltas: AsyncIterable[str], prior: Sequence[Message]) -> AsyncIterator[List[Message]]:
    """Fold incremental deltas into one growing assistant message.

    After every delta yields ``prior`` plus a fresh assistant Message holding
    everything received so far. The last list yielded is the complete reply.
    """
    reply = ""
    async for delta in deltas:
        if not delta:
            continue
        reply += delta
        yield [*prior, Message(role="assistant", content=reply, timestamp=utcnow())]


class StreamingAssembler:
    def __init__(self, gateway: CompletionGateway):
        self.gateway = gateway

    async def stream(self, prior: Sequence[Message], prompt: str, model: str) -> AsyncIterator[List[Message]]:
        # RequestFailure propagates as-is; whatever was yielded before it stays with the caller
        async for messages in assemble_reply(self.gateway.stream_deltas(prompt, model), prior):
            yield messages
