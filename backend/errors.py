class PersonaChatError(Exception):
    """Base class for errors raised by the chat core and gateway."""


class ConfigurationError(PersonaChatError):
    """A required setting (e.g. the provider credential) is missing."""


class RequestFailure(PersonaChatError):
    """The completion gateway did not answer successfully."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StorageCorruption(PersonaChatError):
    """Durable storage holds data that cannot be parsed back into a session."""


class ConversationBusy(PersonaChatError):
    """A reply is still streaming into the conversation."""

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation {conversation_id} is still receiving a reply")
        self.conversation_id = conversation_id
