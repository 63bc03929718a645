"""
Conversation message model.

A message is exactly one of two kinds, user or assistant, carrying text.
Order inside a transcript is significant.
"""
from typing import Any, Dict, Iterable, List, Literal

from pydantic import BaseModel, ValidationError

from .errors import ValidationFailedError


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


def normalize_messages(messages: Iterable[Any]) -> List[Dict[str, str]]:
    """
    Validate a transcript and convert it to plain dicts for storage.

    Accepts ChatMessage instances or mappings with role/content.

    Raises:
        ValidationFailedError: If any entry is not a valid message
    """
    normalized = []
    for index, message in enumerate(messages or []):
        try:
            if isinstance(message, ChatMessage):
                parsed = message
            else:
                parsed = ChatMessage.model_validate(message)
        except ValidationError as e:
            raise ValidationFailedError(
                f"Invalid message at position {index}",
                extra={
                    "position": index,
                    "errors": [
                        {"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()
                    ],
                },
            ) from e
        normalized.append({"role": parsed.role, "content": parsed.content})
    return normalized
