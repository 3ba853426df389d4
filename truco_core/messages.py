from dataclasses import dataclass, field
from typing import Any, Dict, List, Union


@dataclass(frozen=True)
class Message:
    """A reasoning entry the presentation layer renders from ``key`` and ``params``."""
    key: str
    params: Dict[str, Any] = field(default_factory=dict)


ReasoningEntry = Union[str, Message]
Reasoning = List[ReasoningEntry]


def message(key: str, **params) -> Message:
    return Message(key, params)
