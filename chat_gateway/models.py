from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict

# Backend call modes
DIRECT = "direct"
THREADED = "threaded"
AUGMENTED = "augmented"
BACKEND_MODES = (DIRECT, THREADED, AUGMENTED)

# Assistant run statuses
RUN_ACTIVE_STATUSES = ("queued", "in_progress")


class ConversationMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant", "system"]
    content: str


@dataclass(frozen=True)
class DirectCall:
    messages: Tuple[ConversationMessage, ...]
    mode = DIRECT


@dataclass(frozen=True)
class ThreadedCall:
    messages: Tuple[ConversationMessage, ...]
    assistant_id: str
    mode = THREADED

    def latest_user_message(self) -> ConversationMessage:
        for msg in reversed(self.messages):
            if msg.role == "user":
                return msg
        return self.messages[-1]


@dataclass(frozen=True)
class AugmentedCall:
    messages: Tuple[ConversationMessage, ...]
    vector_store_ids: Tuple[str, ...] = ()
    previous_response_id: Optional[str] = None
    mode = AUGMENTED


@dataclass
class BackendJob:
    """An assistant run on a thread. Only the poller mutates `status`."""
    thread_id: str
    run_id: str
    status: str


@dataclass(frozen=True)
class Extraction:
    answer_text: str
    continuity_token: Optional[str] = None


@dataclass(frozen=True)
class OrchestrationResult:
    answer_text: str
    mode_used: str
    used_fallback: bool = False
    continuity_token: Optional[str] = None
    usage: Dict[str, int] = field(default_factory=dict)
    fallback_reason: Optional[str] = None
    thread_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def as_messages(items: List[Any]) -> Tuple[ConversationMessage, ...]:
    """Accept ConversationMessage instances or plain {role, content} dicts."""
    out = []
    for item in items:
        if isinstance(item, ConversationMessage):
            out.append(item)
        else:
            out.append(ConversationMessage(**item))
    return tuple(out)
