"""
Call configuration.

Everything the orchestrator needs is read from the process environment into a
frozen `CallConfiguration`. `load_config()` is called once per request; nothing
here is cached, so env changes are picked up by the next call.
"""
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from chat_gateway.errors import ConfigurationError
from chat_gateway.models import AUGMENTED, BACKEND_MODES, DIRECT, THREADED

DEFAULT_MODEL = "gpt-4"
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant. "
    "You are knowledgeable, friendly, and concise in your responses."
)
ASSISTANT_ID_PREFIX = "asst_"

# Modes that may be pinned with OPENAI_FORCE_MODE.
FORCEABLE_MODES = (DIRECT, AUGMENTED)

POLL_MAX_ATTEMPTS = 30
POLL_INTERVAL_S = 1.0

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class CallConfiguration:
    api_key: str = ""
    model: str = DEFAULT_MODEL
    backend_mode: str = DIRECT
    assistant_id: Optional[str] = None
    vector_store_ids: Tuple[str, ...] = ()
    force_mode: bool = False
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    organization_id: Optional[str] = None
    poll_max_attempts: int = POLL_MAX_ATTEMPTS
    poll_interval_s: float = POLL_INTERVAL_S

    @property
    def has_assistant(self) -> bool:
        return bool(self.assistant_id)

    @property
    def has_vector_stores(self) -> bool:
        return len(self.vector_store_ids) > 0

    def require_api_key(self):
        if not self.api_key:
            raise ConfigurationError("OpenAI API key is not configured")

    def require_assistant_id(self) -> str:
        if not self.assistant_id:
            raise ConfigurationError("OPENAI_ASSISTANT_ID is required for threaded mode")
        if not self.assistant_id.startswith(ASSISTANT_ID_PREFIX):
            raise ConfigurationError(
                f"Invalid assistant ID format: {self.assistant_id}. Should start with '{ASSISTANT_ID_PREFIX}'"
            )
        return self.assistant_id


def parse_vector_store_ids(raw: Optional[str]) -> Tuple[str, ...]:
    """Comma separated ids, trimmed, empty entries dropped, order kept."""
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def parse_bool(raw: Optional[str]) -> bool:
    return (raw or "").strip().lower() in _TRUTHY


def resolve_backend_mode(raw: Optional[str], assistant_id: Optional[str], vector_store_ids: Tuple[str, ...]) -> str:
    mode = (raw or "").strip().lower()
    if mode:
        if mode not in BACKEND_MODES:
            raise ConfigurationError(
                f"Unknown OPENAI_BACKEND_MODE '{raw}'. Expected one of: {', '.join(BACKEND_MODES)}"
            )
        return mode
    if vector_store_ids:
        return AUGMENTED
    if assistant_id:
        return THREADED
    return DIRECT


def load_config(env: Optional[Mapping[str, str]] = None) -> CallConfiguration:
    env = os.environ if env is None else env
    assistant_id = (env.get("OPENAI_ASSISTANT_ID") or "").strip() or None
    vector_store_ids = parse_vector_store_ids(env.get("OPENAI_VECTOR_STORE_IDS"))
    return CallConfiguration(
        api_key=(env.get("OPENAI_API_KEY") or "").strip(),
        model=(env.get("OPENAI_MODEL") or "").strip() or DEFAULT_MODEL,
        backend_mode=resolve_backend_mode(env.get("OPENAI_BACKEND_MODE"), assistant_id, vector_store_ids),
        assistant_id=assistant_id,
        vector_store_ids=vector_store_ids,
        force_mode=parse_bool(env.get("OPENAI_FORCE_MODE")),
        system_prompt=(env.get("OPENAI_SYSTEM_PROMPT") or "").strip() or DEFAULT_SYSTEM_PROMPT,
        organization_id=(env.get("OPENAI_ORGANIZATION_ID") or "").strip() or None,
    )


# ---------------- Introspection (masked) ----------------

def mask_api_key(key: Optional[str]) -> str:
    if not key:
        return "Not configured"
    if len(key) < 10:
        return "Invalid key format"
    return f"{key[:7]}...{key[-4:]}"


def mask_assistant_id(assistant_id: Optional[str]) -> str:
    if not assistant_id:
        return "Not configured"
    if not assistant_id.startswith(ASSISTANT_ID_PREFIX):
        return "Invalid format"
    return f"{assistant_id[:10]}...{assistant_id[-4:]}"


def describe_config(config: CallConfiguration) -> dict:
    """Read-only summary for /api/config. Secrets are masked."""
    return {
        "is_configured": bool(config.api_key),
        "has_assistant": config.has_assistant,
        "has_vector_stores": config.has_vector_stores,
        "api_mode": config.backend_mode,
        "force_mode": config.force_mode,
        "details": {
            "api_key": mask_api_key(config.api_key),
            "model": config.model,
            "assistant_id": mask_assistant_id(config.assistant_id),
            "organization_id": config.organization_id or "Not configured",
            "vector_stores": [f"{vs[:8]}..." for vs in config.vector_store_ids],
            "status": "Ready" if config.api_key else "Needs API key",
        },
    }
