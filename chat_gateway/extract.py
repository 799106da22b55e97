"""
Normalize backend payloads into plain answer text.

Payloads may be SDK objects (pydantic models) or plain dicts; both are read
through `_get`. Only augmented mode produces a continuity token.
"""
from typing import Any, Dict, Optional

from chat_gateway.errors import ExtractionError
from chat_gateway.models import AUGMENTED, DIRECT, THREADED, Extraction

TEXT_CONTENT_TYPES = ("output_text", "text")


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _first(items: Any) -> Any:
    if not items:
        return None
    try:
        return items[0]
    except (IndexError, KeyError, TypeError):
        return None


def _extract_completion(payload: Any) -> str:
    message = _get(_first(_get(payload, "choices")), "message")
    content = _get(message, "content")
    if not isinstance(content, str) or not content:
        raise ExtractionError("No response from OpenAI")
    return content


def _extract_thread_message(payload: Any) -> str:
    """`payload` is the listed thread messages, newest first."""
    messages = _get(payload, "data")
    if messages is None and isinstance(payload, list):
        messages = payload
    assistant_msg = next((m for m in messages or [] if _get(m, "role") == "assistant"), None)
    if assistant_msg is None:
        raise ExtractionError("No assistant message found in thread")

    block = _first(_get(assistant_msg, "content"))
    if block is None or _get(block, "type") != "text":
        raise ExtractionError("Assistant message has no text content")
    text = _get(_get(block, "text"), "value")
    if not isinstance(text, str) or not text.strip():
        raise ExtractionError("Assistant message has no text content")
    return text


def _extract_response_text(payload: Any) -> str:
    # Method 1: aggregated output_text
    text = _get(payload, "output_text")
    if isinstance(text, str) and text.strip():
        return text

    # Method 2: first output item carrying content, first content block
    for item in _get(payload, "output") or []:
        content = _get(item, "content")
        if not content:
            continue
        block = _first(content)
        if _get(block, "type") in TEXT_CONTENT_TYPES:
            text = _get(block, "text")
            if isinstance(text, str) and text.strip():
                return text
        break

    raise ExtractionError("No text found in response output")


def extract(mode: str, payload: Any) -> Extraction:
    if mode == DIRECT:
        return Extraction(answer_text=_extract_completion(payload))
    if mode == THREADED:
        return Extraction(answer_text=_extract_thread_message(payload))
    if mode == AUGMENTED:
        answer = _extract_response_text(payload)
        token: Optional[str] = _get(payload, "id") or None
        return Extraction(answer_text=answer, continuity_token=token)
    raise ValueError(f"unknown backend mode: {mode}")


def extract_usage(payload: Any) -> Dict[str, int]:
    """
    Token usage as {input_tokens, output_tokens, total_tokens}.

    Chat completions report prompt/completion tokens, Responses report
    input/output tokens; both are folded into the same keys.
    """
    usage = _get(payload, "usage")
    if usage is None:
        return {}
    input_tokens = _get(usage, "input_tokens")
    if input_tokens is None:
        input_tokens = _get(usage, "prompt_tokens", 0)
    output_tokens = _get(usage, "output_tokens")
    if output_tokens is None:
        output_tokens = _get(usage, "completion_tokens", 0)
    input_tokens = int(input_tokens or 0)
    output_tokens = int(output_tokens or 0)
    total_tokens = int(_get(usage, "total_tokens", 0) or (input_tokens + output_tokens))
    return {
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": total_tokens,
    }
