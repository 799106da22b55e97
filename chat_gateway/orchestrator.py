"""
Mode selection and fallback.

`orchestrate()` is the only entry point the HTTP layer uses. It turns one
request into exactly one `OrchestrationResult` or raises exactly one
`OrchestrationError`:

- direct:    one chat completion.
- threaded:  assistant run polled to a terminal state; anything short of a
             completed run with a readable answer falls back to direct.
- augmented: one Responses call; failures are surfaced, never degraded, so a
             broken file_search setup is not hidden behind a plain answer.

`force_mode` pins the configured mode and turns fallback off.
"""
import logging
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from chat_gateway.config import FORCEABLE_MODES, CallConfiguration
from chat_gateway.errors import BackendCallError, ConfigurationError, ExtractionError, RequestError
from chat_gateway.extract import extract, extract_usage
from chat_gateway.models import (
    AUGMENTED,
    DIRECT,
    RUN_ACTIVE_STATUSES,
    THREADED,
    AugmentedCall,
    DirectCall,
    OrchestrationResult,
    ThreadedCall,
    as_messages,
)
from chat_gateway.openai_client import BackendClient
from chat_gateway.polling import ERROR, MISSING, poll_until_terminal

logger = logging.getLogger(__name__)


def select_mode(config: CallConfiguration) -> str:
    mode = config.backend_mode
    if config.force_mode and mode not in FORCEABLE_MODES:
        raise ConfigurationError(
            f"Mode '{mode}' cannot be forced. Forceable modes: {', '.join(FORCEABLE_MODES)}"
        )
    if mode == THREADED:
        config.require_assistant_id()
    return mode


async def orchestrate(
    messages: Sequence[Any],
    config: CallConfiguration,
    continuity_token: Optional[str] = None,
    client: Optional[Any] = None,
) -> OrchestrationResult:
    if not messages:
        raise RequestError("Messages array is required")
    try:
        msgs = as_messages(list(messages))
    except (ValidationError, TypeError) as e:
        raise RequestError(f"Invalid message: {e}") from e

    config.require_api_key()
    mode = select_mode(config)
    backend = BackendClient(config, client)

    if continuity_token and mode != AUGMENTED:
        logger.info("continuity token ignored in %s mode", mode)

    try:
        if mode == AUGMENTED:
            return await _run_augmented(backend, msgs, config, continuity_token)
        if mode == THREADED:
            return await _run_threaded(backend, msgs, config)
        return await _run_direct(backend, msgs)
    finally:
        await backend.aclose()


async def _run_direct(backend: BackendClient, msgs, fallback_reason: Optional[str] = None) -> OrchestrationResult:
    payload = await backend.invoke(DirectCall(messages=msgs))
    extraction = extract(DIRECT, payload)
    return OrchestrationResult(
        answer_text=extraction.answer_text,
        mode_used=DIRECT,
        used_fallback=fallback_reason is not None,
        usage=extract_usage(payload),
        fallback_reason=fallback_reason,
    )


async def _run_augmented(backend: BackendClient, msgs, config: CallConfiguration, continuity_token: Optional[str]) -> OrchestrationResult:
    call = AugmentedCall(
        messages=msgs,
        vector_store_ids=config.vector_store_ids,
        previous_response_id=continuity_token or None,
    )
    payload = await backend.invoke(call)
    extraction = extract(AUGMENTED, payload)
    return OrchestrationResult(
        answer_text=extraction.answer_text,
        mode_used=AUGMENTED,
        continuity_token=extraction.continuity_token,
        usage=extract_usage(payload),
    )


async def _run_threaded(backend: BackendClient, msgs, config: CallConfiguration) -> OrchestrationResult:
    call = ThreadedCall(messages=msgs, assistant_id=config.require_assistant_id())
    try:
        job = await backend.invoke(call)

        async def fetch_status():
            return await backend.fetch_run_status(job)

        poll = await poll_until_terminal(
            fetch_status,
            is_terminal=lambda status: status not in RUN_ACTIVE_STATUSES,
            initial_status=job.status,
            max_attempts=config.poll_max_attempts,
            interval=config.poll_interval_s,
        )
        if poll.status not in (MISSING, ERROR):
            job.status = poll.status

        if poll.completed:
            payload = await backend.list_thread_messages(job.thread_id)
            extraction = extract(THREADED, payload)
            return OrchestrationResult(
                answer_text=extraction.answer_text,
                mode_used=THREADED,
                thread_id=job.thread_id,
            )

        if poll.timed_out:
            reason = f"poll_timeout after {poll.attempts} attempts (status: {poll.status})"
        elif poll.error:
            reason = f"poll_error: {poll.error}"
        else:
            reason = f"run ended unsuccessfully (status: {poll.status})"
    except (BackendCallError, ExtractionError) as e:
        reason = f"{e.category}: {e.message}"

    logger.warning("assistant did not complete, falling back to direct: %s", reason)
    return await _run_direct(backend, msgs, fallback_reason=reason)
