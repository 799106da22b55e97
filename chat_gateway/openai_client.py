"""
OpenAI backend adapter.

One `BackendClient` wraps the three ways the gateway talks to OpenAI:

- direct:    client.chat.completions.create()      (system preamble + full history)
- threaded:  client.beta.threads / runs / messages (assistant run, polled elsewhere)
- augmented: client.responses.create()             (file_search + previous_response_id)

Calls are described by `DirectCall | ThreadedCall | AugmentedCall` and sent
through `BackendClient.invoke()`. Every SDK failure is re-raised as
`BackendCallError`; nothing here keeps state between calls. A client built
here is closed by `aclose()` once the call is done.
"""
import logging
from typing import Any, Dict, List, Optional, Union

from openai import AsyncOpenAI

from chat_gateway.config import ASSISTANT_ID_PREFIX, CallConfiguration
from chat_gateway.errors import BackendCallError, ConfigurationError
from chat_gateway.models import AugmentedCall, BackendJob, DirectCall, ThreadedCall
from chat_gateway.tool_schema import file_search_tool, schema_error_log, tool_names, validate_tools

logger = logging.getLogger(__name__)

MAX_TOKENS = 1000
TEMPERATURE = 0.7

BackendCall = Union[DirectCall, ThreadedCall, AugmentedCall]


def get_client(config: CallConfiguration) -> AsyncOpenAI:
    """Build an SDK client for this call only. The key is checked first."""
    config.require_api_key()
    kwargs: Dict[str, Any] = {"api_key": config.api_key}
    if config.organization_id:
        kwargs["organization"] = config.organization_id
    return AsyncOpenAI(**kwargs)


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def responses_input(call: AugmentedCall) -> List[Dict[str, str]]:
    """The stateless Responses form only knows user/assistant: system becomes user."""
    return [
        {"role": "user" if msg.role == "system" else msg.role, "content": msg.content}
        for msg in call.messages
    ]


class BackendClient:
    def __init__(self, config: CallConfiguration, client: Optional[Any] = None):
        self.config = config
        self._client = client
        self._owns_client = client is None

    @property
    def client(self):
        if self._client is None:
            self._client = get_client(self.config)
        return self._client

    async def aclose(self):
        """Close the SDK client if this adapter built it. Injected clients are left open."""
        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            await client.close()

    async def invoke(self, call: BackendCall):
        """Send one call. Returns the raw payload (or a BackendJob for threaded calls)."""
        if isinstance(call, ThreadedCall):
            if not call.assistant_id.startswith(ASSISTANT_ID_PREFIX):
                raise ConfigurationError(
                    f"Invalid assistant ID format: {call.assistant_id}. Should start with '{ASSISTANT_ID_PREFIX}'"
                )
            return await self._start_run(call)
        if isinstance(call, AugmentedCall):
            params = self.response_params(call)
            return await self._send("responses.create", self.client.responses.create, **params)
        if isinstance(call, DirectCall):
            params = self.completion_params(call)
            return await self._send("chat.completions.create", self.client.chat.completions.create, **params)
        raise TypeError(f"unsupported backend call: {type(call).__name__}")

    # ---------------- request shapes ----------------

    def completion_params(self, call: DirectCall) -> Dict[str, Any]:
        messages = [{"role": "system", "content": self.config.system_prompt}]
        messages += [{"role": m.role, "content": m.content} for m in call.messages]
        return {
            "model": self.config.model,
            "messages": messages,
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }

    def response_params(self, call: AugmentedCall) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": self.config.model,
            "input": responses_input(call),
        }
        if call.vector_store_ids:
            tools = [file_search_tool(call.vector_store_ids)]
            ok, error = validate_tools(tools)
            if not ok:
                logger.error(schema_error_log("file_search", error))
                raise ConfigurationError(f"Invalid file_search tool declaration: {error}")
            params["tools"] = tools
        if call.previous_response_id:
            params["previous_response_id"] = call.previous_response_id
        logger.info(
            "responses.create model=%s messages=%d tools=%s linked=%s",
            params["model"], len(params["input"]), tool_names(params.get("tools", [])),
            bool(call.previous_response_id),
        )
        return params

    # ---------------- threads / runs ----------------

    async def _start_run(self, call: ThreadedCall) -> BackendJob:
        beta = self.client.beta
        thread = await self._send("threads.create", beta.threads.create)
        thread_id = _get(thread, "id")
        await self._send(
            "threads.messages.create",
            beta.threads.messages.create,
            thread_id=thread_id,
            role="user",
            content=call.latest_user_message().content,
        )
        run = await self._send(
            "threads.runs.create",
            beta.threads.runs.create,
            thread_id=thread_id,
            assistant_id=call.assistant_id,
        )
        run_id = _get(run, "id")
        if not run_id:
            raise BackendCallError("Failed to create assistant run - no run ID returned")
        logger.info("assistant run created thread=%s run=%s status=%s", thread_id, run_id, _get(run, "status"))
        return BackendJob(thread_id=thread_id, run_id=run_id, status=_get(run, "status") or "queued")

    async def fetch_run_status(self, job: BackendJob) -> Optional[str]:
        """Latest status of `job`'s run, or None when the run is not listed."""
        page = await self._send(
            "threads.runs.list",
            self.client.beta.threads.runs.list,
            thread_id=job.thread_id,
            limit=1,
        )
        for run in _get(page, "data") or []:
            if _get(run, "id") == job.run_id:
                return _get(run, "status")
        return None

    async def list_thread_messages(self, thread_id: str):
        return await self._send(
            "threads.messages.list",
            self.client.beta.threads.messages.list,
            thread_id=thread_id,
        )

    async def _send(self, name: str, fn, **kwargs):
        try:
            return await fn(**kwargs)
        except Exception as e:
            logger.warning("%s failed: %s", name, e)
            raise BackendCallError(str(e)) from e
