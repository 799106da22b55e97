from types import SimpleNamespace
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from chat_gateway.config import CallConfiguration
from chat_gateway.models import AUGMENTED, DIRECT, THREADED


class FakeOpenAI:
    """In-memory stand-in for AsyncOpenAI that records every call it receives."""

    def __init__(
        self,
        *,
        completion_text: Optional[str] = "direct answer",
        response_text: Optional[str] = "augmented answer",
        response_output: Optional[list] = None,
        response_id: str = "resp_1",
        initial_run_status: str = "queued",
        run_statuses: Sequence[str] = ("completed",),
        run_listed: bool = True,
        thread_reply: Optional[str] = "assistant answer",
        failures: Optional[Dict[str, Exception]] = None,
    ):
        self.calls: List[Tuple[str, dict]] = []
        self.completion_text = completion_text
        self.response_text = response_text
        self.response_output = response_output
        self.response_id = response_id
        self.initial_run_status = initial_run_status
        self.run_statuses = list(run_statuses)
        self.run_listed = run_listed
        self.thread_reply = thread_reply
        self.failures = dict(failures or {})
        self.closed = 0

        self.chat = SimpleNamespace(
            completions=SimpleNamespace(create=self._endpoint("chat.completions.create", self._completion))
        )
        self.responses = SimpleNamespace(create=self._endpoint("responses.create", self._response))
        self.beta = SimpleNamespace(
            threads=SimpleNamespace(
                create=self._endpoint("threads.create", self._thread),
                messages=SimpleNamespace(
                    create=self._endpoint("threads.messages.create", self._message),
                    list=self._endpoint("threads.messages.list", self._messages),
                ),
                runs=SimpleNamespace(
                    create=self._endpoint("threads.runs.create", self._run),
                    list=self._endpoint("threads.runs.list", self._runs),
                ),
            )
        )

    def _endpoint(self, name, handler):
        async def call(**kwargs):
            self.calls.append((name, kwargs))
            if name in self.failures:
                raise self.failures[name]
            return handler(**kwargs)
        return call

    async def close(self):
        self.closed += 1

    def count(self, name: Optional[str] = None) -> int:
        if name is None:
            return len(self.calls)
        return sum(1 for n, _ in self.calls if n == name)

    def sent(self, name: str) -> List[dict]:
        return [kwargs for n, kwargs in self.calls if n == name]

    # ---------------- canned payloads ----------------

    def _completion(self, **_kwargs):
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(role="assistant", content=self.completion_text))],
            usage=SimpleNamespace(prompt_tokens=12, completion_tokens=8, total_tokens=20),
        )

    def _response(self, **_kwargs):
        output = self.response_output
        if output is None:
            output = [
                SimpleNamespace(
                    type="message",
                    role="assistant",
                    content=[SimpleNamespace(type="output_text", text=self.response_text or "")],
                )
            ]
        return SimpleNamespace(
            id=self.response_id,
            output_text=self.response_text,
            output=output,
            usage=SimpleNamespace(input_tokens=30, output_tokens=10, total_tokens=40),
        )

    def _thread(self, **_kwargs):
        return SimpleNamespace(id="thread_1")

    def _message(self, **kwargs):
        return SimpleNamespace(id="msg_1", role=kwargs.get("role"))

    def _run(self, **_kwargs):
        return SimpleNamespace(id="run_1", status=self.initial_run_status)

    def _runs(self, **_kwargs):
        status = self.run_statuses.pop(0) if len(self.run_statuses) > 1 else self.run_statuses[0]
        run_id = "run_1" if self.run_listed else "run_other"
        return SimpleNamespace(data=[SimpleNamespace(id=run_id, status=status)])

    def _messages(self, **_kwargs):
        data = []
        if self.thread_reply is not None:
            data.append(
                SimpleNamespace(
                    role="assistant",
                    content=[SimpleNamespace(type="text", text=SimpleNamespace(value=self.thread_reply))],
                )
            )
        data.append(
            SimpleNamespace(role="user", content=[SimpleNamespace(type="text", text=SimpleNamespace(value="hi"))])
        )
        return SimpleNamespace(data=data)


@pytest.fixture
def messages():
    return [
        {"role": "system", "content": "Answer in English."},
        {"role": "user", "content": "What is a vector store?"},
        {"role": "assistant", "content": "A searchable index of your files."},
        {"role": "user", "content": "How do I add one?"},
    ]


@pytest.fixture
def direct_config():
    return CallConfiguration(api_key="sk-test-1234567890", backend_mode=DIRECT)


@pytest.fixture
def threaded_config():
    return CallConfiguration(
        api_key="sk-test-1234567890",
        backend_mode=THREADED,
        assistant_id="asst_abc123",
        poll_interval_s=0.0,
    )


@pytest.fixture
def augmented_config():
    return CallConfiguration(
        api_key="sk-test-1234567890",
        backend_mode=AUGMENTED,
        vector_store_ids=("vs_alpha", "vs_beta"),
    )
