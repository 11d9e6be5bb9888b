"""Tests for follow-up conversations"""

import json

import httpx
import pytest

from core.models import EventKind, Role, Turn
from gateway import ConversationSession


def ndjson(*parts):
    lines = [json.dumps({"response": part, "done": False}) for part in parts]
    lines.append(json.dumps({"response": "", "done": True}))
    return ("\n".join(lines) + "\n").encode()


class TestConversationSession:

    def test_build_request_uses_settings(self, make_settings):
        settings = make_settings(system_prompt="Be terse.", use_internet=True)
        session = ConversationSession("ollama", settings)

        request = session.build_request("What is this?", image=b"img")

        assert request.model == "llama3"
        assert request.system_prompt == "Be terse."
        assert request.use_internet is True
        assert request.image == b"img"
        assert request.turns == ()

    @pytest.mark.asyncio
    async def test_history_grows_on_done(self, make_gateway, make_settings):
        replies = iter([ndjson("Hel", "lo"), ndjson("Fine")])
        gateway, recorder = make_gateway(lambda request: httpx.Response(200, content=next(replies)))
        session = ConversationSession("ollama", make_settings())

        first = [event async for event in session.ask(gateway, "Hi")]
        second = [event async for event in session.ask(gateway, "How are you?")]

        assert first[-1].full_text == "Hello"
        assert second[-1].full_text == "Fine"
        assert session.turns == [
            Turn(Role.USER, "Hi"),
            Turn(Role.ASSISTANT, "Hello"),
            Turn(Role.USER, "How are you?"),
            Turn(Role.ASSISTANT, "Fine"),
        ]

        second_prompt = json.loads(recorder.requests[1].content)["prompt"]
        assert second_prompt == "User: Hi\n\nAssistant: Hello\n\nUser: How are you?"
        assert session.busy is False

    @pytest.mark.asyncio
    async def test_errored_exchange_not_recorded(self, make_gateway, make_settings):
        gateway, _ = make_gateway(lambda request: httpx.Response(500, text="boom"))
        session = ConversationSession("ollama", make_settings())

        events = [event async for event in session.ask(gateway, "Hi")]

        assert [event.kind for event in events] == [EventKind.ERROR]
        assert session.turns == []
        assert session.busy is False

    @pytest.mark.asyncio
    async def test_busy_while_streaming(self, make_gateway, make_settings):
        gateway, _ = make_gateway(lambda request: httpx.Response(200, content=ndjson("a", "b")))
        session = ConversationSession("ollama", make_settings())

        seen_busy = []
        async for _event in session.ask(gateway, "Hi"):
            seen_busy.append(session.busy)

        assert all(seen_busy)
        assert session.busy is False

    @pytest.mark.asyncio
    async def test_clear(self, make_gateway, make_settings):
        gateway, _ = make_gateway(lambda request: httpx.Response(200, content=ndjson("x")))
        session = ConversationSession("ollama", make_settings())
        _ = [event async for event in session.ask(gateway, "Hi")]

        session.clear()

        assert session.turns == []
        assert session.build_request("again").turns == ()
