"""
Tests for the upstream HTTP clients, using httpx.MockTransport (no network).
"""

import json
from unittest.mock import MagicMock

import httpx
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from relay.clients.speech import ElevenLabsSpeech
from relay.clients.text_generation import (
    GeminiChat,
    OpenRouterChat,
    build_text_generator,
)
from relay.errors import UpstreamError


def _recording_transport(handler):
    seen = []

    def _handle(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return httpx.MockTransport(_handle), seen


MESSAGES = [
    SystemMessage(content="You sell widgets."),
    HumanMessage(content="hi"),
    AIMessage(content="hello"),
    HumanMessage(content="price?"),
]


class TestOpenRouterChat:
    def test_posts_model_and_messages(self, settings):
        transport, seen = _recording_transport(
            lambda r: httpx.Response(
                200, json={"choices": [{"message": {"content": "First"}}, {"message": {"content": "Second"}}]}
            )
        )
        text = OpenRouterChat(settings, transport=transport).generate(MESSAGES)

        assert text == "First"
        request = seen[0]
        assert str(request.url) == "https://openrouter.test/api/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer or-key"
        body = json.loads(request.content)
        assert body == {
            "model": "test/model",
            "messages": [
                {"role": "system", "content": "You sell widgets."},
                {"role": "user", "content": "hi"},
                {"role": "assistant", "content": "hello"},
                {"role": "user", "content": "price?"},
            ],
        }

    def test_error_status_raises_upstream_error(self, settings):
        transport, _ = _recording_transport(lambda r: httpx.Response(502, text="bad gateway"))
        with pytest.raises(UpstreamError):
            OpenRouterChat(settings, transport=transport).generate(MESSAGES)

    @pytest.mark.parametrize(
        "payload",
        [{}, {"choices": []}, {"choices": [{"message": {}}]}, {"choices": [{"message": {"content": None}}]}],
    )
    def test_malformed_payload_raises_upstream_error(self, settings, payload):
        transport, _ = _recording_transport(lambda r: httpx.Response(200, json=payload))
        with pytest.raises(UpstreamError):
            OpenRouterChat(settings, transport=transport).generate(MESSAGES)

    def test_non_json_body_raises_upstream_error(self, settings):
        transport, _ = _recording_transport(lambda r: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(UpstreamError):
            OpenRouterChat(settings, transport=transport).generate(MESSAGES)

    def test_transport_failure_raises_upstream_error(self, settings):
        def boom(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        transport, _ = _recording_transport(boom)
        with pytest.raises(UpstreamError):
            OpenRouterChat(settings, transport=transport).generate(MESSAGES)


class TestGeminiChat:
    def test_returns_llm_content(self, settings):
        llm = MagicMock()
        llm.invoke.return_value = AIMessage(content="Gemini says hi")
        assert GeminiChat(settings, llm=llm).generate(MESSAGES) == "Gemini says hi"
        llm.invoke.assert_called_once_with(MESSAGES)

    def test_llm_exception_becomes_upstream_error(self, settings):
        llm = MagicMock()
        llm.invoke.side_effect = RuntimeError("quota")
        with pytest.raises(UpstreamError):
            GeminiChat(settings, llm=llm).generate(MESSAGES)

    def test_missing_key_is_an_upstream_error(self, settings):
        settings.google_api_key = None
        with pytest.raises(UpstreamError):
            GeminiChat(settings).generate(MESSAGES)


class TestProviderSelection:
    def test_default_is_openrouter(self, settings):
        assert isinstance(build_text_generator(settings), OpenRouterChat)

    def test_gemini(self, settings):
        settings.llm_provider = "Gemini"
        assert isinstance(build_text_generator(settings), GeminiChat)

    def test_unknown_falls_back_to_openrouter(self, settings):
        settings.llm_provider = "mystery"
        assert isinstance(build_text_generator(settings), OpenRouterChat)


class TestElevenLabsSpeech:
    def test_posts_text_and_voice_settings(self, settings):
        transport, seen = _recording_transport(
            lambda r: httpx.Response(200, content=b"XY", headers={"Content-Type": "audio/mpeg"})
        )
        audio = ElevenLabsSpeech(settings, transport=transport).synthesize("Hello there")

        assert audio == b"XY"
        request = seen[0]
        assert str(request.url) == "https://tts.test/v1/text-to-speech/voice-1/stream"
        assert request.headers["xi-api-key"] == "xi-key"
        assert json.loads(request.content) == {
            "text": "Hello there",
            "model_id": "eleven_multilingual_v2",
            "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
        }

    def test_error_status_raises_upstream_error(self, settings):
        transport, _ = _recording_transport(lambda r: httpx.Response(401, json={"detail": "bad key"}))
        with pytest.raises(UpstreamError):
            ElevenLabsSpeech(settings, transport=transport).synthesize("Hello")

    def test_empty_audio_raises_upstream_error(self, settings):
        transport, _ = _recording_transport(lambda r: httpx.Response(200, content=b""))
        with pytest.raises(UpstreamError):
            ElevenLabsSpeech(settings, transport=transport).synthesize("Hello")

    def test_missing_voice_makes_no_request(self, settings):
        settings.elevenlabs_voice_id = None
        transport, seen = _recording_transport(lambda r: httpx.Response(200, content=b"XY"))
        with pytest.raises(UpstreamError):
            ElevenLabsSpeech(settings, transport=transport).synthesize("Hello")
        assert seen == []
