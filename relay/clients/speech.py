from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from config.settings import Settings, get_settings
from relay.errors import UpstreamError


logger = logging.getLogger("prospect_demo.tts")

AUDIO_MIME_TYPE = "audio/mpeg"


class SpeechSynthesizer(Protocol):
    def synthesize(self, text: str) -> bytes:
        ...


def to_data_uri(audio: bytes, mime_type: str = AUDIO_MIME_TYPE) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(audio).decode('ascii')}"


class ElevenLabsSpeech:
    """Streaming text-to-speech against the ElevenLabs REST API.

    The stream endpoint is read to completion; callers get the whole MPEG payload.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport

    @property
    def endpoint(self) -> str:
        base = self.settings.elevenlabs_base_url.rstrip("/")
        return f"{base}/v1/text-to-speech/{self.settings.elevenlabs_voice_id}/stream"

    def build_payload(self, text: str) -> Dict[str, Any]:
        return {
            "text": text,
            "model_id": self.settings.elevenlabs_model_id,
            "voice_settings": {
                "stability": self.settings.elevenlabs_stability,
                "similarity_boost": self.settings.elevenlabs_similarity_boost,
            },
        }

    def synthesize(self, text: str) -> bytes:
        if not self.settings.elevenlabs_voice_id:
            raise UpstreamError("ELEVENLABS_VOICE_ID not configured")

        headers = {
            "Content-Type": "application/json",
            "Accept": AUDIO_MIME_TYPE,
            "xi-api-key": self.settings.elevenlabs_api_key or "",
        }
        try:
            with httpx.Client(
                timeout=self.settings.upstream_timeout, transport=self._transport
            ) as client:
                response = client.post(
                    self.endpoint, json=self.build_payload(text), headers=headers
                )
                response.raise_for_status()
                audio = response.content
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Speech synthesis call failed: {exc}") from exc

        if not audio:
            raise UpstreamError("Speech synthesis returned no audio")
        logger.info("Synthesized %s bytes of audio for %s chars", len(audio), len(text))
        return audio
