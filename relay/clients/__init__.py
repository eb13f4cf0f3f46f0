from relay.clients.speech import ElevenLabsSpeech, SpeechSynthesizer, to_data_uri
from relay.clients.text_generation import (
    GeminiChat,
    OpenRouterChat,
    TextGenerator,
    build_text_generator,
)

__all__ = [
    "ElevenLabsSpeech",
    "GeminiChat",
    "OpenRouterChat",
    "SpeechSynthesizer",
    "TextGenerator",
    "build_text_generator",
    "to_data_uri",
]
