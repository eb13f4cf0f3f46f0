from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from relay.clients.speech import SpeechSynthesizer, to_data_uri
from relay.clients.text_generation import TextGenerator
from relay.errors import ProspectNotFound
from store.models import Prospect


logger = logging.getLogger("prospect_demo.relay")

# prospect id -> Prospect or None
ProspectLookup = Callable[[str], Optional[Prospect]]


@dataclass
class ChatReply:
    text: str
    audio_data: str


def to_lc_messages(history: List[dict]) -> List[BaseMessage]:
    """Convert client-held turns into LangChain messages, preserving every turn."""
    messages: List[BaseMessage] = []
    for item in history or []:
        role = (item.get("role") or "").lower()
        content = item.get("content") or ""
        if role in ("assistant", "ai", "bot"):
            messages.append(AIMessage(content=content))
        else:
            # "user", "human" and anything unrecognised go out as visitor turns
            messages.append(HumanMessage(content=content))
    return messages


def build_messages(system_prompt: str, history: List[dict], user_message: str) -> List[BaseMessage]:
    return [
        SystemMessage(content=system_prompt),
        *to_lc_messages(history),
        HumanMessage(content=user_message),
    ]


class ChatRelay:
    """One stateless chat turn: prospect lookup, text generation, then speech.

    Any exception from either upstream propagates; a turn never yields a
    partial reply.
    """

    def __init__(
        self,
        lookup: ProspectLookup,
        text_generator: TextGenerator,
        speech: SpeechSynthesizer,
    ) -> None:
        self.lookup = lookup
        self.text_generator = text_generator
        self.speech = speech

    def handle(self, prospect_id: str, user_message: str, history: List[dict]) -> ChatReply:
        prospect = self.lookup(prospect_id)
        if prospect is None:
            raise ProspectNotFound(prospect_id)

        messages = build_messages(prospect.system_prompt, history, user_message)
        logger.info(
            "Relaying turn: prospect=%s history_turns=%s outbound_messages=%s",
            prospect_id,
            len(history or []),
            len(messages),
        )
        text = self.text_generator.generate(messages)
        audio = self.speech.synthesize(text)
        return ChatReply(text=text, audio_data=to_data_uri(audio))
