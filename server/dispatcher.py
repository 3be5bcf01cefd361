# server/dispatcher.py
"""
Chat/image dispatcher: one user message in, one structured reply out.

Holds no conversation state of its own. Context is re-read from the store on
every call; the only cross-call state is the process-wide DailyChallenge.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from server.challenge import DailyChallenge
from server.intents import Chat, EditImage, GenerateImage, classify
from server.license_gate import LicenseGate
from server.prompting import PromptBuilder
from services.errors import ConfigurationError, ProviderError
from services.images import parse_data_url
from services.openai_client import GenerativeClient
from services.store import Store

log = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    reply: str
    image_url: Optional[str] = None
    image_prompt: Optional[str] = None
    clear_edit_selection: bool = False
    forbidden: bool = False
    challenge_points: int = 0
    challenge_message: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "response": self.reply,
            "clearEditSelection": self.clear_edit_selection,
            "challengePoints": self.challenge_points,
        }
        if self.image_url:
            body["imageUrl"] = self.image_url
            body["imagePrompt"] = self.image_prompt
        if self.challenge_message:
            body["challengeMessage"] = self.challenge_message
        return body


class Dispatcher:
    def __init__(
        self,
        store: Store,
        gate: LicenseGate,
        ai: GenerativeClient,
        challenge: DailyChallenge,
        prompts: Optional[PromptBuilder] = None,
        history_window: int = 0,
        temperature: float = 0.8,
        top_p: float = 0.9,
    ):
        self.store = store
        self.gate = gate
        self.ai = ai
        self.challenge = challenge
        self.prompts = prompts or PromptBuilder()
        self.history_window = history_window
        self.temperature = temperature
        self.top_p = top_p

    def handle(
        self,
        user_text: str,
        license_key: Optional[str] = None,
        image_under_edit: Optional[str] = None,
    ) -> Optional[DispatchResult]:
        if not user_text or not user_text.strip():
            return None

        if not self.gate.allows(license_key):
            log.info("[chat] rejected message without a valid license key")
            return DispatchResult(reply=self.prompts.SLEEPING, forbidden=True)

        if not self.ai.configured:
            raise ConfigurationError("chat requested but no provider key is configured")

        self.store.append_turn("user", user_text)

        intent = classify(user_text, has_image_under_edit=bool(image_under_edit))
        points = self.challenge.register(intent, user_text)

        try:
            if isinstance(intent, EditImage):
                result = self._edit(intent.prompt, image_under_edit)
            elif isinstance(intent, GenerateImage):
                result = self._generate(intent.prompt)
            else:
                result = self._chat()
        except ProviderError as e:
            log.warning("[chat] %s failed, sending fallback: %s", type(intent).__name__, e.detail)
            self.store.append_turn("model", self.prompts.FALLBACK)
            result = DispatchResult(reply=self.prompts.FALLBACK)

        if points:
            result.challenge_points = points
            result.challenge_message = self.prompts.challenge_done(points)
        return result

    def _chat(self) -> DispatchResult:
        history = self.store.chat_history(limit=self.history_window)
        reply = self.ai.chat_complete(
            history,
            self.prompts.system_instruction(),
            temperature=self.temperature,
            top_p=self.top_p,
        )
        self.store.append_turn("model", reply)
        return DispatchResult(reply=reply)

    def _generate(self, prompt: str) -> DispatchResult:
        image = self.ai.generate_image(prompt)
        url = image.to_data_url()
        self.store.add_gallery(url, prompt=prompt, kind="generated")
        reply = self.prompts.image_ready(prompt)
        self.store.append_turn("model", reply)
        return DispatchResult(reply=reply, image_url=url, image_prompt=prompt)

    def _edit(self, prompt: str, image_under_edit: Optional[str]) -> DispatchResult:
        source = parse_data_url(image_under_edit)
        image = self.ai.edit_image(prompt, source)
        url = image.to_data_url()
        label = f"Edit: {prompt}"
        self.store.add_gallery(url, prompt=label, kind="generated")
        reply = self.prompts.EDIT_READY
        self.store.append_turn("model", reply)
        return DispatchResult(
            reply=reply, image_url=url, image_prompt=label, clear_edit_selection=True
        )
