# services/openai_client.py
"""
Thin adapter over the OpenAI SDK: chat completion, image generation, image edit.

Each call is a single provider request (SDK retries disabled). Every failure,
including an empty or image-less response, surfaces as ProviderError; a
missing API key surfaces as ConfigurationError before any network call.
"""
from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from openai import OpenAI, OpenAIError

from services.errors import ConfigurationError, ProviderError
from services.images import ImagePart, Part, TextPart, first_image, joined_text, to_png

log = logging.getLogger(__name__)

STYLE_TEMPLATE = (
    "A vibrant, high-quality, futuristic and kid-friendly 3D illustration of: {prompt}. "
    "The style should be modern, colorful, and full of energy, similar to a high-end "
    "animated movie. No text in the image."
)
EDIT_TEMPLATE = "Apply this edit to the pic: {prompt}. Keep it fun and kid-friendly!"


def to_openai_messages(history: Iterable[Mapping[str, str]], system: str) -> List[Dict[str, str]]:
    messages = [{"role": "system", "content": system}]
    for turn in history:
        txt = (turn.get("content") or "").strip()
        if not txt:
            continue
        messages.append({
            "role": "assistant" if turn.get("role") == "model" else "user",
            "content": txt,
        })
    return messages


def chat_parts(resp: Any) -> List[Part]:
    parts: List[Part] = []
    for choice in getattr(resp, "choices", None) or []:
        message = getattr(choice, "message", None)
        content = getattr(message, "content", None)
        if content:
            parts.append(TextPart(content))
    return parts


def image_parts(resp: Any, mime_type: str = "image/png") -> List[Part]:
    parts: List[Part] = []
    for item in getattr(resp, "data", None) or []:
        b64 = getattr(item, "b64_json", None)
        if b64:
            try:
                parts.append(ImagePart(base64.b64decode(b64), mime_type))
            except (binascii.Error, ValueError):
                log.warning("[ai] skipped undecodable image part")
        revised = getattr(item, "revised_prompt", None)
        if revised:
            parts.append(TextPart(revised))
    return parts


class GenerativeClient:
    def __init__(
        self,
        api_key: Optional[str],
        chat_model: str = "gpt-4o-mini",
        image_model: str = "gpt-image-1",
        image_size: str = "1024x1024",
        timeout: float = 60.0,
    ):
        self.api_key = api_key or ""
        self.chat_model = chat_model
        self.image_model = image_model
        self.image_size = image_size
        self.timeout = timeout
        self._client: Optional[OpenAI] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _oai(self) -> OpenAI:
        if not self.configured:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def chat_complete(
        self,
        history: Sequence[Mapping[str, str]],
        system_instruction: str,
        temperature: float = 0.8,
        top_p: float = 0.9,
    ) -> str:
        client = self._oai()
        messages = to_openai_messages(history, system_instruction)
        try:
            resp = client.chat.completions.create(
                model=self.chat_model,
                messages=messages,
                temperature=temperature,
                top_p=top_p,
            )
        except OpenAIError as e:
            log.error("[ai] chat failed: %r", e)
            raise ProviderError(f"chat completion failed: {e}") from e
        return joined_text(chat_parts(resp))

    def generate_image(self, prompt: str) -> ImagePart:
        client = self._oai()
        try:
            resp = client.images.generate(
                model=self.image_model,
                prompt=STYLE_TEMPLATE.format(prompt=prompt),
                size=self.image_size,
                n=1,
            )
        except OpenAIError as e:
            log.error("[ai] image generation failed: %r", e)
            raise ProviderError(f"image generation failed: {e}") from e
        return first_image(image_parts(resp))

    def edit_image(self, prompt: str, image: ImagePart) -> ImagePart:
        client = self._oai()
        png = to_png(image)
        try:
            resp = client.images.edit(
                model=self.image_model,
                image=("source.png", png, "image/png"),
                prompt=EDIT_TEMPLATE.format(prompt=prompt),
                size=self.image_size,
                n=1,
            )
        except OpenAIError as e:
            log.error("[ai] image edit failed: %r", e)
            raise ProviderError(f"image edit failed: {e}") from e
        return first_image(image_parts(resp))
