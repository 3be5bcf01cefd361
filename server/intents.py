# server/intents.py
"""Keyword classifier deciding whether a chat message is talk, a new picture, or an edit."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

EDIT_TRIGGERS = ("add", "remove", "change", "edit", "make it")
IMAGE_TRIGGERS = ("show me", "bring me", "pic of")

# "a pic of" must be tried before "pic of" at the same offset
_STRIP = re.compile(r"show me|bring me|a pic of|an pic of|pic of", re.IGNORECASE)


@dataclass(frozen=True)
class Chat:
    pass


@dataclass(frozen=True)
class GenerateImage:
    prompt: str


@dataclass(frozen=True)
class EditImage:
    prompt: str


Intent = Union[Chat, GenerateImage, EditImage]


def image_prompt(text: str) -> str:
    return _STRIP.sub("", text).strip()


def classify(text: str, has_image_under_edit: bool = False) -> Intent:
    if not text or not text.strip():
        raise ValueError("empty message")
    lower = text.lower()
    if has_image_under_edit and any(t in lower for t in EDIT_TRIGGERS):
        return EditImage(prompt=text)
    if any(t in lower for t in IMAGE_TRIGGERS):
        return GenerateImage(prompt=image_prompt(text))
    return Chat()
