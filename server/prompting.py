# server/prompting.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from prompts.master_prompt import MASTER_PROMPT

log = logging.getLogger(__name__)


class PromptBuilder:
    """
    Every fixed line SoloMan says, plus the persona used for chat turns.

    The persona defaults to MASTER_PROMPT; pointing `prompt_path` at a file
    swaps it without a restart (reloaded when the file's mtime changes).
    """

    WELCOME = (
        "Hi there! I'm SoloMan, your AI best friend! 🚀 I'm here to help you with your "
        "missions and show you cool avatars. What's your name?"
    )
    FALLBACK = "Oops! My super-brain had a little hiccup. 🧠 Can you say that again? I'm ready to help!"
    SLEEPING = "SoloMan is sleeping! Please provide a valid license key to wake him up."
    IMAGE_READY = "Here is the pic of {prompt} you asked for! Isn't it cool? 🌟"
    EDIT_READY = "I've edited the pic for you! How does it look? ✨"
    CHALLENGE_DONE = "WOW! You completed the Daily Challenge! Here are {points} bonus Star Points!"

    def __init__(self, prompt_path: Optional[str] = None):
        self.prompt_path = Path(prompt_path).resolve() if prompt_path else None
        self._cache: Dict[str, object] = {"text": None, "mtime": None}

    def system_instruction(self) -> str:
        path = self.prompt_path
        if path is None:
            return MASTER_PROMPT
        try:
            st = path.stat()
        except FileNotFoundError:
            return MASTER_PROMPT
        if self._cache["text"] is None or self._cache["mtime"] != st.st_mtime:
            text = path.read_text(encoding="utf-8")
            # strip optional front-matter
            if text.startswith("---"):
                end = text.find("\n---", 3)
                if end != -1:
                    text = text[end + 4:].lstrip()
            self._cache.update({"text": text.strip() or MASTER_PROMPT, "mtime": st.st_mtime})
            log.info("[prompt] loaded %s", path)
        return self._cache["text"]

    def image_ready(self, prompt: str) -> str:
        return self.IMAGE_READY.format(prompt=prompt)

    def challenge_done(self, points: int) -> str:
        return self.CHALLENGE_DONE.format(points=points)

