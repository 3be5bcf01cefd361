from __future__ import annotations

from pathlib import Path
from typing import List

import pytest
from fastapi.testclient import TestClient

from server.config import Settings
from services.errors import ProviderError
from services.images import ImagePart
from services.store import Store

LICENSE = "SOLO-TEST-KEY"
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


class FakeAI:
    """Stands in for GenerativeClient; records every call."""

    def __init__(self, configured: bool = True):
        self.configured = configured
        self.fail = False
        self.reply = "Hi friend! 🚀"
        self.calls: List[tuple] = []

    def chat_complete(self, history, system_instruction, temperature=0.8, top_p=0.9):
        self.calls.append(("chat", list(history), system_instruction, temperature, top_p))
        if self.fail:
            raise ProviderError("boom")
        return self.reply

    def generate_image(self, prompt):
        self.calls.append(("generate", prompt))
        if self.fail:
            raise ProviderError("boom")
        return ImagePart(PNG_BYTES, "image/png")

    def edit_image(self, prompt, image):
        self.calls.append(("edit", prompt, image))
        if self.fail:
            raise ProviderError("boom")
        return ImagePart(PNG_BYTES, "image/png")


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "soloman.db"


@pytest.fixture
def store(db_path: Path) -> Store:
    s = Store(db_path)
    s.init_schema()
    return s


@pytest.fixture
def fake_ai() -> FakeAI:
    return FakeAI()


@pytest.fixture
def settings(tmp_path: Path, db_path: Path) -> Settings:
    return Settings(
        openai_api_key="test-key",
        database_path=str(db_path),
        license_file=str(tmp_path / "missing-licenses.json"),
        license_keys=frozenset({LICENSE}),
        prompt_path=None,
        dist_dir=tmp_path / "dist",
    )


@pytest.fixture
def client(settings: Settings, fake_ai: FakeAI):
    from server.main import create_app

    with TestClient(create_app(settings, ai=fake_ai)) as c:
        yield c


@pytest.fixture
def auth() -> dict:
    return {"x-license-key": LICENSE}
