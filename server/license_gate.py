# server/license_gate.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Union

from fastapi import Header, Request

from services.errors import Forbidden

log = logging.getLogger(__name__)


def load_license_keys(path: Union[str, Path, None], extra: Iterable[str] = ()) -> FrozenSet[str]:
    """Reads `{"keys": [...]}`; a missing or broken file leaves only `extra`."""
    keys = {k for k in extra if k}
    if not path:
        return frozenset(keys)
    p = Path(path)
    log.info("[license] loading licenses from %s", p)
    if not p.exists():
        log.error("[license] licenses file not found at %s", p)
        return frozenset(keys)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
        keys.update(str(k) for k in data.get("keys", []) if k)
    except (OSError, ValueError, AttributeError) as e:
        log.error("[license] failed to load licenses: %r", e)
    log.info("[license] loaded %d valid license keys", len(keys))
    return frozenset(keys)


class LicenseGate:
    def __init__(self, keys: Iterable[str]):
        self._keys = frozenset(keys)

    def __len__(self) -> int:
        return len(self._keys)

    def allows(self, key: Optional[str]) -> bool:
        return bool(key) and key in self._keys

    def check(self, key: Optional[str]) -> None:
        if not self.allows(key):
            raise Forbidden("missing or unknown license key")


def require_license(request: Request, x_license_key: Optional[str] = Header(None)) -> str:
    """FastAPI dependency guarding AI-cost routes."""
    request.app.state.gate.check(x_license_key)
    return x_license_key
