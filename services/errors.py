# services/errors.py
"""
Error taxonomy shared by the store, the provider client and the HTTP layer.

Every error carries the status code and the fixed, kid-friendly message the
API returns. `detail` is for logs only and never reaches the caller.
"""
from __future__ import annotations

from typing import Optional


class AppError(Exception):
    status_code = 500
    message = "SoloMan's brain had a hiccup! 🧠"

    def __init__(self, detail: Optional[str] = None, *, message: Optional[str] = None):
        if message is not None:
            self.message = message
        self.detail = detail or self.message
        super().__init__(self.detail)


class ConfigurationError(AppError):
    status_code = 500
    message = "AI configuration error."


class Forbidden(AppError):
    status_code = 403
    message = "SoloMan is sleeping! Please provide a valid license key to wake him up."


class ProviderError(AppError):
    status_code = 500


class InvalidImage(ProviderError):
    status_code = 400
    message = "Invalid pic format"


class PersistenceError(AppError):
    status_code = 500
    message = "Database error"


class NotFound(AppError):
    status_code = 404
    message = "Not found"
