"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts y headers para las comprobaciones de conectividad
  (`doctor`); las llamadas a Gemini van por el SDK.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings

USER_AGENT = "ninecut/0.1"

GEMINI_API_URL = "https://generativelanguage.googleapis.com"


def build_async_client(settings: AppSettings | None = None) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros."""

    settings = settings or AppSettings()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.validation_timeout_seconds),
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )
