"""
Pytest Configuration and Fixtures

Shared fixtures for all tests. No test talks to the network: every call goes
through `StubGenerator`, which records the attempts made against each model.
"""

import asyncio
import json
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

from core.config import AppSettings
from core.domain.models import ReferenceImage


class Slow:
    """Outcome that resolves only after `seconds` (used to trip deadlines)."""

    def __init__(self, seconds: float, result: Any = None):
        self.seconds = seconds
        self.result = result


class StubGenerator:
    """In-memory `ContentGenerator`.

    `behaviors` maps a model name to an outcome, or to a list of outcomes
    consumed in order. An outcome is a response object, an exception to raise,
    or a `Slow` wrapper.
    """

    def __init__(self, behaviors: Dict[str, Any]):
        self.behaviors = behaviors
        self.calls: List[Dict[str, Any]] = []

    async def generate_content(self, *, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        outcome = self.behaviors[model]
        if isinstance(outcome, list):
            outcome = outcome.pop(0)
        if isinstance(outcome, Slow):
            await asyncio.sleep(outcome.seconds)
            outcome = outcome.result
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def models(self) -> List[str]:
        return [call["model"] for call in self.calls]


def text_response(text):
    return SimpleNamespace(text=text)


def image_response(data: bytes = b"\x89PNG-fake", mime_type: str = "image/png"):
    parts = [
        SimpleNamespace(text="here you go", inline_data=None),
        SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type)),
    ]
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


def empty_image_response():
    parts = [SimpleNamespace(text="I cannot draw that", inline_data=None)]
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


def make_plan_payload(scenes: int = 9) -> Dict[str, Any]:
    return {
        "subject": "East Asian woman, late 20s, long black hair with bangs, white linen shirt",
        "style": "Warm golden-hour light, shallow depth of field",
        "resolution": "1K",
        "aspectRatio": "16:9",
        "angles": [
            {
                "name": f"Angle {i + 1}",
                "prompt": (
                    "High-quality realistic photo of the EXACT same person from the reference image, "
                    f"maintaining their identical face, hair, and outfit: shot {i + 1}"
                ),
                "promptKo": f"장면 {i + 1}",
            }
            for i in range(scenes)
        ],
    }


@pytest.fixture(autouse=True)
def _isolate_credentials(monkeypatch):
    """Keep real keys from the developer environment out of the tests."""
    for name in ("NINECUT_API_KEY", "GEMINI_API_KEY", "API_KEY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> AppSettings:
    """Settings with a key and tight deadlines, ignoring any .env file."""
    return AppSettings(
        _env_file=None,
        api_key="test-key",
        request_timeout_seconds=0.2,
        validation_timeout_seconds=0.2,
    )


@pytest.fixture
def keyless_settings() -> AppSettings:
    return AppSettings(_env_file=None, api_key=None)


@pytest.fixture
def reference() -> ReferenceImage:
    return ReferenceImage.from_bytes(b"fake-jpeg-bytes", mime_type="image/jpeg")


@pytest.fixture
def plan_payload() -> Dict[str, Any]:
    return make_plan_payload()


@pytest.fixture
def plan_json(plan_payload) -> str:
    return json.dumps(plan_payload, ensure_ascii=False)


@pytest.fixture
def stub_factory():
    """Build a (stub, factory) pair; the factory records the keys it received."""

    def _make(behaviors: Dict[str, Any]):
        stub = StubGenerator(behaviors)
        stub.keys = []

        def factory(api_key: str) -> StubGenerator:
            stub.keys.append(api_key)
            return stub

        return stub, factory

    return _make


@pytest.fixture
def responses():
    """Response builders, exposed as a fixture namespace."""
    return SimpleNamespace(
        text=text_response,
        image=image_response,
        empty_image=empty_image_response,
        plan_payload=make_plan_payload,
        Slow=Slow,
    )
