"""Contratos de salida (schema + decodificador).

Por qué:
- El servicio recibe el schema como metadata (decodificación restringida),
  pero no confiamos en ello: la respuesta se valida otra vez con pydantic.
- Un fallo de parseo/validación es `MALFORMED_RESPONSE`, nunca un cast implícito.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from core.domain.models import StoryboardPlan
from core.errors import MalformedResponseError

T = TypeVar("T")


@dataclass(frozen=True)
class OutputContract(Generic[T]):
    """Schema enviado al servicio + adaptador para decodificar la respuesta."""

    name: str
    schema: dict[str, Any]
    adapter: TypeAdapter[T]
    mime_type: str = "application/json"

    def decode(self, text: str) -> T:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedResponseError(f"{self.name}: response is not valid JSON ({exc.msg})") from exc
        try:
            return self.adapter.validate_python(data)
        except ValidationError as exc:
            raise MalformedResponseError(
                f"{self.name}: response does not match the expected shape ({exc.error_count()} errors)"
            ) from exc


_ANGLE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "name": {"type": "STRING"},
        "prompt": {"type": "STRING"},
        "promptKo": {"type": "STRING"},
    },
    "required": ["name", "prompt", "promptKo"],
}

PLAN_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "subject": {"type": "STRING", "description": "상세한 캐릭터 외모 묘사 (Identity Lock)"},
        "style": {"type": "STRING", "description": "전체적인 조명 및 시네마틱 스타일"},
        "resolution": {"type": "STRING"},
        "aspectRatio": {"type": "STRING"},
        "angles": {"type": "ARRAY", "items": _ANGLE_SCHEMA},
    },
    "required": ["subject", "style", "resolution", "aspectRatio", "angles"],
}

CATEGORIES_SCHEMA: dict[str, Any] = {
    "type": "ARRAY",
    "items": {"type": "STRING"},
}


PLAN_CONTRACT: OutputContract[StoryboardPlan] = OutputContract(
    name="storyboard_plan",
    schema=PLAN_SCHEMA,
    adapter=TypeAdapter(StoryboardPlan),
)

CATEGORIES_CONTRACT: OutputContract[list[str]] = OutputContract(
    name="narrative_categories",
    schema=CATEGORIES_SCHEMA,
    adapter=TypeAdapter(list[str]),
)
