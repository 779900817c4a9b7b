"""Exportación JSON del plan.

Por qué JSON:
- Mismo formato que devuelve la IA (alias camelCase: `aspectRatio`, `promptKo`),
  así un plan exportado se puede editar a mano y volver a renderizar.
"""

from __future__ import annotations

import json
from pathlib import Path

from core.domain.contracts import PLAN_CONTRACT
from core.domain.models import StoryboardPlan


def export_plan_json(*, plan: StoryboardPlan, output_path: Path) -> Path:
    """Exporta `StoryboardPlan` a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = plan.model_dump(mode="json", by_alias=True)
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )
    return output_path


def load_plan_json(path: Path) -> StoryboardPlan:
    """Carga un plan exportado; si no encaja, `MalformedResponseError`."""

    return PLAN_CONTRACT.decode(Path(path).read_text(encoding="utf-8"))
