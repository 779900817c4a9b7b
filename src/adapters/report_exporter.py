"""Exportación de la sesión de storyboard.

Por qué está en adapters:
- Archivos/HTML son detalles de infraestructura (Jinja2).
- El Core solo conoce `StoryboardSession` y sus `SceneShot`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from adapters.json_exporter import export_plan_json
from core.domain.language import Language
from core.services.storyboard_pipeline import StoryboardSession, shot_filename


_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


@dataclass
class ExportResult:
    """Archivos escritos por `export_session`."""

    plan_path: Path
    html_path: Path
    images: list[Path] = field(default_factory=list)


def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
    )


def render_storyboard_html(
    *,
    session: StoryboardSession,
    language: Language = Language.ENGLISH,
    image_names: dict[int, str] | None = None,
) -> str:
    """Renderiza una hoja de contactos HTML (3x3) autocontenida.

    Si `image_names` trae el archivo de una escena se enlaza; si no, la
    imagen se incrusta como data URL.
    """

    image_names = image_names or {}
    scenes = []
    for shot in session.shots:
        src = None
        if shot.image is not None:
            src = image_names.get(shot.index) or shot.image.data_url
        scenes.append(
            {
                "number": shot.index + 1,
                "name": shot.angle.name,
                "prompt": shot.angle.text_for(language),
                "status": shot.status.value,
                "error": shot.error,
                "src": src,
                "model": shot.image.model if shot.image is not None else None,
            }
        )

    template = _get_env().get_template("storyboard.html")
    return template.render(
        plan=session.plan,
        scenes=scenes,
        language=language,
        completed_count=len(session.completed),
        generated_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
    )


def export_session(
    *,
    session: StoryboardSession,
    output_dir: Path,
    language: Language = Language.ENGLISH,
) -> ExportResult:
    """Escribe imágenes completadas, `plan.json` y `storyboard.html`."""

    output_dir.mkdir(parents=True, exist_ok=True)

    images: list[Path] = []
    image_names: dict[int, str] = {}
    for shot in session.completed:
        assert shot.image is not None
        path = output_dir / shot_filename(shot, shot.image.extension)
        path.write_bytes(shot.image.data)
        images.append(path)
        image_names[shot.index] = path.name

    plan_path = export_plan_json(plan=session.plan, output_path=output_dir / "plan.json")

    html_path = output_dir / "storyboard.html"
    html_path.write_text(
        render_storyboard_html(session=session, language=language, image_names=image_names),
        encoding="utf-8",
    )
    return ExportResult(plan_path=plan_path, html_path=html_path, images=images)
