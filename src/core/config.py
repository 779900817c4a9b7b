"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (Gemini/exportadores) lean config de forma consistente.
- Resuelve la credencial por defecto del proceso (la única que se persiste).
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.language import Language


# Variables heredadas (SDK de Gemini / apps previas) aceptadas como fallback.
_FALLBACK_KEY_ENV_VARS = ("GEMINI_API_KEY", "API_KEY")


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "ninecut"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "ninecut"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "ninecut"
    return Path.home() / ".config" / "ninecut"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario.

    Un valor `None` elimina la variable (p.ej. desconectar la API key).
    """

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    for key, value in values.items():
        if value is None:
            existing.pop(key, None)
        else:
            existing[key] = value

    lines = ["# NineCut user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="NINECUT_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    api_key: str | None = Field(
        default=None,
        description="API key de Gemini. Si falta se usan GEMINI_API_KEY / API_KEY.",
    )

    request_timeout_seconds: float = Field(
        default=45.0,
        gt=0,
        description="Deadline para generación de plan/imagen (segundos).",
    )
    validation_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Deadline para las sondas de validación de la key (segundos).",
    )

    text_models: tuple[str, ...] = Field(
        default=("gemini-2.5-pro", "gemini-2.5-flash"),
        description="Tiers de texto en orden de preferencia (pro primero).",
    )
    image_pro_model: str = Field(
        default="gemini-3-pro-image-preview",
        min_length=1,
        description="Modelo de imagen premium (acepta resolución).",
    )
    image_standard_model: str = Field(
        default="gemini-2.5-flash-image",
        min_length=1,
        description="Modelo de imagen estándar (sin parámetro de resolución).",
    )

    default_aspect_ratio: str = Field(
        default="16:9",
        min_length=3,
        description="Aspect ratio usado cuando el plan no trae uno.",
    )
    default_resolution: str = Field(
        default="1K",
        min_length=1,
        description="Resolución usada por el tier premium cuando el plan no trae una.",
    )

    output_dir: Path = Field(
        default=Path("storyboards"),
        description="Directorio base para imágenes y exportaciones.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Nivel de logging para la CLI (DEBUG/INFO/WARNING/ERROR).",
    )
    default_language: Language = Field(
        default=Language.ENGLISH,
        description="Variante de prompt mostrada por defecto (en/ko).",
    )

    # Desde env se espera JSON: NINECUT_TEXT_MODELS='["gemini-2.5-pro","gemini-2.5-flash"]'
    @field_validator("text_models")
    @classmethod
    def _require_models(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("text_models must contain at least one model")
        return value


def resolve_api_key(api_key: str | None = None, settings: AppSettings | None = None) -> str | None:
    """Devuelve la credencial explícita o la del proceso (o `None`).

    Orden: argumento explícito -> NINECUT_API_KEY (.env incluido) ->
    GEMINI_API_KEY -> API_KEY.
    """

    candidate = (api_key or "").strip()
    if candidate:
        return candidate

    settings = settings or AppSettings()
    configured = (settings.api_key or "").strip()
    if configured:
        return configured

    for name in _FALLBACK_KEY_ENV_VARS:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None
