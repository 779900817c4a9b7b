"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core al SDK de Gemini.
- El plan que devuelve la IA se valida contra estos modelos: si no encaja, es
  una respuesta malformada y no un "cast" implícito.

Nota:
- Estos modelos describen *qué* es un storyboard, no *cómo* se genera.
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from core.domain.language import Language
from core.errors import ErrorKind


SCENE_COUNT = 9


class AppMode(str, Enum):
    """Modos narrativos soportados por el autor del plan."""

    SHORTS = "shorts"
    WHATS_NEXT = "whatsNext"
    ZOOMS = "zooms"


class ZoomDirection(str, Enum):
    """Dirección de la secuencia (solo aplica al modo `zooms`)."""

    IN = "in"
    OUT = "out"


class ShotStatus(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    ERROR = "error"


class ReferenceImage(BaseModel):
    """Foto de referencia lista para enviarse inline (base64).

    Por qué existe:
    - El servicio recibe la imagen como `inline_data` (mime + bytes); este
      modelo normaliza las tres formas de entrada (archivo, bytes, data URL).
    """

    model_config = ConfigDict(frozen=True)

    mime_type: str = Field(
        default="image/jpeg",
        min_length=1,
        description="Mime type declarado al servicio.",
    )
    data: str = Field(
        ...,
        min_length=1,
        description="Payload base64 (sin prefijo `data:`).",
    )

    @classmethod
    def from_bytes(cls, raw: bytes, *, mime_type: str = "image/jpeg") -> "ReferenceImage":
        return cls(mime_type=mime_type, data=base64.b64encode(raw).decode("ascii"))

    @classmethod
    def from_path(cls, path: Path) -> "ReferenceImage":
        """Lee un archivo local e infiere el mime por extensión (default jpeg)."""

        guessed, _ = mimetypes.guess_type(str(path))
        mime_type = guessed if guessed and guessed.startswith("image/") else "image/jpeg"
        return cls.from_bytes(Path(path).read_bytes(), mime_type=mime_type)

    @classmethod
    def from_data_url(cls, value: str) -> "ReferenceImage":
        """Acepta `data:image/png;base64,...` (lo que produce un FileReader)."""

        header, sep, payload = value.partition(",")
        if not sep or not header.startswith("data:"):
            raise ValueError("Expected a data URL like 'data:image/jpeg;base64,...'")
        mime_type = header[len("data:") :].split(";", 1)[0] or "image/jpeg"
        return cls(mime_type=mime_type, data=payload.strip())

    def to_bytes(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except binascii.Error as exc:
            raise ValueError("Reference image payload is not valid base64") from exc


class StoryboardAngle(BaseModel):
    """Una escena del plan: nombre + prompt en dos variantes."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=1, description="Nombre corto de la escena/ángulo.")
    prompt: str = Field(..., min_length=1, description="Prompt en inglés (se envía al modelo).")
    prompt_ko: str = Field(
        ...,
        min_length=1,
        alias="promptKo",
        description="Prompt en coreano (solo lectura humana).",
    )

    def text_for(self, language: Language) -> str:
        return self.prompt_ko if language is Language.KOREAN else self.prompt


class StoryboardPlan(BaseModel):
    """Plan completo producido por la capa de IA.

    Invariantes:
    - `subject` fija la identidad (Identity Lock) y nunca está vacío.
    - Exactamente `SCENE_COUNT` ángulos, en orden.
    """

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    subject: str = Field(..., min_length=1, description="Descripción física que bloquea la identidad.")
    style: str = Field(..., min_length=1, description="Iluminación y estilo cinematográfico global.")
    resolution: str = Field(..., min_length=1, description="Tag de resolución (p.ej. '1K', '2K').")
    aspect_ratio: str = Field(
        ...,
        min_length=1,
        alias="aspectRatio",
        description="Tag de aspect ratio (p.ej. '16:9').",
    )
    angles: list[StoryboardAngle] = Field(
        ...,
        min_length=SCENE_COUNT,
        max_length=SCENE_COUNT,
        description="Escenas ordenadas.",
    )

    def with_edits(self, *, subject: str | None = None, style: str | None = None) -> "StoryboardPlan":
        """Copia del plan con identidad/estilo editados (los ángulos no cambian)."""

        update: dict[str, str] = {}
        if subject is not None and subject.strip():
            update["subject"] = subject.strip()
        if style is not None and style.strip():
            update["style"] = style.strip()
        return self.model_copy(update=update)


class ImageOutputConfig(BaseModel):
    """Configuración de salida para un render."""

    model_config = ConfigDict(frozen=True)

    aspect_ratio: str = Field(default="16:9", min_length=1)
    resolution: str | None = Field(
        default=None,
        description="Solo el tier premium acepta resolución; el estándar la ignora.",
    )

    @classmethod
    def from_plan(cls, plan: StoryboardPlan) -> "ImageOutputConfig":
        return cls(aspect_ratio=plan.aspect_ratio, resolution=plan.resolution)


class RenderedShot(BaseModel):
    """Imagen devuelta por el modelo (bytes inline)."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., description="Bytes de la imagen.")
    mime_type: str = Field(default="image/png")
    model: str = Field(..., description="Modelo que produjo la imagen.")

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    @property
    def extension(self) -> str:
        return mimetypes.guess_extension(self.mime_type) or ".png"


class ValidationResult(BaseModel):
    """Resultado de validar una credencial contra los tiers de texto."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    valid: bool = False
    pro_available: bool = Field(default=False, alias="proAvailable")


class SceneShot(BaseModel):
    """Estado (lado llamador) de una escena dentro de una sesión de storyboard."""

    index: int = Field(..., ge=0, lt=SCENE_COUNT)
    angle: StoryboardAngle
    status: ShotStatus = ShotStatus.PENDING
    image: RenderedShot | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
