"""Wrapper del SDK google-genai.

Por qué un wrapper:
- Un único sitio construye el cliente a partir de la credencial (uno por
  llamada, sin estado compartido).
- Traduce nuestros modelos de dominio a `types.*` del SDK y de vuelta.
- Facilita testeo: el orquestador solo ve un `ContentGenerator`.
"""

from __future__ import annotations

from typing import Any

from google import genai
from google.genai import types

from core.domain.contracts import OutputContract
from core.domain.models import ImageOutputConfig, ReferenceImage, RenderedShot
from core.interfaces.generator import ContentGenerator


def build_gemini_generator(api_key: str) -> ContentGenerator:
    """Crea un cliente Gemini y devuelve su superficie asíncrona (`aio.models`)."""

    client = genai.Client(api_key=api_key)
    return client.aio.models


def build_contents(*, instruction: str, image: ReferenceImage | None = None) -> types.Content:
    """Imagen de referencia SIEMPRE como primera parte, luego la instrucción."""

    parts: list[types.Part] = []
    if image is not None:
        parts.append(types.Part.from_bytes(data=image.to_bytes(), mime_type=image.mime_type))
    parts.append(types.Part.from_text(text=instruction))
    return types.Content(role="user", parts=parts)


def structured_config(contract: OutputContract[Any]) -> types.GenerateContentConfig:
    return types.GenerateContentConfig(
        response_mime_type=contract.mime_type,
        response_schema=contract.schema,
    )


def probe_config() -> types.GenerateContentConfig:
    return types.GenerateContentConfig(max_output_tokens=1)


def image_config(output: ImageOutputConfig, *, include_resolution: bool) -> types.GenerateContentConfig:
    """`image_size` solo se envía al tier premium."""

    kwargs: dict[str, Any] = {"aspect_ratio": output.aspect_ratio}
    if include_resolution and output.resolution:
        kwargs["image_size"] = output.resolution
    return types.GenerateContentConfig(image_config=types.ImageConfig(**kwargs))


def response_text(response: Any) -> str | None:
    text = getattr(response, "text", None)
    if isinstance(text, str) and text.strip():
        return text
    return None


def first_inline_image(response: Any, *, model: str) -> RenderedShot | None:
    """Primer `inline_data` del primer candidato (o `None`)."""

    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        if inline is not None and getattr(inline, "data", None):
            return RenderedShot(
                data=inline.data,
                mime_type=getattr(inline, "mime_type", None) or "image/png",
                model=model,
            )
    return None
