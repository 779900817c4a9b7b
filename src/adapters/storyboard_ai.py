"""Adaptador de IA para storyboards (Gemini via google-genai).

Responsabilidad:
- Validar una credencial contra los tiers de texto (pro -> estándar).
- Sugerir categorías narrativas y redactar/reescribir el plan de 9 escenas
  (una invocación del ejecutor por tiers, con schema de salida estricto).
- Renderizar una escena, con un único paso de degradación pro -> estándar.

Todas las operaciones son funciones puras de (credencial, petición, tiers):
no guardan estado entre llamadas y construyen su propio cliente.
"""

from __future__ import annotations

from typing import Any, NoReturn, Sequence

from adapters.gemini_client import (
    build_contents,
    build_gemini_generator,
    first_inline_image,
    image_config,
    probe_config,
    response_text,
    structured_config,
)
from adapters.prompts import (
    DEFAULT_CATEGORIES,
    CATEGORIES_PROMPT,
    build_edit_instruction,
    build_plan_instruction,
    build_shot_instruction,
)
from core.config import AppSettings, resolve_api_key
from core.domain.contracts import CATEGORIES_CONTRACT, PLAN_CONTRACT, OutputContract
from core.domain.models import (
    AppMode,
    ImageOutputConfig,
    ReferenceImage,
    RenderedShot,
    StoryboardPlan,
    ValidationResult,
    ZoomDirection,
)
from core.errors import (
    CredentialInvalidError,
    CredentialMissingError,
    GenerationEmptyError,
    classify_error,
    is_access_error,
    is_invalid_credential_error,
)
from core.interfaces.generator import ContentGenerator, GeneratorFactory
from core.logging_config import get_logger
from core.services.fallback import generate_with_fallback, with_deadline

logger = get_logger("storyboard_ai")

_PROBE_CONTENTS = "test"


def _open_generator(
    api_key: str | None,
    settings: AppSettings,
    generator_factory: GeneratorFactory | None,
) -> ContentGenerator:
    resolved = resolve_api_key(api_key, settings)
    if not resolved:
        raise CredentialMissingError("API_KEY_MISSING")
    factory = generator_factory or build_gemini_generator
    return factory(resolved)


async def _generate_structured_text(
    generator: ContentGenerator,
    *,
    models: Sequence[str],
    contents: Any,
    contract: OutputContract[Any],
    timeout_seconds: float,
) -> str | None:
    config = structured_config(contract)
    response = await generate_with_fallback(
        models,
        lambda model: generator.generate_content(model=model, contents=contents, config=config),
        timeout_seconds=timeout_seconds,
    )
    return response_text(response)


async def validate_api_key(
    api_key: str | None = None,
    *,
    settings: AppSettings | None = None,
    generator_factory: GeneratorFactory | None = None,
) -> ValidationResult:
    """Comprueba si la credencial sirve, y si además habilita el tier pro.

    Nunca lanza: cualquier fallo se registra y se reporta como inválida.
    """

    settings = settings or AppSettings()
    resolved = resolve_api_key(api_key, settings)
    if not resolved:
        return ValidationResult(valid=False, pro_available=False)

    models = settings.text_models
    try:
        generator = (generator_factory or build_gemini_generator)(resolved)

        async def probe(model: str) -> None:
            await with_deadline(
                generator.generate_content(model=model, contents=_PROBE_CONTENTS, config=probe_config()),
                settings.validation_timeout_seconds,
            )

        try:
            await probe(models[0])
            return ValidationResult(valid=True, pro_available=True)
        except Exception as exc:
            if not is_access_error(exc) or len(models) < 2:
                raise
            logger.info("pro tier %s not available (%s)", models[0], classify_error(exc).value)

        await probe(models[1])
        return ValidationResult(valid=True, pro_available=False)
    except Exception as exc:
        logger.error("API key validation failed: %s", exc)
        return ValidationResult(valid=False, pro_available=False)


async def suggest_narrative_categories(
    image: ReferenceImage,
    api_key: str | None = None,
    *,
    settings: AppSettings | None = None,
    generator_factory: GeneratorFactory | None = None,
) -> list[str]:
    """Cinco categorías de historia sugeridas a partir de la imagen."""

    settings = settings or AppSettings()
    generator = _open_generator(api_key, settings, generator_factory)

    text = await _generate_structured_text(
        generator,
        models=settings.text_models,
        contents=build_contents(instruction=CATEGORIES_PROMPT, image=image),
        contract=CATEGORIES_CONTRACT,
        timeout_seconds=settings.request_timeout_seconds,
    )
    if not text:
        return list(DEFAULT_CATEGORIES)
    return CATEGORIES_CONTRACT.decode(text)


async def analyze_image_to_storyboard_plan(
    image: ReferenceImage,
    mode: AppMode = AppMode.SHORTS,
    category: str | None = None,
    zoom_direction: ZoomDirection = ZoomDirection.IN,
    api_key: str | None = None,
    *,
    settings: AppSettings | None = None,
    generator_factory: GeneratorFactory | None = None,
) -> StoryboardPlan:
    """Analiza la foto y redacta el plan de 9 escenas con identidad bloqueada."""

    settings = settings or AppSettings()
    generator = _open_generator(api_key, settings, generator_factory)

    instruction = build_plan_instruction(mode, category, zoom_direction)
    text = await _generate_structured_text(
        generator,
        models=settings.text_models,
        contents=build_contents(instruction=instruction, image=image),
        contract=PLAN_CONTRACT,
        timeout_seconds=settings.request_timeout_seconds,
    )
    if not text:
        raise GenerationEmptyError("AI 응답 실패: empty plan response")
    return PLAN_CONTRACT.decode(text)


async def update_prompts_with_edits(
    plan: StoryboardPlan,
    mode: AppMode = AppMode.SHORTS,
    api_key: str | None = None,
    *,
    settings: AppSettings | None = None,
    generator_factory: GeneratorFactory | None = None,
) -> StoryboardPlan:
    """Reescribe las 9 escenas tras editar la identidad o el estilo del plan."""

    settings = settings or AppSettings()
    generator = _open_generator(api_key, settings, generator_factory)

    text = await _generate_structured_text(
        generator,
        models=settings.text_models,
        contents=build_contents(instruction=build_edit_instruction(plan, mode)),
        contract=PLAN_CONTRACT,
        timeout_seconds=settings.request_timeout_seconds,
    )
    if not text:
        raise GenerationEmptyError("업데이트 실패: empty plan response")
    return PLAN_CONTRACT.decode(text)


def _raise_render_failure(error: Exception) -> NoReturn:
    if is_invalid_credential_error(error):
        raise CredentialInvalidError("API_KEY_INVALID") from error
    raise error


async def generate_story_shot(
    prompt: str,
    reference: ReferenceImage,
    is_pro: bool = False,
    config: ImageOutputConfig | None = None,
    api_key: str | None = None,
    *,
    settings: AppSettings | None = None,
    generator_factory: GeneratorFactory | None = None,
) -> RenderedShot:
    """Renderiza una escena manteniendo la identidad de la foto de referencia.

    Degradación: si el modelo pro falla por acceso/timeout se reintenta UNA vez
    con el modelo estándar (sin resolución). Sin reintentos adicionales.
    """

    settings = settings or AppSettings()
    generator = _open_generator(api_key, settings, generator_factory)

    output = config or ImageOutputConfig(
        aspect_ratio=settings.default_aspect_ratio,
        resolution=settings.default_resolution,
    )
    if is_pro and not output.resolution:
        output = output.model_copy(update={"resolution": settings.default_resolution})

    contents = build_contents(instruction=build_shot_instruction(prompt), image=reference)
    model = settings.image_pro_model if is_pro else settings.image_standard_model

    try:
        response = await with_deadline(
            generator.generate_content(
                model=model,
                contents=contents,
                config=image_config(output, include_resolution=is_pro),
            ),
            settings.request_timeout_seconds,
        )
    except Exception as exc:
        if not (is_pro and is_access_error(exc)):
            _raise_render_failure(exc)

        model = settings.image_standard_model
        logger.warning(
            "pro image model %s failed (%s); retrying once with %s",
            settings.image_pro_model,
            classify_error(exc).value,
            model,
        )
        try:
            response = await with_deadline(
                generator.generate_content(
                    model=model,
                    contents=contents,
                    config=image_config(output, include_resolution=False),
                ),
                settings.request_timeout_seconds,
            )
        except Exception as fallback_exc:
            _raise_render_failure(fallback_exc)

    shot = first_inline_image(response, model=model)
    if shot is None:
        raise GenerationEmptyError("이미지 생성 실패: no inline image in response")
    return shot
