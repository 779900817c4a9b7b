"""Storyboard session orchestration.

This module holds the caller-side policy around the orchestrator: validating
the key once, downgrading pro to standard when the key lacks pro access,
suggesting a category when none was given, and rendering the nine scenes one
at a time. The orchestrator itself stays stateless; all mutable session state
lives in `StoryboardSession`, and UI concerns (printing, progress) are pushed
out through `PipelineHooks`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable

from adapters.storyboard_ai import (
    analyze_image_to_storyboard_plan,
    generate_story_shot,
    suggest_narrative_categories,
    validate_api_key,
)
from core.config import AppSettings, resolve_api_key
from core.domain.models import (
    AppMode,
    ImageOutputConfig,
    ReferenceImage,
    SceneShot,
    ShotStatus,
    StoryboardPlan,
    ValidationResult,
    ZoomDirection,
)
from core.errors import CredentialInvalidError, CredentialMissingError, classify_error
from core.interfaces.generator import GeneratorFactory
from core.logging_config import get_logger

logger = get_logger("storyboard_pipeline")

PRO_DOWNGRADE_WARNING = "Pro model access is not available for this key; switching to Standard."
CATEGORY_SUGGESTION_WARNING = "Could not suggest story categories; planning with a general narrative."

_UNSAFE_FILENAME_RE = re.compile(r"[^a-z0-9\-_]+", re.IGNORECASE)


@dataclass
class StoryboardRequest:
    """Parameters that control one storyboard run."""

    image: ReferenceImage
    mode: AppMode = AppMode.SHORTS
    category: str | None = None
    zoom_direction: ZoomDirection = ZoomDirection.IN
    pro: bool = False
    api_key: str | None = None
    render: bool = True


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers (progress, warnings)."""

    warning: Callable[[str], None] | None = None
    categories: Callable[[list[str]], None] | None = None
    plan_ready: Callable[[StoryboardPlan], None] | None = None
    shot_started: Callable[[SceneShot], None] | None = None
    shot_finished: Callable[[SceneShot], None] | None = None


@dataclass
class StoryboardSession:
    """Mutable state of one storyboard: the plan plus its nine scenes."""

    plan: StoryboardPlan
    reference: ReferenceImage
    shots: list[SceneShot] = field(default_factory=list)

    @classmethod
    def start(cls, plan: StoryboardPlan, reference: ReferenceImage) -> "StoryboardSession":
        shots = [SceneShot(index=i, angle=angle) for i, angle in enumerate(plan.angles)]
        return cls(plan=plan, reference=reference, shots=shots)

    def replace_plan(self, plan: StoryboardPlan) -> None:
        """Swap in a re-authored plan; every scene goes back to pending."""

        self.plan = plan
        self.shots = [SceneShot(index=i, angle=angle) for i, angle in enumerate(plan.angles)]

    @property
    def pending(self) -> list[SceneShot]:
        return [shot for shot in self.shots if shot.status is not ShotStatus.COMPLETED]

    @property
    def completed(self) -> list[SceneShot]:
        return [shot for shot in self.shots if shot.status is ShotStatus.COMPLETED]


@dataclass
class PipelineResult:
    """Output of a pipeline invocation."""

    session: StoryboardSession
    validation: ValidationResult
    pro_used: bool
    categories: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def sanitize_name_for_filename(value: str) -> str:
    """Lower-case slug limited to `[a-z0-9-_]`, at most 40 chars."""

    cleaned = _UNSAFE_FILENAME_RE.sub("_", value.lower()).strip("_")[:40]
    return cleaned or "image"


def shot_filename(shot: SceneShot, extension: str = ".png") -> str:
    return f"storyboard_step_{shot.index + 1:02d}_{sanitize_name_for_filename(shot.angle.name)}{extension}"


def resolve_generation_mode(requested_pro: bool, validation: ValidationResult) -> tuple[bool, str | None]:
    """Pro only when requested AND the key has pro access."""

    if requested_pro and not validation.pro_available:
        return False, PRO_DOWNGRADE_WARNING
    return requested_pro, None


async def ensure_valid_key(
    *,
    settings: AppSettings,
    api_key: str | None = None,
    generator_factory: GeneratorFactory | None = None,
) -> ValidationResult:
    """Validate before spending on generation; raise with a distinct kind otherwise."""

    if not resolve_api_key(api_key, settings):
        raise CredentialMissingError("API_KEY_MISSING")
    validation = await validate_api_key(api_key, settings=settings, generator_factory=generator_factory)
    if not validation.valid:
        raise CredentialInvalidError("API_KEY_INVALID")
    return validation


async def render_shot(
    session: StoryboardSession,
    index: int,
    *,
    settings: AppSettings,
    pro: bool,
    api_key: str | None = None,
    hooks: PipelineHooks | None = None,
    generator_factory: GeneratorFactory | None = None,
) -> SceneShot:
    """Render one scene; failures are recorded on the scene, not raised."""

    hooks = hooks or PipelineHooks()
    shot = session.shots[index]
    shot.status = ShotStatus.GENERATING
    shot.error = None
    shot.error_kind = None
    if hooks.shot_started:
        hooks.shot_started(shot)

    try:
        shot.image = await generate_story_shot(
            shot.angle.prompt,
            session.reference,
            pro,
            ImageOutputConfig.from_plan(session.plan),
            api_key,
            settings=settings,
            generator_factory=generator_factory,
        )
        shot.status = ShotStatus.COMPLETED
    except Exception as exc:
        shot.status = ShotStatus.ERROR
        shot.error_kind = classify_error(exc)
        shot.error = str(exc)
        logger.warning("scene %d (%s) failed: %s", index + 1, shot.angle.name, exc)

    if hooks.shot_finished:
        hooks.shot_finished(shot)
    return shot


async def render_all(
    session: StoryboardSession,
    *,
    settings: AppSettings,
    pro: bool,
    api_key: str | None = None,
    hooks: PipelineHooks | None = None,
    generator_factory: GeneratorFactory | None = None,
) -> list[SceneShot]:
    """Render every non-completed scene, one at a time and in order."""

    rendered: list[SceneShot] = []
    for shot in session.pending:
        rendered.append(
            await render_shot(
                session,
                shot.index,
                settings=settings,
                pro=pro,
                api_key=api_key,
                hooks=hooks,
                generator_factory=generator_factory,
            )
        )
    return rendered


async def build_storyboard(
    *,
    settings: AppSettings,
    request: StoryboardRequest,
    hooks: PipelineHooks | None = None,
    generator_factory: GeneratorFactory | None = None,
) -> PipelineResult:
    hooks = hooks or PipelineHooks()
    warnings: list[str] = []

    validation = await ensure_valid_key(
        settings=settings,
        api_key=request.api_key,
        generator_factory=generator_factory,
    )
    pro, warning = resolve_generation_mode(request.pro, validation)
    if warning:
        warnings.append(warning)
        if hooks.warning:
            hooks.warning(warning)

    categories: list[str] = []
    category = (request.category or "").strip() or None
    if request.mode is AppMode.WHATS_NEXT and category is None:
        try:
            categories = await suggest_narrative_categories(
                request.image,
                request.api_key,
                settings=settings,
                generator_factory=generator_factory,
            )
        except Exception as exc:
            # Planning still runs, on the general-narrative topic.
            logger.warning("category suggestion failed: %s", exc)
            categories = []
            warnings.append(CATEGORY_SUGGESTION_WARNING)
            if hooks.warning:
                hooks.warning(CATEGORY_SUGGESTION_WARNING)
        if categories and hooks.categories:
            hooks.categories(categories)
        category = categories[0] if categories else None

    plan = await analyze_image_to_storyboard_plan(
        request.image,
        request.mode,
        category,
        request.zoom_direction,
        request.api_key,
        settings=settings,
        generator_factory=generator_factory,
    )
    if hooks.plan_ready:
        hooks.plan_ready(plan)

    session = StoryboardSession.start(plan, request.image)
    if request.render:
        await render_all(
            session,
            settings=settings,
            pro=pro,
            api_key=request.api_key,
            hooks=hooks,
            generator_factory=generator_factory,
        )

    return PipelineResult(
        session=session,
        validation=validation,
        pro_used=pro,
        categories=categories,
        warnings=warnings,
    )
