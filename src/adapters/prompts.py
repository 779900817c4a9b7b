"""Instrucciones enviadas al servicio.

La consistencia del personaje (Identity Lock) es una convención textual: se
impone aquí, al construir la instrucción. El sistema no puede verificar que el
modelo la cumpla.
"""

from __future__ import annotations

from core.domain.models import AppMode, StoryboardPlan, ZoomDirection


SHOT_PREFIX = (
    "High-quality realistic photo of the EXACT same person from the reference image, "
    "maintaining their identical face, hair, and outfit: "
)

EDIT_PREFIX = "Based on the reference photo, maintaining the exact same identity, face, and attire: "

DEFAULT_CATEGORIES: tuple[str, ...] = ("액션", "드라마", "SF", "판타지", "일상")

CATEGORIES_PROMPT = """
이미지를 보고 이후에 이어질 수 있는 스토리 카테고리를 5개 추천해주세요.
JSON 배열 형태 ["카테고리1", ...] 로만 응답하세요.
"""

_COMMON_INSTRUCTION = f"""
**CRITICAL CHARACTER CONSISTENCY RULE:**
1. Analyze the person in the source image with extreme precision:
   - Ethnicity: (e.g., East Asian, Caucasian, etc.)
   - Facial Features: (e.g., eye shape, nose, smile, facial structure)
   - Hairstyle: (e.g., long black hair with bangs, bob, etc.)
   - Clothing: (e.g., white linen shirt, specific patterns)
2. In the 'subject' field, write a definitive physical description that locks this identity.
3. Every shot prompt must start with: "{SHOT_PREFIX}"
4. Return exactly 9 angles, in order.
"""


def build_plan_instruction(
    mode: AppMode,
    category: str | None = None,
    zoom_direction: ZoomDirection = ZoomDirection.IN,
) -> str:
    if mode is AppMode.WHATS_NEXT:
        topic = (category or "").strip() or "일반적인 서사"
        return f"""
{_COMMON_INSTRUCTION}
당신은 전문적인 '비주얼 스토리텔러'입니다.
주제: [{topic}]
9가지 연속된 스토리 장면을 구상하세요.
인물의 일관성이 절대적으로 유지되어야 합니다. 외국인이나 다른 인물로 바뀌지 않도록 주의하세요.
모든 prompt는 상세한 영어로 작성하고, promptKo는 한국어로 작성하세요.
"""

    if mode is AppMode.ZOOMS:
        label = "확대(Zoom-in)" if zoom_direction is ZoomDirection.IN else "축소(Zoom-out)"
        return f"""
{_COMMON_INSTRUCTION}
당신은 전문적인 '시네마틱 비주얼 이펙트(VFX) 감독'입니다.
줌 모드: [{label}]
9단계 줌 시퀀스를 설계하세요. 모든 단계에서 인물의 특징이 완벽히 유지되어야 합니다.
모든 prompt는 영어로, promptKo는 한국어로 작성하세요.
"""

    return f"""
{_COMMON_INSTRUCTION}
당신은 전문적인 '시네마틱 스토리보드 아티스트'입니다.
이미지를 분석하여 9가지 시네마틱 앵글을 설계하세요.
모든 prompt는 영어로, promptKo는 한국어로 작성하세요.
"""


def build_edit_instruction(plan: StoryboardPlan, mode: AppMode) -> str:
    scenes = "\n".join(f"{i + 1}. {angle.name}: {angle.prompt}" for i, angle in enumerate(plan.angles))
    return f"""
다음 수정 사항을 바탕으로 9개의 장면 프롬프트를 다시 작성하세요.
인물의 일관성이 최우선입니다.
[Mode] {mode.value}
[Identity Lock] {plan.subject}
[Visual Style] {plan.style}
[Resolution] {plan.resolution}
[Aspect Ratio] {plan.aspect_ratio}

[Current scenes]
{scenes}

규칙: 모든 프롬프트는 "{EDIT_PREFIX}"로 시작해야 합니다.
"""


def build_shot_instruction(prompt: str) -> str:
    return f"""
STRICT IDENTITY MATCH REQUIRED:
Look at the person in the provided image. Replicate their EXACT facial features, hair, and clothing in a new scene.

SCENE DESCRIPTION: {prompt}

STYLE: Cinematic, professional photography, high-end resolution, masterwork quality.
No variations in the person's identity allowed.
"""
