"""
Tests for the Gemini storyboard adapter (adapters/storyboard_ai.py)

Every test drives the adapter through `StubGenerator`, so the tier ladder,
deadlines and fallback decisions are observed through the recorded calls.
"""

import json

import pytest

from adapters.prompts import DEFAULT_CATEGORIES
from adapters.storyboard_ai import (
    analyze_image_to_storyboard_plan,
    generate_story_shot,
    suggest_narrative_categories,
    update_prompts_with_edits,
    validate_api_key,
)
from core.domain.models import AppMode, ImageOutputConfig, StoryboardPlan, ZoomDirection
from core.errors import (
    CredentialInvalidError,
    CredentialMissingError,
    ErrorKind,
    GenerationEmptyError,
    MalformedResponseError,
    RequestTimeoutError,
    classify_error,
)

PRO_TEXT = "gemini-2.5-pro"
FLASH_TEXT = "gemini-2.5-flash"
PRO_IMAGE = "gemini-3-pro-image-preview"
STANDARD_IMAGE = "gemini-2.5-flash-image"


# =============================================================================
# KEY VALIDATION
# =============================================================================

class TestValidateApiKey:
    """Tests for validate_api_key."""

    @pytest.mark.asyncio
    async def test_no_key_makes_no_calls(self, keyless_settings, stub_factory):
        stub, factory = stub_factory({})

        result = await validate_api_key(settings=keyless_settings, generator_factory=factory)

        assert result.valid is False
        assert result.pro_available is False
        assert stub.keys == []
        assert stub.calls == []

    @pytest.mark.asyncio
    async def test_pro_access(self, settings, stub_factory, responses):
        stub, factory = stub_factory({PRO_TEXT: responses.text("ok")})

        result = await validate_api_key(settings=settings, generator_factory=factory)

        assert (result.valid, result.pro_available) == (True, True)
        assert stub.models == [PRO_TEXT]
        assert stub.keys == ["test-key"]

    @pytest.mark.asyncio
    async def test_explicit_key_wins_over_configured(self, settings, stub_factory, responses):
        stub, factory = stub_factory({PRO_TEXT: responses.text("ok")})

        await validate_api_key("  other-key  ", settings=settings, generator_factory=factory)

        assert stub.keys == ["other-key"]

    @pytest.mark.asyncio
    async def test_pro_denied_standard_ok(self, settings, stub_factory, responses):
        stub, factory = stub_factory(
            {
                PRO_TEXT: RuntimeError("403 PERMISSION_DENIED"),
                FLASH_TEXT: responses.text("ok"),
            }
        )

        result = await validate_api_key(settings=settings, generator_factory=factory)

        assert (result.valid, result.pro_available) == (True, False)
        assert stub.models == [PRO_TEXT, FLASH_TEXT]

    @pytest.mark.asyncio
    async def test_pro_timeout_standard_ok(self, settings, stub_factory, responses):
        stub, factory = stub_factory(
            {
                PRO_TEXT: responses.Slow(1.0),
                FLASH_TEXT: responses.text("ok"),
            }
        )

        result = await validate_api_key(settings=settings, generator_factory=factory)

        assert (result.valid, result.pro_available) == (True, False)

    @pytest.mark.asyncio
    async def test_both_tiers_denied(self, settings, stub_factory):
        stub, factory = stub_factory(
            {
                PRO_TEXT: RuntimeError("permission denied"),
                FLASH_TEXT: RuntimeError("Requested entity was not found."),
            }
        )

        result = await validate_api_key(settings=settings, generator_factory=factory)

        assert (result.valid, result.pro_available) == (False, False)

    @pytest.mark.asyncio
    async def test_hard_error_on_pro_does_not_probe_standard(self, settings, stub_factory, responses):
        stub, factory = stub_factory(
            {
                PRO_TEXT: RuntimeError("500 INTERNAL"),
                FLASH_TEXT: responses.text("ok"),
            }
        )

        result = await validate_api_key(settings=settings, generator_factory=factory)

        assert result.valid is False
        assert stub.models == [PRO_TEXT]

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, settings, stub_factory, caplog):
        stub, factory = stub_factory({PRO_TEXT: RuntimeError("500 INTERNAL")})

        with caplog.at_level("ERROR", logger="ninecut"):
            await validate_api_key(settings=settings, generator_factory=factory)

        assert "API key validation failed" in caplog.text


# =============================================================================
# TEXT GENERATION (categories / plan / edits)
# =============================================================================

class TestSuggestNarrativeCategories:
    """Tests for suggest_narrative_categories."""

    @pytest.mark.asyncio
    async def test_returns_model_categories(self, settings, stub_factory, responses, reference):
        values = ["로맨스", "스릴러", "코미디", "SF", "드라마"]
        stub, factory = stub_factory({PRO_TEXT: responses.text(json.dumps(values, ensure_ascii=False))})

        result = await suggest_narrative_categories(reference, settings=settings, generator_factory=factory)

        assert result == values

    @pytest.mark.asyncio
    async def test_empty_text_falls_back_to_defaults(self, settings, stub_factory, responses, reference):
        stub, factory = stub_factory({PRO_TEXT: responses.text("")})

        result = await suggest_narrative_categories(reference, settings=settings, generator_factory=factory)

        assert result == list(DEFAULT_CATEGORIES)
        assert len(result) == 5

    @pytest.mark.asyncio
    async def test_missing_key_raises(self, keyless_settings, stub_factory, reference):
        stub, factory = stub_factory({})

        with pytest.raises(CredentialMissingError):
            await suggest_narrative_categories(reference, settings=keyless_settings, generator_factory=factory)
        assert stub.calls == []


class TestAnalyzeImageToStoryboardPlan:
    """Tests for analyze_image_to_storyboard_plan."""

    @pytest.mark.asyncio
    async def test_pro_tier_plan(self, settings, stub_factory, responses, reference, plan_json):
        stub, factory = stub_factory({PRO_TEXT: responses.text(plan_json)})

        plan = await analyze_image_to_storyboard_plan(reference, settings=settings, generator_factory=factory)

        assert isinstance(plan, StoryboardPlan)
        assert len(plan.angles) == 9
        assert plan.aspect_ratio == "16:9"
        assert stub.models == [PRO_TEXT]

    @pytest.mark.asyncio
    async def test_permission_denied_on_pro_falls_back_to_flash(
        self, settings, stub_factory, responses, reference, plan_json
    ):
        stub, factory = stub_factory(
            {
                PRO_TEXT: RuntimeError("403 permission denied"),
                FLASH_TEXT: responses.text(plan_json),
            }
        )

        plan = await analyze_image_to_storyboard_plan(
            reference, AppMode.ZOOMS, None, ZoomDirection.OUT, settings=settings, generator_factory=factory
        )

        assert len(plan.angles) == 9
        assert stub.models == [PRO_TEXT, FLASH_TEXT]

    @pytest.mark.asyncio
    async def test_request_carries_schema_and_reference_first(
        self, settings, stub_factory, responses, reference, plan_json
    ):
        stub, factory = stub_factory({PRO_TEXT: responses.text(plan_json)})

        await analyze_image_to_storyboard_plan(
            reference, AppMode.WHATS_NEXT, "판타지", settings=settings, generator_factory=factory
        )

        call = stub.calls[0]
        assert call["config"].response_mime_type == "application/json"
        assert call["config"].response_schema is not None
        parts = call["contents"].parts
        assert parts[0].inline_data.mime_type == "image/jpeg"
        assert "판타지" in parts[1].text

    @pytest.mark.asyncio
    async def test_empty_text_is_generation_empty(self, settings, stub_factory, responses, reference):
        stub, factory = stub_factory({PRO_TEXT: responses.text("   ")})

        with pytest.raises(GenerationEmptyError):
            await analyze_image_to_storyboard_plan(reference, settings=settings, generator_factory=factory)

    @pytest.mark.asyncio
    async def test_wrong_scene_count_is_malformed(self, settings, stub_factory, responses, reference):
        payload = json.dumps(responses.plan_payload(scenes=8))
        stub, factory = stub_factory({PRO_TEXT: responses.text(payload)})

        with pytest.raises(MalformedResponseError) as exc_info:
            await analyze_image_to_storyboard_plan(reference, settings=settings, generator_factory=factory)
        assert classify_error(exc_info.value) is ErrorKind.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_quota_error_surfaces_without_fallback(self, settings, stub_factory, responses, reference, plan_json):
        stub, factory = stub_factory(
            {
                PRO_TEXT: RuntimeError("429 RESOURCE_EXHAUSTED"),
                FLASH_TEXT: responses.text(plan_json),
            }
        )

        with pytest.raises(RuntimeError, match="RESOURCE_EXHAUSTED"):
            await analyze_image_to_storyboard_plan(reference, settings=settings, generator_factory=factory)
        assert stub.models == [PRO_TEXT]


class TestUpdatePromptsWithEdits:
    """Tests for update_prompts_with_edits."""

    @pytest.mark.asyncio
    async def test_rewrites_plan_without_image(self, settings, stub_factory, responses, plan_payload, plan_json):
        plan = StoryboardPlan.model_validate(plan_payload).with_edits(subject="Man in a grey suit")
        stub, factory = stub_factory({PRO_TEXT: responses.text(plan_json)})

        result = await update_prompts_with_edits(plan, AppMode.SHORTS, settings=settings, generator_factory=factory)

        assert len(result.angles) == 9
        parts = stub.calls[0]["contents"].parts
        assert len(parts) == 1
        assert "Man in a grey suit" in parts[0].text

    @pytest.mark.asyncio
    async def test_empty_text_is_generation_empty(self, settings, stub_factory, responses, plan_payload):
        plan = StoryboardPlan.model_validate(plan_payload)
        stub, factory = stub_factory({PRO_TEXT: responses.text(None)})

        with pytest.raises(GenerationEmptyError):
            await update_prompts_with_edits(plan, settings=settings, generator_factory=factory)


# =============================================================================
# IMAGE RENDER
# =============================================================================

class TestGenerateStoryShot:
    """Tests for generate_story_shot."""

    @pytest.mark.asyncio
    async def test_standard_render(self, settings, stub_factory, responses, reference):
        stub, factory = stub_factory({STANDARD_IMAGE: responses.image(b"png-bytes")})

        shot = await generate_story_shot(
            "a walk on the beach",
            reference,
            False,
            ImageOutputConfig(aspect_ratio="9:16", resolution="2K"),
            settings=settings,
            generator_factory=factory,
        )

        assert shot.data == b"png-bytes"
        assert shot.model == STANDARD_IMAGE
        config = stub.calls[0]["config"]
        assert config.image_config.aspect_ratio == "9:16"
        assert config.image_config.image_size is None

    @pytest.mark.asyncio
    async def test_pro_render_sends_resolution(self, settings, stub_factory, responses, reference):
        stub, factory = stub_factory({PRO_IMAGE: responses.image()})

        shot = await generate_story_shot(
            "close-up",
            reference,
            True,
            ImageOutputConfig(aspect_ratio="16:9", resolution="2K"),
            settings=settings,
            generator_factory=factory,
        )

        assert shot.model == PRO_IMAGE
        assert stub.calls[0]["config"].image_config.image_size == "2K"

    @pytest.mark.asyncio
    async def test_prompt_carries_identity_prefix(self, settings, stub_factory, responses, reference):
        stub, factory = stub_factory({STANDARD_IMAGE: responses.image()})

        await generate_story_shot("looking at the sea", reference, settings=settings, generator_factory=factory)

        parts = stub.calls[0]["contents"].parts
        assert parts[0].inline_data is not None
        assert "STRICT IDENTITY MATCH REQUIRED" in parts[1].text
        assert "looking at the sea" in parts[1].text

    @pytest.mark.asyncio
    async def test_pro_timeout_retries_once_on_standard(self, settings, stub_factory, responses, reference):
        stub, factory = stub_factory(
            {
                PRO_IMAGE: responses.Slow(1.0),
                STANDARD_IMAGE: responses.image(b"fallback"),
            }
        )

        shot = await generate_story_shot(
            "wide shot",
            reference,
            True,
            ImageOutputConfig(aspect_ratio="16:9", resolution="2K"),
            settings=settings,
            generator_factory=factory,
        )

        assert shot.data == b"fallback"
        assert shot.model == STANDARD_IMAGE
        assert stub.models == [PRO_IMAGE, STANDARD_IMAGE]
        assert stub.calls[1]["config"].image_config.image_size is None

    @pytest.mark.asyncio
    async def test_fallback_failure_surfaces_its_own_classification(self, settings, stub_factory, reference):
        stub, factory = stub_factory(
            {
                PRO_IMAGE: RuntimeError("403 PERMISSION_DENIED"),
                STANDARD_IMAGE: RuntimeError("500 INTERNAL"),
            }
        )

        with pytest.raises(RuntimeError, match="500 INTERNAL") as exc_info:
            await generate_story_shot("wide shot", reference, True, settings=settings, generator_factory=factory)

        assert classify_error(exc_info.value) is ErrorKind.UNCLASSIFIED
        assert stub.models == [PRO_IMAGE, STANDARD_IMAGE]

    @pytest.mark.asyncio
    async def test_no_retry_beyond_one_fallback(self, settings, stub_factory, responses, reference):
        stub, factory = stub_factory(
            {
                PRO_IMAGE: responses.Slow(1.0),
                STANDARD_IMAGE: responses.Slow(1.0),
            }
        )

        with pytest.raises(RequestTimeoutError):
            await generate_story_shot("wide shot", reference, True, settings=settings, generator_factory=factory)
        assert stub.models == [PRO_IMAGE, STANDARD_IMAGE]

    @pytest.mark.asyncio
    async def test_standard_denial_is_not_retried(self, settings, stub_factory, reference):
        stub, factory = stub_factory({STANDARD_IMAGE: RuntimeError("403 PERMISSION_DENIED")})

        with pytest.raises(RuntimeError, match="PERMISSION_DENIED"):
            await generate_story_shot("wide shot", reference, False, settings=settings, generator_factory=factory)
        assert stub.models == [STANDARD_IMAGE]

    @pytest.mark.asyncio
    async def test_entity_not_found_means_invalid_key(self, settings, stub_factory, reference):
        cause = RuntimeError("404 Requested entity was not found.")
        stub, factory = stub_factory({STANDARD_IMAGE: cause})

        with pytest.raises(CredentialInvalidError) as exc_info:
            await generate_story_shot("wide shot", reference, settings=settings, generator_factory=factory)

        assert exc_info.value.__cause__ is cause
        assert classify_error(exc_info.value) is ErrorKind.CREDENTIAL_INVALID

    @pytest.mark.asyncio
    async def test_no_image_part_is_generation_empty(self, settings, stub_factory, responses, reference):
        stub, factory = stub_factory({STANDARD_IMAGE: responses.empty_image()})

        with pytest.raises(GenerationEmptyError):
            await generate_story_shot("wide shot", reference, settings=settings, generator_factory=factory)

    @pytest.mark.asyncio
    async def test_pro_hard_error_is_not_demoted(self, settings, stub_factory, responses, reference):
        boom = RuntimeError("500 INTERNAL")
        stub, factory = stub_factory({PRO_IMAGE: boom, STANDARD_IMAGE: responses.image()})

        with pytest.raises(RuntimeError) as exc_info:
            await generate_story_shot("wide shot", reference, True, settings=settings, generator_factory=factory)

        assert exc_info.value is boom
        assert stub.models == [PRO_IMAGE]

    @pytest.mark.asyncio
    async def test_entity_not_found_on_fallback_means_invalid_key(self, settings, stub_factory, reference):
        cause = RuntimeError("Requested entity was not found.")
        stub, factory = stub_factory(
            {
                PRO_IMAGE: RuntimeError("403 PERMISSION_DENIED"),
                STANDARD_IMAGE: cause,
            }
        )

        with pytest.raises(CredentialInvalidError) as exc_info:
            await generate_story_shot("wide shot", reference, True, settings=settings, generator_factory=factory)

        assert exc_info.value.__cause__ is cause
        assert stub.models == [PRO_IMAGE, STANDARD_IMAGE]
