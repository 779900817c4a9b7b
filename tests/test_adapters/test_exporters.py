"""
Tests for plan JSON export and the session exporter.
"""

import json

import pytest

from adapters.json_exporter import export_plan_json, load_plan_json
from adapters.report_exporter import export_session, render_storyboard_html
from core.domain.language import Language
from core.domain.models import RenderedShot, ShotStatus, StoryboardPlan
from core.errors import MalformedResponseError
from core.services.storyboard_pipeline import StoryboardSession


@pytest.fixture
def session(plan_payload, reference):
    session = StoryboardSession.start(StoryboardPlan.model_validate(plan_payload), reference)
    for shot in session.shots[:2]:
        shot.status = ShotStatus.COMPLETED
        shot.image = RenderedShot(data=b"img", mime_type="image/png", model="gemini-2.5-flash-image")
    return session


class TestPlanJson:
    def test_export_and_load(self, tmp_path, plan_payload):
        plan = StoryboardPlan.model_validate(plan_payload)

        path = export_plan_json(plan=plan, output_path=tmp_path / "nested" / "plan.json")

        raw = json.loads(path.read_text(encoding="utf-8"))
        assert raw["aspectRatio"] == "16:9"
        assert raw["angles"][0]["promptKo"] == "장면 1"
        assert load_plan_json(path) == plan

    def test_load_rejects_malformed(self, tmp_path):
        path = tmp_path / "plan.json"
        path.write_text('{"subject": "only"}', encoding="utf-8")

        with pytest.raises(MalformedResponseError):
            load_plan_json(path)


class TestExportSession:
    def test_writes_completed_images_plan_and_sheet(self, tmp_path, session):
        result = export_session(session=session, output_dir=tmp_path)

        assert [path.name for path in result.images] == [
            "storyboard_step_01_angle_1.png",
            "storyboard_step_02_angle_2.png",
        ]
        assert result.images[0].read_bytes() == b"img"
        assert result.plan_path.exists()
        html = result.html_path.read_text(encoding="utf-8")
        assert "storyboard_step_01_angle_1.png" in html

    def test_html_language_variant(self, session):
        html = render_storyboard_html(session=session, language=Language.KOREAN)

        assert "장면 1" in html
        assert "data:image/png;base64," in html
