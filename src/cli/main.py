"""CLI entrypoint (Typer).

Commands map one-to-one onto orchestrator operations; everything stateful
(the session, the files written) stays here and in the storyboard pipeline.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Awaitable, TypeVar

import typer
from rich.console import Console

from adapters.json_exporter import export_plan_json, load_plan_json
from adapters.report_exporter import export_session
from adapters.storyboard_ai import (
    analyze_image_to_storyboard_plan,
    suggest_narrative_categories,
    update_prompts_with_edits,
    validate_api_key,
)
from cli import doctor
from cli.ui_components import (
    build_identity_panel,
    build_plan_table,
    build_shots_table,
    build_validation_panel,
    describe_error,
    print_banner,
)
from core.config import AppSettings
from core.domain.language import Language
from core.domain.models import SCENE_COUNT, AppMode, ReferenceImage, SceneShot, StoryboardPlan, ZoomDirection
from core.errors import NineCutError, classify_error
from core.logging_config import setup_logging
from core.services.storyboard_pipeline import (
    PipelineHooks,
    StoryboardRequest,
    StoryboardSession,
    build_storyboard,
    ensure_valid_key,
    render_all,
    render_shot,
    resolve_generation_mode,
)

T = TypeVar("T")

app = typer.Typer(
    no_args_is_help=True,
    help="Turn one reference photo into a nine-scene storyboard with a locked subject identity.",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()

_API_KEY_OPTION = typer.Option(None, "--api-key", help="Gemini API key (defaults to the configured key).")


def _settings() -> AppSettings:
    settings = AppSettings()
    setup_logging(settings.log_level)
    return settings


def _run(coro: Awaitable[T]) -> T:
    """Run a coroutine and turn orchestrator failures into a clean exit."""

    try:
        return asyncio.run(coro)  # type: ignore[arg-type]
    except NineCutError as exc:
        _console.print(f"[red]{exc.kind.value}:[/red] {describe_error(exc.kind)} [dim]({exc})[/dim]")
        raise typer.Exit(code=1) from exc
    except Exception as exc:
        kind = classify_error(exc)
        _console.print(f"[red]{kind.value}:[/red] {describe_error(kind)} [dim]({exc})[/dim]")
        raise typer.Exit(code=1) from exc


def _load_reference(value: str) -> ReferenceImage:
    if value.startswith("data:"):
        try:
            return ReferenceImage.from_data_url(value)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    path = Path(value)
    if not path.is_file():
        raise typer.BadParameter(f"image not found: {value}")
    return ReferenceImage.from_path(path)


def _print_plan(plan: StoryboardPlan, language: Language) -> None:
    _console.print(build_identity_panel(plan))
    _console.print(build_plan_table(plan, language))


def _shot_hooks() -> PipelineHooks:
    def started(shot: SceneShot) -> None:
        _console.print(f"[cyan]→[/cyan] rendering {shot.index + 1:02d}/{SCENE_COUNT} · {shot.angle.name}")

    def finished(shot: SceneShot) -> None:
        if shot.error_kind is not None:
            _console.print(f"  [red]✗[/red] {describe_error(shot.error_kind)}")
        else:
            _console.print(f"  [green]✓[/green] {shot.image.model if shot.image else ''}")

    return PipelineHooks(
        warning=lambda message: _console.print(f"[yellow]{message}[/yellow]"),
        categories=lambda values: _console.print(f"[dim]Suggested categories:[/dim] {', '.join(values)}"),
        plan_ready=lambda plan: _console.print("[green]Plan ready.[/green]"),
        shot_started=started,
        shot_finished=finished,
    )


@app.command(name="validate-key")
def validate_key(api_key: str | None = _API_KEY_OPTION) -> None:
    """Check whether the key works, and whether the Pro tier is available."""

    settings = _settings()
    result = _run(validate_api_key(api_key, settings=settings))
    _console.print(build_validation_panel(result))
    if not result.valid:
        raise typer.Exit(code=1)


@app.command()
def categories(
    image: str = typer.Argument(..., help="Reference photo (path or data URL)."),
    api_key: str | None = _API_KEY_OPTION,
) -> None:
    """Suggest five story categories for the `whatsNext` mode."""

    settings = _settings()
    values = _run(suggest_narrative_categories(_load_reference(image), api_key, settings=settings))
    for i, value in enumerate(values, start=1):
        _console.print(f"{i}. {value}")


@app.command()
def plan(
    image: str = typer.Argument(..., help="Reference photo (path or data URL)."),
    mode: AppMode = typer.Option(AppMode.SHORTS, "--mode", "-m", help="Narrative mode."),
    category: str | None = typer.Option(None, "--category", "-c", help="Story category (whatsNext)."),
    zoom: ZoomDirection = typer.Option(ZoomDirection.IN, "--zoom", help="Zoom direction (zooms)."),
    json_path: Path | None = typer.Option(None, "--json", help="Write the plan to this JSON file."),
    korean: bool = typer.Option(False, "--korean", help="Show the Korean prompt variant."),
    api_key: str | None = _API_KEY_OPTION,
) -> None:
    """Analyze the photo and author the nine-scene plan (no rendering)."""

    settings = _settings()
    result = _run(
        analyze_image_to_storyboard_plan(
            _load_reference(image), mode, category, zoom, api_key, settings=settings
        )
    )
    _print_plan(result, Language.from_bool(korean) if korean else settings.default_language)
    if json_path is not None:
        export_plan_json(plan=result, output_path=json_path)
        _console.print(f"[green]Plan saved to:[/green] {json_path}")


@app.command()
def storyboard(
    image: str = typer.Argument(..., help="Reference photo (path or data URL)."),
    mode: AppMode = typer.Option(AppMode.SHORTS, "--mode", "-m", help="Narrative mode."),
    category: str | None = typer.Option(None, "--category", "-c", help="Story category (whatsNext)."),
    zoom: ZoomDirection = typer.Option(ZoomDirection.IN, "--zoom", help="Zoom direction (zooms)."),
    pro: bool = typer.Option(False, "--pro", help="Use the Pro image model when the key allows it."),
    out: Path | None = typer.Option(None, "--out", "-o", help="Output directory."),
    korean: bool = typer.Option(False, "--korean", help="Show the Korean prompt variant."),
    api_key: str | None = _API_KEY_OPTION,
) -> None:
    """Full flow: validate key, author the plan, render all nine scenes, export."""

    settings = _settings()
    language = Language.from_bool(korean) if korean else settings.default_language
    print_banner(_console)

    request = StoryboardRequest(
        image=_load_reference(image),
        mode=mode,
        category=category,
        zoom_direction=zoom,
        pro=pro,
        api_key=api_key,
    )
    result = _run(build_storyboard(settings=settings, request=request, hooks=_shot_hooks()))

    _console.print(build_validation_panel(result.validation))
    _print_plan(result.session.plan, language)
    _console.print(build_shots_table(result.session.shots))

    exported = export_session(
        session=result.session,
        output_dir=out or settings.output_dir,
        language=language,
    )
    _console.print(f"[green]Saved {len(exported.images)} image(s), plan and contact sheet to:[/green] {exported.html_path.parent}")
    if len(result.session.completed) < SCENE_COUNT:
        raise typer.Exit(code=1)


@app.command()
def render(
    plan_json: Path = typer.Argument(..., exists=True, dir_okay=False, help="Plan exported with `plan --json`."),
    image: str = typer.Argument(..., help="Reference photo (path or data URL)."),
    scene: int | None = typer.Option(None, "--scene", "-s", min=1, max=SCENE_COUNT, help="Only this scene (1-9)."),
    pro: bool = typer.Option(False, "--pro", help="Use the Pro image model when the key allows it."),
    out: Path | None = typer.Option(None, "--out", "-o", help="Output directory."),
    api_key: str | None = _API_KEY_OPTION,
) -> None:
    """Render one scene (or every scene) of an existing plan."""

    settings = _settings()
    session = StoryboardSession.start(load_plan_json(plan_json), _load_reference(image))
    hooks = _shot_hooks()

    async def _render() -> None:
        validation = await ensure_valid_key(settings=settings, api_key=api_key)
        use_pro, warning = resolve_generation_mode(pro, validation)
        if warning and hooks.warning:
            hooks.warning(warning)
        if scene is not None:
            await render_shot(session, scene - 1, settings=settings, pro=use_pro, api_key=api_key, hooks=hooks)
        else:
            await render_all(session, settings=settings, pro=use_pro, api_key=api_key, hooks=hooks)

    _run(_render())
    _console.print(build_shots_table(session.shots))
    exported = export_session(session=session, output_dir=out or settings.output_dir)
    _console.print(f"[green]Saved {len(exported.images)} image(s) to:[/green] {exported.html_path.parent}")
    if any(shot.error_kind is not None for shot in session.shots):
        raise typer.Exit(code=1)


@app.command()
def refine(
    plan_json: Path = typer.Argument(..., exists=True, dir_okay=False, help="Plan exported with `plan --json`."),
    subject: str | None = typer.Option(None, "--subject", help="New identity-lock description."),
    style: str | None = typer.Option(None, "--style", help="New visual style."),
    mode: AppMode = typer.Option(AppMode.SHORTS, "--mode", "-m", help="Narrative mode."),
    out: Path | None = typer.Option(None, "--out", "-o", help="Where to write the new plan (default: overwrite)."),
    korean: bool = typer.Option(False, "--korean", help="Show the Korean prompt variant."),
    api_key: str | None = _API_KEY_OPTION,
) -> None:
    """Re-author the nine prompts after editing the identity lock or style."""

    settings = _settings()
    edited = load_plan_json(plan_json).with_edits(subject=subject, style=style)
    result = _run(update_prompts_with_edits(edited, mode, api_key, settings=settings))
    _print_plan(result, Language.from_bool(korean) if korean else settings.default_language)
    target = out or plan_json
    export_plan_json(plan=result, output_path=target)
    _console.print(f"[green]Plan saved to:[/green] {target}")


def run() -> None:
    # Korean prompts on Windows terminals (cp1252 vs utf-8).
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding="utf-8")
        sys.stderr.reconfigure(encoding="utf-8")
    app()
