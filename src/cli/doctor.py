"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import GEMINI_API_URL, build_async_client
from adapters.json_exporter import export_plan_json, load_plan_json
from adapters.storyboard_ai import validate_api_key
from core.config import AppSettings, resolve_api_key, write_user_env_vars
from core.domain.models import SCENE_COUNT, StoryboardAngle, StoryboardPlan

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str) -> tuple[bool, str]:
    try:
        async with build_async_client() as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


def _check_export() -> tuple[bool, str]:
    """Round-trip a dummy plan through the JSON exporter."""

    plan = StoryboardPlan(
        subject="doctor",
        style="doctor",
        resolution="1K",
        aspect_ratio="16:9",
        angles=[
            StoryboardAngle(name=f"scene {i + 1}", prompt="p", prompt_ko="p") for i in range(SCENE_COUNT)
        ],
    )
    try:
        with tempfile.TemporaryDirectory() as tmp:
            path = export_plan_json(plan=plan, output_path=Path(tmp) / "plan.json")
            load_plan_json(path)
        return True, "OK"
    except Exception as exc:
        return False, str(exc)


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="NineCut Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    has_key = bool(resolve_api_key(None, settings))
    table.add_row("API key", "OK" if has_key else "MISSING", "Found" if has_key else "Run `ninecut doctor setup-key`")
    table.add_row("Text tiers", "OK", " -> ".join(settings.text_models))
    table.add_row("Image tiers", "OK", f"{settings.image_pro_model} -> {settings.image_standard_model}")
    table.add_row(
        "Deadlines",
        "OK",
        f"validation {settings.validation_timeout_seconds:g}s / generation {settings.request_timeout_seconds:g}s",
    )

    # Connectivity (best-effort)
    ok_http, detail_http = asyncio.run(_check_http(GEMINI_API_URL))
    table.add_row("Gemini API reachability", "OK" if ok_http else "FAIL", detail_http)

    if has_key:
        result = asyncio.run(validate_api_key(settings=settings))
        if result.valid:
            tier = "pro available" if result.pro_available else "standard only"
            table.add_row("Key validation", "OK", tier)
        else:
            table.add_row("Key validation", "FAIL", "Key rejected or probe timed out")

    ok_export, detail_export = _check_export()
    table.add_row("Plan export", "OK" if ok_export else "FAIL", detail_export)

    _console.print(table)


@app.command(name="setup-key")
def setup_key(
    disconnect: bool = typer.Option(False, "--disconnect", help="Remove the stored key instead."),
) -> None:
    """Store a single Gemini API key in the user config .env (validated first)."""

    if disconnect:
        env_path = write_user_env_vars({"NINECUT_API_KEY": None})
        _console.print(f"[yellow]Removed API key from:[/yellow] {env_path}")
        return

    api_key = typer.prompt("Gemini API key", hide_input=True, confirmation_prompt=False).strip()
    if not api_key:
        raise typer.BadParameter("API key is required")

    result = asyncio.run(validate_api_key(api_key))
    if not result.valid:
        _console.print("[red]The key was rejected; nothing was saved.[/red]")
        raise typer.Exit(code=1)

    env_path = write_user_env_vars({"NINECUT_API_KEY": api_key})
    tier = "Pro + Standard" if result.pro_available else "Standard only"
    _console.print(f"[green]Saved API key ({tier}) to:[/green] {env_path}")
