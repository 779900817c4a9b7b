"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.language import Language
from core.domain.models import SceneShot, ShotStatus, StoryboardPlan, ValidationResult
from core.errors import ErrorKind

ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.CREDENTIAL_MISSING: (
        "No API key found. Set NINECUT_API_KEY (or GEMINI_API_KEY) or run `ninecut doctor setup-key`."
    ),
    ErrorKind.TIMEOUT: "The request took too long and timed out. Please try again.",
    ErrorKind.ACCESS_DENIED: "This key is not authorized for the requested model.",
    ErrorKind.CREDENTIAL_INVALID: (
        "The API key is invalid or over its quota. Set it again or use Standard mode."
    ),
    ErrorKind.GENERATION_EMPTY: "The model answered but returned no usable content.",
    ErrorKind.MALFORMED_RESPONSE: "The model response did not match the expected storyboard shape.",
    ErrorKind.UNCLASSIFIED: "Unexpected error from the AI service.",
}

_STATUS_STYLES: dict[ShotStatus, str] = {
    ShotStatus.PENDING: "dim",
    ShotStatus.GENERATING: "yellow",
    ShotStatus.COMPLETED: "green",
    ShotStatus.ERROR: "red",
}


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida."""

    title = Text("NineCut", style="bold cyan")
    subtitle = Text("Reference photo • Identity lock • Nine scenes", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_plan_table(plan: StoryboardPlan, language: Language = Language.ENGLISH) -> Table:
    """Tabla con las nueve escenas del plan (variante de prompt elegida)."""

    table = Table(title=f"Storyboard plan ({plan.aspect_ratio}, {plan.resolution})", show_lines=True)
    table.add_column("#", style="cyan", no_wrap=True)
    table.add_column("Scene", style="bold white")
    table.add_column(f"Prompt ({language.label()})", style="white")
    for i, angle in enumerate(plan.angles):
        table.add_row(f"{i + 1:02d}", angle.name, angle.text_for(language))
    return table


def build_identity_panel(plan: StoryboardPlan) -> Panel:
    body = Text()
    body.append("Subject: ", style="bold")
    body.append(plan.subject + "\n")
    body.append("Style: ", style="bold")
    body.append(plan.style)
    return Panel(body, title=Text("Identity lock", style="bold yellow"), border_style="yellow")


def build_validation_panel(result: ValidationResult) -> Panel:
    if not result.valid:
        return Panel(Text("Key is not valid", style="bold red"), title="API key", border_style="red")
    tier = "Pro + Standard" if result.pro_available else "Standard only"
    return Panel(Text(f"Key is valid · {tier}", style="bold green"), title="API key", border_style="green")


def build_shots_table(shots: list[SceneShot]) -> Table:
    table = Table(title="Rendered scenes")
    table.add_column("#", style="cyan", no_wrap=True)
    table.add_column("Scene", style="white")
    table.add_column("Status")
    table.add_column("Model", style="dim")
    table.add_column("Error", style="red")
    for shot in shots:
        style = _STATUS_STYLES.get(shot.status, "white")
        table.add_row(
            f"{shot.index + 1:02d}",
            shot.angle.name,
            Text(shot.status.value, style=style),
            shot.image.model if shot.image is not None else "",
            ERROR_MESSAGES.get(shot.error_kind, shot.error or "") if shot.error_kind else "",
        )
    return table


def describe_error(kind: ErrorKind) -> str:
    return ERROR_MESSAGES.get(kind, ERROR_MESSAGES[ErrorKind.UNCLASSIFIED])
