"""Rich terminal UI for generating a demo video locally.

Usage:
    python run_demo.py path/to/workflow.json
    python run_demo.py login-flow https://example.com/login
"""
import asyncio
import json
import logging
import math
import sys

from dotenv import load_dotenv

load_dotenv()

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

console = Console()

# ── State for the live display ───────────────────────────
state = {
    "workflow_id": "",
    "job_id": "",
    "status": "pending",
    "progress": 0,
    "message": "",
    "log": [],  # list of (level, message)
}

MAX_LOG_LINES = 15

STATUS_ORDER = ["pending", "capturing", "rendering", "completed"]


class RichStateHandler(logging.Handler):
    """Feed pipeline log records into the live display."""

    def emit(self, record):
        state["log"].append((record.levelname, record.getMessage()))
        if len(state["log"]) > MAX_LOG_LINES:
            state["log"] = state["log"][-MAX_LOG_LINES:]


def build_display():
    header = Text(
        f"  Demo Video: {state['workflow_id']}  (job: {state['job_id']})",
        style="bold white on blue",
    )

    phases = Table(show_header=False, box=None, padding=(0, 1))
    phases.add_column(width=3)
    phases.add_column(width=12)
    current = state["status"]
    reached = STATUS_ORDER.index(current) if current in STATUS_ORDER else -1
    for i, phase in enumerate(STATUS_ORDER):
        if current == "failed":
            icon, style = "[red]✗[/red]", "red"
        elif i < reached or current == "completed":
            icon, style = "[green]●[/green]", "green"
        elif i == reached:
            icon, style = "[yellow]◉[/yellow]", "yellow"
        else:
            icon, style = "[dim]○[/dim]", "dim"
        phases.add_row(icon, f"[{style}]{phase}[/{style}]")

    pct = state["progress"]
    bar_width = 40
    filled = int(bar_width * pct / 100)
    bar = f"[green]{'█' * filled}[/green][dim]{'░' * (bar_width - filled)}[/dim] {pct}%"

    log_lines = []
    for level, message in state["log"]:
        if level == "WARNING":
            log_lines.append(f"  [yellow]! {message}[/yellow]")
        elif level in ("ERROR", "CRITICAL"):
            log_lines.append(f"  [red]✗ {message}[/red]")
        else:
            log_lines.append(f"  [dim]↳[/dim] {message}")
    log_text = "\n".join(log_lines) if log_lines else "  [dim]waiting...[/dim]"

    layout = Table.grid(padding=1)
    layout.add_row(header)
    layout.add_row(Panel(phases, title="Phases", border_style="blue"))
    layout.add_row(Panel(
        f"  {bar}\n  [dim]{state['message'] or 'Initializing...'}[/dim]",
        title="Progress",
        border_style="blue",
    ))
    layout.add_row(Panel(log_text, title="Log", border_style="blue"))
    return layout


def load_request(argv: list[str]):
    from demo.workflow import GenerationRequest
    from workflows.templates import WORKFLOW_TEMPLATES, build_workflow_from_template

    if not argv:
        console.print(__doc__)
        sys.exit(2)
    if argv[0] in WORKFLOW_TEMPLATES:
        if len(argv) < 2:
            console.print(f"[red]Template {argv[0]} needs a URL[/red]")
            sys.exit(2)
        workflow = build_workflow_from_template(argv[0], argv[0], argv[1])
        return GenerationRequest(workflow=workflow)
    with open(argv[0]) as f:
        data = json.load(f)
    # Accept either a bare workflow or a full {workflow, renderOptions} request
    if "workflow" not in data:
        data = {"workflow": data}
    return GenerationRequest.model_validate(data)


def print_timeline(events_path: str):
    """One row per second of the track: which annotations are on screen."""
    from demo.track import active_callout, active_events, load_track

    track = load_track(events_path)
    if not track.events:
        console.print("[dim]No events recorded[/dim]")
        return
    t = Table(title="Event Timeline", show_lines=False, border_style="cyan")
    t.add_column("t (s)", justify="right", width=6)
    t.add_column("On screen")
    t.add_column("Callout")
    end = math.ceil(track.events[-1].t) + 1
    for second in range(end + 1):
        on_screen = active_events(track.events, float(second))
        callout = active_callout(track.events, float(second))
        t.add_row(
            str(second),
            ", ".join(e.type for e in on_screen) or "[dim]-[/dim]",
            callout.label if callout else "",
        )
    console.print(t)


# ── Main ──────────────────────────────────────────────────
async def main():
    from db.models import InMemoryJobStore
    from orchestrator import Orchestrator

    request = load_request(sys.argv[1:])
    orchestrator = Orchestrator(InMemoryJobStore())

    handler = RichStateHandler()
    handler.setLevel(logging.INFO)
    for name in ("orchestrator", "executor", "render.demo_video"):
        logging.getLogger(name).addHandler(handler)
        # Keep the console quiet under the live display
        logging.getLogger(name).propagate = False

    job_id = orchestrator.submit(request)
    state["workflow_id"] = request.workflow.id
    state["job_id"] = job_id

    with Live(build_display(), console=console, refresh_per_second=4) as live:
        while True:
            job = orchestrator.status(job_id)
            state["status"] = job.status
            state["progress"] = job.progress
            state["message"] = job.message or ""
            live.update(build_display())
            if job.status in ("completed", "failed"):
                break
            await asyncio.sleep(0.25)

    await orchestrator.wait()
    job = orchestrator.status(job_id)

    console.print()
    t = Table(title="Generation Result", show_lines=True, border_style="yellow")
    t.add_column("Field", style="bold", width=16)
    t.add_column("Value")
    for field, value in job.to_api().items():
        t.add_row(field, str(value))
    console.print(t)

    if job.events_path:
        console.print()
        print_timeline(job.events_path)

    style = "green" if job.status == "completed" else "red"
    console.print(f"\n  Generation finished: [{style}]{job.status}[/{style}]\n")


if __name__ == "__main__":
    # Console: warnings only (keeps Rich UI clean)
    # File: full debug logs
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler("generation.log", mode="w"),
        ],
    )
    logging.getLogger().handlers[0].setLevel(logging.WARNING)
    asyncio.run(main())
