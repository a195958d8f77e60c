"""
AutoSolve CLI
=============

Inspect and manage the local AutoSolve state: scan quota, trial window,
diagnostic history, repair outcome follow-ups and community stats.

Usage:
    autosolve status
    autosolve history
    autosolve follow-ups
    autosolve submit 1718000000 --outcome fixed --description "Replace O2 sensor" --cost 120
    autosolve stats --symptom "rough idle" --code P0171 --refresh
    autosolve tier premium
    autosolve trial start
    autosolve settings set units metric
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Tuple

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from autosolve import __version__
from autosolve.context import AppContext, create_context
from autosolve.core.config import get_settings
from autosolve.core.exceptions import AutoSolveException
from autosolve.core.logging import setup_logging
from autosolve.db.store import JsonFileStore
from autosolve.schemas.repair_outcome import (
    DiagnosticData,
    RepairDetails,
    RepairOutcome,
    RepairPart,
    RepairType,
    WhatFixedItStats,
)
from autosolve.schemas.settings import DefaultVehicle, Language, Units
from autosolve.schemas.subscription import SubscriptionTier
from autosolve.services.outcome_aggregator import generate_stats_key

console = Console()
err_console = Console(stderr=True)


def setup_cli_logging(verbosity: int, log_format: str = "rich") -> None:
    """Configure logging based on verbosity level."""
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    if log_format != "rich":
        setup_logging(level=logging.getLevelName(level), log_format=log_format)
        return

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False, show_time=False)],
        force=True,
    )


def output_json(data: Any) -> None:
    """Output data as formatted JSON."""
    click.echo(json.dumps(data, ensure_ascii=False, indent=2, default=str))


# =============================================================================
# Click CLI Application
# =============================================================================

class Context:
    """CLI context for passing state between commands."""

    def __init__(self):
        self.verbose: int = 0
        self.json_output: bool = False
        self.data_dir: Optional[Path] = None
        self._app: Optional[AppContext] = None

    @property
    def app(self) -> AppContext:
        if self._app is None:
            settings = get_settings()
            store = JsonFileStore(self.data_dir or settings.DATA_DIR)
            self._app = create_context(settings=settings, store=store)
        return self._app


pass_context = click.make_pass_decorator(Context, ensure=True)


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v, -vv)")
@click.option("--json", "json_output", is_flag=True, help="Output results as JSON")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="DATA_DIR",
    help="Directory holding the persisted state",
)
@click.option(
    "--log-format",
    type=click.Choice(["rich", "json", "text"]),
    default="rich",
    help="Log output on stderr",
)
@click.version_option(version=__version__, prog_name="autosolve")
@pass_context
def cli(
    ctx: Context,
    verbose: int,
    json_output: bool,
    data_dir: Optional[Path],
    log_format: str,
):
    """
    AutoSolve CLI - local diagnostic assistant state.
    """
    ctx.verbose = verbose
    ctx.json_output = json_output
    ctx.data_dir = data_dir
    setup_cli_logging(verbose, log_format)


# =============================================================================
# Usage Commands
# =============================================================================

@cli.command("status")
@pass_context
def status_cmd(ctx: Context):
    """Show tier, remaining scans and trial window."""
    usage = ctx.app.usage
    usage.expire_trial_if_needed()
    state = usage.state

    data = {
        "tier": state.tier.value,
        "can_scan": usage.can_scan(),
        "remaining_scans": usage.get_remaining_scans(),
        "scans_this_week": state.usage_stats.scans_this_week,
        "total_scans_all_time": state.usage_stats.total_scans_all_time,
        "trial_days_remaining": usage.get_trial_days_remaining(),
        "trial_scans_used": state.trial_stats.trial_scans_used,
    }

    if ctx.json_output:
        output_json(data)
        return

    console.print(Panel(f"[bold]AutoSolve[/bold] - {state.tier.value} tier", box=box.ROUNDED))
    scan_color = "green" if data["can_scan"] else "red"
    console.print(f"Remaining scans: [{scan_color}]{data['remaining_scans']}[/{scan_color}]")
    console.print(f"Scans this week: {data['scans_this_week']}")
    console.print(f"Total scans: {data['total_scans_all_time']}")
    if state.tier == SubscriptionTier.TRIAL:
        console.print(f"Trial days remaining: {data['trial_days_remaining']}")


@cli.command("tier")
@click.argument("tier", type=click.Choice([t.value for t in SubscriptionTier]))
@pass_context
def tier_cmd(ctx: Context, tier: str):
    """Set the subscription tier."""
    if tier == SubscriptionTier.TRIAL.value:
        ctx.app.usage.start_trial()
    else:
        ctx.app.usage.set_subscription_tier(tier)
    console.print(f"[green]Tier set to {tier}[/green]")


@cli.group("trial")
def trial_group():
    """Start or end the trial window."""


@trial_group.command("start")
@pass_context
def trial_start_cmd(ctx: Context):
    """Start a new trial."""
    ctx.app.usage.start_trial()
    console.print(
        f"[green]Trial started[/green] ({ctx.app.usage.get_trial_days_remaining()} days)"
    )


@trial_group.command("end")
@pass_context
def trial_end_cmd(ctx: Context):
    """End the trial and revert to the free tier."""
    ctx.app.usage.end_trial()
    console.print("Trial ended")


@cli.command("history")
@click.option("--clear", is_flag=True, help="Delete the diagnostic history")
@pass_context
def history_cmd(ctx: Context, clear: bool):
    """List past diagnostic sessions (trial and premium only)."""
    usage = ctx.app.usage
    if clear:
        usage.clear_history()
        console.print("History cleared")
        return

    sessions = usage.get_history()
    if ctx.json_output:
        output_json([s.model_dump(mode="json") for s in sessions])
        return

    if usage.tier == SubscriptionTier.FREE:
        console.print("[yellow]History is available with trial or premium.[/yellow]")
        return
    if not sessions:
        console.print("No diagnostic sessions yet.")
        return

    table = Table(title="Diagnostic History", box=box.SIMPLE)
    table.add_column("ID")
    table.add_column("Date")
    table.add_column("Vehicle")
    table.add_column("Codes")
    table.add_column("Summary")
    for session in sessions:
        vehicle = f"{session.vehicle.year} {session.vehicle.make} {session.vehicle.model}"
        table.add_row(
            session.id,
            session.timestamp.strftime("%Y-%m-%d"),
            vehicle,
            ", ".join(session.dtc_codes) or "-",
            session.summary[:60],
        )
    console.print(table)


# =============================================================================
# Repair Outcome Commands
# =============================================================================

@cli.command("follow-ups")
@pass_context
def follow_ups_cmd(ctx: Context):
    """List repair outcome follow-ups that are due."""
    due = ctx.app.outcomes.get_pending_follow_ups()

    if ctx.json_output:
        output_json([f.model_dump(mode="json") for f in due])
        return
    if not due:
        console.print("No follow-ups due.")
        return

    table = Table(title="Did it get fixed?", box=box.SIMPLE)
    table.add_column("Diagnostic ID")
    table.add_column("Scheduled")
    for follow_up in due:
        table.add_row(follow_up.diagnostic_id, follow_up.scheduled_follow_up_date.strftime("%Y-%m-%d"))
    console.print(table)


@cli.command("complete-follow-up")
@click.argument("diagnostic_id")
@pass_context
def complete_follow_up_cmd(ctx: Context, diagnostic_id: str):
    """Dismiss the follow-ups for a diagnostic without submitting an outcome."""
    matched = ctx.app.outcomes.mark_follow_up_completed(diagnostic_id)
    if matched:
        console.print(f"[green]Completed {matched} follow-up(s)[/green]")
    else:
        console.print(f"[yellow]No follow-up found for {diagnostic_id}[/yellow]")


@cli.command("submit")
@click.argument("diagnostic_id")
@click.option(
    "--outcome", "-o", required=True,
    type=click.Choice([o.value for o in RepairOutcome]),
    help="Did the repair fix the issue?",
)
@click.option("--description", "-d", default="", help="What fixed it")
@click.option("--type", "repair_type", type=click.Choice([t.value for t in RepairType]), default="diy")
@click.option("--cost", type=float, default=0.0, help="Total cost")
@click.option("--hours", type=float, default=0.0, help="Time spent in hours")
@click.option("--part", "parts", multiple=True, help="Replaced part (repeatable)")
@click.option("--shop", "shop_name", default=None, help="Shop name for shop repairs")
@click.option("--symptom", "symptoms", multiple=True, help="Symptom of the diagnosis (repeatable)")
@click.option("--code", "codes", multiple=True, help="DTC code of the diagnosis (repeatable)")
@click.option("--confidence", type=click.IntRange(1, 5), default=5)
@click.option("--notes", default=None)
@pass_context
def submit_cmd(
    ctx: Context,
    diagnostic_id: str,
    outcome: str,
    description: str,
    repair_type: str,
    cost: float,
    hours: float,
    parts: Tuple[str, ...],
    shop_name: Optional[str],
    symptoms: Tuple[str, ...],
    codes: Tuple[str, ...],
    confidence: int,
    notes: Optional[str],
):
    """Record the repair outcome for a diagnostic."""
    repair = RepairDetails(
        type=RepairType(repair_type),
        parts_replaced=[RepairPart(name=name) for name in parts],
        labor_description=description,
        total_cost=cost,
        time_spent=hours,
        shop_name=shop_name if repair_type == RepairType.SHOP.value else None,
    )
    submission = ctx.app.outcomes.submit_outcome(
        diagnostic_id,
        outcome,
        repair=repair,
        diagnostic_data=DiagnosticData(symptoms=list(symptoms), dtc_codes=[c.upper() for c in codes]),
        confidence=confidence,
        additional_notes=notes,
    )

    if ctx.json_output:
        output_json(submission.model_dump(mode="json"))
        return
    console.print(f"[green]Thank you![/green] Outcome recorded as {submission.id}")


@cli.command("stats")
@click.option("--symptom", "symptoms", multiple=True, help="Symptom (repeatable)")
@click.option("--code", "codes", multiple=True, help="DTC code (repeatable)")
@click.option("--refresh", is_flag=True, help="Recompute from local submissions before showing")
@pass_context
def stats_cmd(ctx: Context, symptoms: Tuple[str, ...], codes: Tuple[str, ...], refresh: bool):
    """Show "what fixed it" community stats for symptoms and codes."""
    outcomes = ctx.app.outcomes
    codes_list = [c.upper() for c in codes]

    if refresh:
        key, stats = outcomes.refresh_community_stats(list(symptoms), codes_list)
    else:
        key = generate_stats_key(
            symptoms, codes_list, strategy=ctx.app.settings.STATS_KEY_STRATEGY
        )
        stats = outcomes.get_cached_stats(key)

    if ctx.json_output:
        output_json({"key": key, "stats": stats.model_dump(mode="json") if stats else None})
        return

    if stats is None:
        console.print(f"No community data yet for {key}.")
        return
    _display_stats(key, stats)


def _display_stats(key: str, stats: WhatFixedItStats) -> None:
    console.print(Panel(f"[bold]What fixed it[/bold] ({key})", box=box.ROUNDED))
    console.print(f"Reports: {stats.total_reports}")
    console.print(f"Success rate: {stats.success_rate:.0f}%")
    console.print(f"Average cost: ${stats.average_cost:.2f}")
    console.print(f"Average time: {stats.average_time:.1f} h")

    if stats.top_solutions:
        table = Table(title="Top solutions", box=box.SIMPLE)
        table.add_column("Repair")
        table.add_column("Success", justify="right")
        table.add_column("Reports", justify="right")
        table.add_column("Avg cost", justify="right")
        table.add_column("DIY")
        for solution in stats.top_solutions:
            table.add_row(
                solution.description,
                f"{solution.success_rate:.0f}%",
                str(solution.total_attempts),
                f"${solution.average_cost:.2f}",
                "yes" if solution.diy_friendly else "no",
            )
        console.print(table)

    dist = stats.cost_distribution
    console.print(
        f"Cost: <$100: {dist.under_100}  $100-500: {dist.under_500}  "
        f"$500-1000: {dist.under_1000}  >$1000: {dist.over_1000}"
    )


# =============================================================================
# Settings Commands
# =============================================================================

SETTING_KEYS = ["language", "units", "notifications", "haptic_feedback", "default_vehicle"]


@cli.group("settings")
def settings_group():
    """Show or change user preferences."""


@settings_group.command("show")
@pass_context
def settings_show_cmd(ctx: Context):
    """Show current preferences."""
    current = ctx.app.user_settings.settings.model_dump(mode="json")
    if ctx.json_output:
        output_json(current)
        return
    for key, value in current.items():
        console.print(f"  [bold]{key}:[/bold] {value}")


@settings_group.command("set")
@click.argument("key", type=click.Choice(SETTING_KEYS))
@click.argument("value")
@pass_context
def settings_set_cmd(ctx: Context, key: str, value: str):
    """
    Change one preference.

    Examples:

        autosolve settings set units metric

        autosolve settings set default_vehicle "2015,Honda,Civic,1.8L"

        autosolve settings set default_vehicle none
    """
    service = ctx.app.user_settings
    try:
        if key == "language":
            service.set_language(Language(value))
        elif key == "units":
            service.set_units(Units(value))
        elif key in ("notifications", "haptic_feedback"):
            enabled = _parse_bool(value)
            if key == "notifications":
                service.set_notifications(enabled)
            else:
                service.set_haptic_feedback(enabled)
        else:
            service.set_default_vehicle(_parse_vehicle(value))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="VALUE") from e

    console.print(f"[green]{key} updated[/green]")


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Expected a boolean, got {value!r}")


def _parse_vehicle(value: str) -> DefaultVehicle | None:
    if value.strip().lower() in ("", "none"):
        return None
    fields = [part.strip() for part in value.split(",")]
    if len(fields) > 4:
        raise ValueError("Expected year,make,model,engine")
    fields += [""] * (4 - len(fields))
    year, make, model, engine = fields
    return DefaultVehicle(year=year, make=make, model=model, engine=engine)


# =============================================================================
# Main Entry Point
# =============================================================================

def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except AutoSolveException as e:
        err_console.print(f"[red]Error: {e.message}[/red]")
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
