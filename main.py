#!/usr/bin/env python3
"""
Nordic Wellness Class Booker - Main Entry Point

Usage:
    python main.py --config config/config.yaml run
    python main.py --config config/config.yaml once
    python main.py --config config/config.yaml slots "Body Balance"
    python main.py --config config/config.yaml info
"""
import asyncio
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from nwbooker.api import NordicWellnessClient, APIError
from nwbooker.booking import Supervisor, select_slot
from nwbooker.common.config import load_config, ConfigurationError
from nwbooker.common.notifications import NotificationManager
from nwbooker.common.scheduler import PrecisionScheduler, ScheduleClock

console = Console()


def setup_logging(level: str = "INFO", log_file: str = None):
    """Configure logging"""
    handlers = [RichHandler(console=console, rich_tracebacks=True)]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s"))
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",
        handlers=handlers
    )
    # Request lines from httpx would drown the booking log
    logging.getLogger("httpx").setLevel(logging.WARNING)


def load_activities_or_exit(cfg):
    try:
        return cfg.load_activities()
    except (FileNotFoundError, ConfigurationError) as e:
        console.print(f"[red]Error loading activities: {e}[/red]")
        sys.exit(1)


@click.group()
@click.option("--config", "-c", default=None, help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx, config, verbose):
    """
    Nordic Wellness Class Booker

    Books recurring classes as soon as their booking window opens.
    """
    ctx.ensure_object(dict)

    try:
        cfg = load_config(config)
        ctx.obj["config"] = cfg
        setup_logging(
            level="DEBUG" if verbose else cfg.logging.level,
            log_file=cfg.logging.file
        )
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {config}[/red]")
        console.print("Create a config file from config/config.example.yaml")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Error loading config: {e}[/red]")
        sys.exit(1)


@cli.command()
@click.pass_context
def run(ctx):
    """Book every activity on its schedule, forever"""
    cfg = ctx.obj["config"]
    activities = load_activities_or_exit(cfg)

    async def main():
        async with NordicWellnessClient(cfg) as client, NotificationManager(cfg.notifications) as notifications:
            supervisor = Supervisor(cfg, activities, client, notifications)
            await supervisor.run()

    console.print(Panel(f"⏰ Scheduling {len(activities)} activities\n\nPress Ctrl+C to stop", style="blue"))
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped[/yellow]")


@cli.command()
@click.pass_context
def once(ctx):
    """Try to book every activity right now"""
    cfg = ctx.obj["config"]
    activities = load_activities_or_exit(cfg)

    async def main():
        async with NordicWellnessClient(cfg) as client:
            supervisor = Supervisor(cfg, activities, client)
            return await supervisor.run_once()

    console.print(Panel("🚀 Attempting bookings now", style="green"))
    runs = asyncio.run(main())

    table = Table(title="Results")
    table.add_column("Activity")
    table.add_column("User")
    table.add_column("Result")
    table.add_column("Attempts")
    for booking_run in runs:
        if booking_run is None:
            continue
        style = "green" if booking_run.succeeded else "red"
        table.add_row(
            booking_run.activity.name,
            booking_run.activity.user_name,
            f"[{style}]{booking_run.outcome.describe() if booking_run.outcome else '-'}[/{style}]",
            f"{booking_run.attempts_made}/{booking_run.max_attempts}",
        )
    console.print(table)


@cli.command()
@click.argument("activity_name")
@click.pass_context
def slots(ctx, activity_name):
    """Show the provider listing for a configured activity"""
    cfg = ctx.obj["config"]
    activities = load_activities_or_exit(cfg)
    activity = next((a for a in activities if a.name.lower() == activity_name.lower()), None)
    if activity is None:
        console.print(f"[red]No enabled activity named {activity_name!r}[/red]")
        sys.exit(1)

    async def main():
        async with NordicWellnessClient(cfg) as client:
            return await client.search_slots(activity)

    try:
        listing = asyncio.run(main())
    except APIError as e:
        console.print(f"[red]Search failed: {e}[/red]")
        sys.exit(1)

    selected = select_slot(listing, activity)
    table = Table(title=f"Slots for {activity.label} ({len(listing.group_activities)} total)")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Start")
    table.add_column("Status")
    table.add_column("Free")
    table.add_column("Instructor")
    for slot in listing.group_activities:
        marker = "[bold green]→ [/bold green]" if selected and slot.id == selected.id else ""
        table.add_row(
            f"{marker}{slot.id}",
            slot.name,
            slot.start_time,
            slot.status,
            str(slot.free_slots),
            slot.instructor or "-",
        )
    console.print(table)
    if selected is None:
        console.print(f"[yellow]Nothing matches {activity.criteria}[/yellow]")


@cli.command()
@click.pass_context
def info(ctx):
    """Show current configuration and upcoming runs"""
    cfg = ctx.obj["config"]
    activities = load_activities_or_exit(cfg)
    scheduler = PrecisionScheduler(cfg.provider.utc_offset_minutes)

    console.print(Panel("📋 Current Configuration", style="blue"))

    table = Table(show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Provider", cfg.provider.base_url)
    table.add_row("Club ID", cfg.provider.club_id)
    table.add_row("UTC offset", f"{cfg.provider.utc_offset_hours:+g}h")
    table.add_row("Search window", f"day +{cfg.provider.window_start_days} to +{cfg.provider.window_end_days}")
    table.add_row("Max attempts", str(cfg.retry.max_attempts))
    table.add_row("Backoff", f"{cfg.retry.backoff_seconds:g}s")
    table.add_row("Cooldown", f"{cfg.retry.cooldown_seconds:g}s")
    console.print(table)

    table = Table(title="Activities")
    table.add_column("Name")
    table.add_column("User")
    table.add_column("When")
    table.add_column("Schedule")
    table.add_column("Next run")
    for activity in activities:
        expression = cfg.cron_for(activity)
        try:
            wake = ScheduleClock(expression, cfg.provider.utc_offset_minutes).next_wake(scheduler.now())
            next_run = f"{wake:%Y-%m-%d %H:%M:%S} ({scheduler.format_countdown(wake)})" if wake else "never"
        except ConfigurationError as e:
            next_run = f"[red]{e}[/red]"
        table.add_row(
            activity.name,
            activity.user_name,
            activity.day or f"*{activity.start_time}",
            expression,
            next_run,
        )
    console.print(table)


if __name__ == "__main__":
    cli()
