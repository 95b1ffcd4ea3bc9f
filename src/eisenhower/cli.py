"""Eisenhower CLI: the task board and focus timer from the terminal.

Installed as ``eisenhower`` console_script via pipx / pip.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
from rich.table import Table

from eisenhower.config import VERSION, Config
from eisenhower.io_utils import read_input, write_text

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

QUADRANT_CHOICES = ("backlog", "Q1", "Q2", "Q3", "Q4")
TAG_CHOICES = ("energy_high", "energy_gentle", "mood_pleasant", "mood_neutral")


def format_duration(seconds: float) -> str:
    """``1h 05m`` for long spans, ``MM:SS`` below an hour."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    return f"{minutes:02d}:{secs:02d}"


def _cfg(ctx: click.Context) -> Config:
    return ctx.find_root().obj


def _open_store(cfg: Config):
    from eisenhower.storage import JsonFileStore
    from eisenhower.store import TaskStore

    kv = JsonFileStore(cfg.data_path)
    return kv, TaskStore(kv, save_delay=cfg.save_delay)


def _resolve(store, ref: str):
    task = store.resolve(ref)
    if task is None:
        raise click.BadParameter(f"No task matches {ref!r}.", param_hint="TASK")
    return task


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "--data-dir",
    default="",
    help="Where tasks and timer state are stored (default: $EISENHOWER_DATA_DIR or ~/.eisenhower)",
)
@click.option("--no-notify", is_flag=True, help="Disable desktop notifications")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
@click.version_option(VERSION, prog_name="eisenhower")
@click.pass_context
def main(ctx: click.Context, data_dir: str, no_notify: bool, verbose: bool) -> None:
    """Eisenhower: prioritise tasks in four quadrants and work on them in focus intervals.

    \b
    EXAMPLES:
      eisenhower import tasks.json               # merge a JSON payload
      eisenhower import --reset-quadrants -      # read stdin, reset placement
      eisenhower add "Write report" --due "1. 10. 2025 at 9:00" -q Q1
      eisenhower list
      eisenhower focus start "Write report"
      eisenhower focus run
    """
    from eisenhower import log as elog

    elog.set_verbose(verbose)
    ctx.obj = Config(data_dir=data_dir, notify=not no_notify, verbose=verbose)
    elog.debug(f"Data dir: {ctx.obj.data_path}")


# ── Tasks ────────────────────────────────────────────────────────────


@main.command("import")
@click.argument("source", default="-")
@click.option("--reset-quadrants", is_flag=True, help="Move every existing task to the backlog first")
@click.pass_context
def import_cmd(ctx: click.Context, source: str, reset_quadrants: bool) -> None:
    """Merge tasks from a JSON file (or ``-`` for stdin).

    \b
    Accepted shapes:
      {"Title": "1. 10. 2025 at 9:00", "Other": ""}
      {"Q1": {"Title": "..."}, "Q4": {"Other": ""}}
      {"tasks": {"<id>": {"title": "...", "quadrant": "Q2", ...}}}
    """
    from eisenhower import log as elog
    from eisenhower.errors import ReconcileError

    try:
        raw = read_input(source)
    except OSError as exc:
        elog.error(f"Cannot read {source}: {exc}")
        sys.exit(1)

    _, store = _open_store(_cfg(ctx))
    try:
        summary = store.import_text(raw, reset_quadrants=reset_quadrants)
    except ReconcileError as exc:
        elog.error(str(exc))
        sys.exit(1)
    store.flush()
    elog.success(
        f"Imported {summary.total} task(s): {summary.added} added, {summary.updated} updated"
    )


@main.command()
@click.argument("title")
@click.option("--due", default=None, help="Deadline, e.g. '1. 10. 2025 at 9:00' or ISO-8601")
@click.option("-q", "--quadrant", type=click.Choice(QUADRANT_CHOICES), default="backlog", show_default=True)
@click.option("--tag", type=click.Choice(TAG_CHOICES), default=None, help="Energy / mood tag")
@click.pass_context
def add(ctx: click.Context, title: str, due: str | None, quadrant: str, tag: str | None) -> None:
    """Add a task."""
    from eisenhower import log as elog
    from eisenhower.dates import parse_date

    if due and parse_date(due) is None:
        raise click.BadParameter(f"Unrecognised date {due!r}.", param_hint="--due")

    _, store = _open_store(_cfg(ctx))
    task = store.add(title, due=due, quadrant=quadrant, contemplation_tag=tag)
    store.flush()
    elog.success(f"Added {task.title!r} to {task.quadrant.value} ({task.id[:8]})")


@main.command("list")
@click.option("-q", "--quadrant", type=click.Choice(QUADRANT_CHOICES), default=None, help="Only this quadrant")
@click.option("--hide-done", is_flag=True, help="Hide completed tasks")
@click.pass_context
def list_cmd(ctx: click.Context, quadrant: str | None, hide_done: bool) -> None:
    """Show the board, one table per quadrant."""
    from eisenhower import log as elog
    from eisenhower.dates import format_date
    from eisenhower.tasks.model import QUADRANT_TITLES, TAG_LABELS

    _, store = _open_store(_cfg(ctx))
    for quad, tasks in store.by_quadrant().items():
        if quadrant and quad.value != quadrant:
            continue
        if hide_done:
            tasks = [t for t in tasks if not t.done]

        table = Table(title=QUADRANT_TITLES[quad], title_justify="left", expand=False)
        table.add_column("ID", style="dim")
        table.add_column("", width=3)
        table.add_column("Title")
        table.add_column("Due")
        table.add_column("Time", justify="right")
        table.add_column("Tag", style="magenta")
        for t in tasks:
            table.add_row(
                t.id[:8],
                "[green]x[/green]" if t.done else "",
                f"[strike]{t.title}[/strike]" if t.done else t.title,
                format_date(t.due) if t.due else "",
                format_duration(t.time_spent_seconds) if t.time_spent_seconds else "",
                TAG_LABELS[t.contemplation_tag] if t.contemplation_tag else "",
            )
        if not tasks:
            table.add_row("", "", "[dim]No tasks[/dim]", "", "", "")
        elog.console.print(table)


@main.command()
@click.argument("task")
@click.argument("quadrant", type=click.Choice(QUADRANT_CHOICES))
@click.pass_context
def move(ctx: click.Context, task: str, quadrant: str) -> None:
    """Move TASK (id, id prefix or title) to QUADRANT."""
    from eisenhower import log as elog

    _, store = _open_store(_cfg(ctx))
    found = _resolve(store, task)
    store.move(found.id, quadrant)
    store.flush()
    elog.success(f"{found.title!r} -> {quadrant}")


@main.command()
@click.argument("task")
@click.option("--undo", is_flag=True, help="Mark as not done")
@click.pass_context
def done(ctx: click.Context, task: str, undo: bool) -> None:
    """Mark TASK as done (or not done with --undo)."""
    from eisenhower import log as elog

    _, store = _open_store(_cfg(ctx))
    found = _resolve(store, task)
    store.update(found.id, done=not undo)
    store.flush()
    elog.success(f"{found.title!r} marked {'open' if undo else 'done'}")


@main.command()
@click.argument("task")
@click.option("--title", default=None, help="New title")
@click.option("--due", default=None, help="New deadline")
@click.option("--clear-due", is_flag=True, help="Remove the deadline")
@click.option("--tag", type=click.Choice(TAG_CHOICES), default=None, help="Energy / mood tag")
@click.option("--clear-tag", is_flag=True, help="Remove the tag")
@click.option("--time-spent", type=float, default=None, help="Overwrite tracked time (seconds)")
@click.pass_context
def edit(
    ctx: click.Context,
    task: str,
    title: str | None,
    due: str | None,
    clear_due: bool,
    tag: str | None,
    clear_tag: bool,
    time_spent: float | None,
) -> None:
    """Edit fields of TASK."""
    from eisenhower import log as elog
    from eisenhower.dates import parse_date

    if due and clear_due:
        raise click.UsageError("Use either --due or --clear-due, not both.")
    if tag and clear_tag:
        raise click.UsageError("Use either --tag or --clear-tag, not both.")
    if due and parse_date(due) is None:
        raise click.BadParameter(f"Unrecognised date {due!r}.", param_hint="--due")

    changes: dict = {}
    if title is not None:
        changes["title"] = title
    if due or clear_due:
        changes["due"] = None if clear_due else due
    if tag or clear_tag:
        changes["contemplation_tag"] = None if clear_tag else tag
    if time_spent is not None:
        changes["time_spent_seconds"] = time_spent
    if not changes:
        raise click.UsageError("Nothing to change.")

    _, store = _open_store(_cfg(ctx))
    found = _resolve(store, task)
    store.update(found.id, **changes)
    store.flush()
    elog.success(f"Updated {store.get(found.id).title!r}")


@main.command()
@click.argument("task")
@click.pass_context
def rm(ctx: click.Context, task: str) -> None:
    """Delete TASK."""
    from eisenhower import log as elog

    _, store = _open_store(_cfg(ctx))
    found = _resolve(store, task)
    store.delete(found.id)
    store.flush()
    elog.success(f"Deleted {found.title!r}")


@main.command()
@click.option(
    "-f", "--format", "fmt",
    type=click.Choice(("json", "markdown")),
    default="json",
    show_default=True,
)
@click.option("-o", "--output", default="", help="Write to this file instead of stdout")
@click.pass_context
def export(ctx: click.Context, fmt: str, output: str) -> None:
    """Export the board (JSON is re-importable without loss)."""
    from eisenhower import log as elog
    from eisenhower.export import create_export_payload, create_markdown

    _, store = _open_store(_cfg(ctx))
    if fmt == "json":
        text = json.dumps(create_export_payload(store.tasks), ensure_ascii=False, indent=2)
    else:
        text = create_markdown(store.tasks.values())

    if output:
        write_text(Path(output), text + "\n")
        elog.success(f"Exported {len(store.tasks)} task(s) to {output}")
    else:
        click.echo(text)


@main.command("clear-storage")
@click.confirmation_option(prompt="Delete all saved tasks?")
@click.pass_context
def clear_storage(ctx: click.Context) -> None:
    """Delete the saved task snapshot (e.g. after a failed load)."""
    from eisenhower import log as elog

    _, store = _open_store(_cfg(ctx))
    store.clear_corrupted_state()
    elog.success("Saved tasks cleared")


# ── Focus timer ──────────────────────────────────────────────────────


def _open_timer(cfg: Config):
    """Timer wired to persist its state and credit finished sessions to tasks."""
    from eisenhower.focus import new_sessions
    from eisenhower.storage import load_focus_state, save_focus_state
    from eisenhower.timer import FocusTimer

    kv, store = _open_store(cfg)

    def _persist(before, after) -> None:
        sessions = new_sessions(before, after)
        if sessions:
            store.apply_sessions(sessions)
        save_focus_state(kv, after)

    return store, FocusTimer(load_focus_state(kv), listeners=[_persist])


def _status_line(state, store) -> str:
    task = store.get(state.active_task_id) if state.active_task_id else None
    label = task.title if task else "no task"
    return (
        f"[bold]{state.mode.value}[/bold] {format_duration(state.remaining_seconds)} "
        f"({state.run_state.value}) - {label} - streak {state.streak}"
    )


@main.group()
def focus() -> None:
    """Focus timer: work on a task in timed intervals with breaks."""


def _dispatch(ctx: click.Context, event, message: str) -> None:
    from eisenhower import log as elog

    store, timer = _open_timer(_cfg(ctx))
    before = timer.state
    after = timer.dispatch(event)
    store.flush()
    if after is before:
        elog.warn(f"Nothing to do ({_status_line(after, store)})")
    else:
        elog.success(f"{message}: {_status_line(after, store)}")


@focus.command("start")
@click.argument("task")
@click.pass_context
def focus_start(ctx: click.Context, task: str) -> None:
    """Start a focus interval on TASK (then run ``eisenhower focus run``)."""
    from eisenhower.focus import Start

    _, store = _open_store(_cfg(ctx))
    found = _resolve(store, task)
    _dispatch(ctx, Start(found.id), "Started")


@focus.command("pause")
@click.pass_context
def focus_pause(ctx: click.Context) -> None:
    """Pause the running interval."""
    from eisenhower.focus import Pause

    _dispatch(ctx, Pause(), "Paused")


@focus.command("resume")
@click.pass_context
def focus_resume(ctx: click.Context) -> None:
    """Resume a paused interval."""
    from eisenhower.focus import Resume

    _dispatch(ctx, Resume(), "Resumed")


@focus.command("reset")
@click.pass_context
def focus_reset(ctx: click.Context) -> None:
    """Stop the session and clear the active task (statistics are kept)."""
    from eisenhower.focus import Reset

    _dispatch(ctx, Reset(), "Reset")


@focus.command("skip")
@click.pass_context
def focus_skip(ctx: click.Context) -> None:
    """Skip to the next interval without credit."""
    from eisenhower.focus import Skip

    _dispatch(ctx, Skip(), "Skipped")


@focus.command("clear-task")
@click.pass_context
def focus_clear_task(ctx: click.Context) -> None:
    """Detach the active task; the timer goes idle after the next break."""
    from eisenhower.focus import ClearTask

    _dispatch(ctx, ClearTask(), "Task cleared")


@focus.command("clear-stats")
@click.pass_context
def focus_clear_stats(ctx: click.Context) -> None:
    """Forget completed-interval statistics."""
    from eisenhower.focus import ClearStats

    _dispatch(ctx, ClearStats(), "Statistics cleared")


@focus.command("config")
@click.option("--focus-minutes", type=float, default=None)
@click.option("--short-break-minutes", type=float, default=None)
@click.option("--long-break-minutes", type=float, default=None)
@click.option("--long-break-every", type=int, default=None)
@click.option("--auto-transition/--no-auto-transition", default=None)
@click.option("--long-break/--no-long-break", "enable_long_break", default=None)
@click.pass_context
def focus_config(ctx: click.Context, **options) -> None:
    """Show or change interval lengths and toggles.

    Changes never alter an interval already in progress.
    """
    from eisenhower import log as elog
    from eisenhower.focus import UpdateConfig

    changes = {k: v for k, v in options.items() if v is not None}
    if changes:
        _dispatch(ctx, UpdateConfig(changes), "Config updated")
        return

    _, timer = _open_timer(_cfg(ctx))
    cfg = timer.state.config
    elog.console.print(f"focus:        {cfg.focus_minutes} min")
    elog.console.print(f"short break:  {cfg.short_break_minutes} min")
    elog.console.print(f"long break:   {cfg.long_break_minutes} min")
    elog.console.print(f"long every:   {cfg.long_break_every} interval(s)")
    elog.console.print(f"auto:         {'on' if cfg.auto_transition else 'off'}")
    elog.console.print(f"long breaks:  {'on' if cfg.enable_long_break else 'off'}")


@focus.command("status")
@click.pass_context
def focus_status(ctx: click.Context) -> None:
    """Show the timer and per-task statistics."""
    from eisenhower import log as elog

    store, timer = _open_timer(_cfg(ctx))
    state = timer.state
    elog.console.print(_status_line(state, store))

    stats = state.stats
    if not stats.completed_per_task:
        return
    table = Table(title="Completed focus intervals", title_justify="left")
    table.add_column("Task")
    table.add_column("Intervals", justify="right")
    table.add_column("Time spent", justify="right")
    for task_id, count in sorted(stats.completed_per_task.items(), key=lambda kv: -kv[1]):
        task = store.get(task_id)
        table.add_row(
            task.title if task else f"[dim]{task_id[:8]} (deleted)[/dim]",
            str(count),
            format_duration(task.time_spent_seconds) if task else "",
        )
    elog.console.print(table)


@focus.command("run")
@click.option("--max-ticks", type=int, default=None, help="Stop after N seconds")
@click.pass_context
def focus_run(ctx: click.Context, max_ticks: int | None) -> None:
    """Run the timer in the foreground until it pauses or stops (Ctrl-C pauses)."""
    from eisenhower import log as elog
    from eisenhower.notify import notify_interval_end

    cfg = _cfg(ctx)
    store, timer = _open_timer(cfg)
    if not timer.state.is_running:
        elog.warn(f"Timer is not running ({_status_line(timer.state, store)})")
        return

    def _announce(before, after) -> None:
        if before.mode is after.mode and before.active_task_id == after.active_task_id:
            return
        elog.info(f"{before.mode.value} -> {after.mode.value}")
        if cfg.notify:
            notify_interval_end(after.mode)

    timer.subscribe(_announce)
    try:
        with elog.console.status(_status_line(timer.state, store)) as status:
            timer.subscribe(lambda _before, after: status.update(_status_line(after, store)))
            ticks = timer.run(max_ticks=max_ticks)
    finally:
        store.flush()
    elog.debug(f"Ran {ticks} tick(s)")
    elog.console.print(_status_line(timer.state, store))
