"""CLI entry point for imagetrace."""

from __future__ import annotations

import functools
import logging
import random
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from imagetrace.models import GROUP_MODES, DISPLAY_MODES, SORT_FIELDS, SORT_ORDERS

console = Console()


@click.group()
@click.version_option(package_name="imagetrace-cli")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show debug logging.")
def cli(verbose: bool):
    """imagetrace - Find where an image appears on the web."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def filter_options(f):
    """Shared filter, sort and display options."""
    options = [
        click.option("--sort", "sort_by", type=click.Choice(SORT_FIELDS), default=None,
                     help="Sort field (default: confidence)."),
        click.option("--order", "sort_order", type=click.Choice(SORT_ORDERS), default=None,
                     help="Sort order (default: desc)."),
        click.option("--min-confidence", "-m", type=int, default=None,
                     help="Minimum confidence in percent, 0-100 (default: 65)."),
        click.option("--show-spam", is_flag=True, default=False,
                     help="Include pages flagged as likely spam."),
        click.option("--group-by", type=click.Choice(GROUP_MODES), default=None,
                     help="Group listings by domain or page type (default: domain)."),
        click.option("--display", "display_mode", type=click.Choice(DISPLAY_MODES), default=None,
                     help="Listing style (default: list)."),
        click.option("--no-similar", is_flag=True, default=False,
                     help="Only use the exact and partial tiers."),
        click.option("--seed", type=int, default=None,
                     help="Seed for backfilled discovery dates."),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _session(result, *, sort_by, sort_order, min_confidence, show_spam, group_by,
             display_mode, no_similar, seed):
    from imagetrace.categorize import DEFAULT_THRESHOLDS, TWO_TIER_THRESHOLDS
    from imagetrace.session import ResultsSession

    session = ResultsSession(
        result,
        thresholds=TWO_TIER_THRESHOLDS if no_similar else DEFAULT_THRESHOLDS,
        rng=random.Random(seed),
    )
    changes = {
        "sort_by": sort_by,
        "sort_order": sort_order,
        "min_confidence": min_confidence,
        "group_by": group_by,
        "display_mode": display_mode,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if show_spam:
        changes["show_spam"] = True
    if changes:
        session.change_options(**changes)
    return session


def _more_prompt(show_all: bool):
    if show_all:
        return lambda hidden: True
    if not sys.stdin.isatty():
        return None

    def ask(hidden: int) -> bool:
        try:
            return click.confirm(f"Show more? ({hidden} hidden)", default=False)
        except (EOFError, click.Abort):
            return False

    return ask


def _render_report(session, *, page_size: Optional[int], show_all: bool,
                   csv_path: Optional[Path]) -> None:
    from imagetrace import renderer
    from imagetrace.config import get_page_size
    from imagetrace.storage import load_state

    state = load_state()
    renderer.render_entities(session.processed.web_entities)
    renderer.render_dashboard(session.dashboard, session.counts)
    renderer.render_results(
        session.filtered,
        session.options,
        page_size=page_size or get_page_size(),
        state=state,
        more=_more_prompt(show_all),
    )
    if csv_path is not None:
        _write_csv(session, csv_path, state=state, include_status=False)


def _write_csv(session, path: Path, *, state, include_status: bool) -> None:
    from imagetrace.export import to_csv

    path.write_text(to_csv(session.filtered, now=session.now, state=state,
                           include_status=include_status))
    console.print(f"Exported {session.counts.total} rows to {path}")


def report_options(f):
    f = click.option("--csv", "csv_path", type=click.Path(dir_okay=False, path_type=Path),
                     default=None, help="Also write the filtered results as CSV.")(f)
    f = click.option("--all", "show_all", is_flag=True, default=False,
                     help="Show every result without paging.")(f)
    f = click.option("--page-size", "-n", type=click.IntRange(min=1), default=None,
                     help="Results per page (default: IMAGETRACE_PAGE_SIZE or 10).")(f)
    return f


def handle_errors(f):
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")
            raise SystemExit(1)

    return wrapper


# ---------------------------------------------------------------------------
# imagetrace analyze / report / export
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("image")
@filter_options
@report_options
@click.option("--save", "save_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Save the raw results as JSON for `imagetrace report`.")
@handle_errors
def analyze(image: str, save_path: Optional[Path], page_size, show_all, csv_path, **filters):
    """Search the web for an image.

    IMAGE: an image URL (http/https) or a local file path
    """
    from imagetrace.backends.vision import analyze_image
    from imagetrace.storage import record_search

    with console.status("Analyzing image..."):
        result = analyze_image(image)
    record_search(image, result.total)

    if save_path is not None:
        result.save(save_path)
        console.print(f"Saved raw results to {save_path}", style="dim")

    session = _session(result, **filters)
    _render_report(session, page_size=page_size, show_all=show_all, csv_path=csv_path)


@cli.command()
@click.argument("result_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@filter_options
@report_options
@handle_errors
def report(result_file: Path, page_size, show_all, csv_path, **filters):
    """Show the dashboard for previously saved results.

    RESULT_FILE: JSON written by `imagetrace analyze --save`
    """
    from imagetrace.models import MatchResult

    session = _session(MatchResult.load(result_file), **filters)
    _render_report(session, page_size=page_size, show_all=show_all, csv_path=csv_path)


@cli.command()
@click.argument("result_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@filter_options
@click.option("--out", "-o", "out_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Output file (default: image-matches-YYYY-MM-DD.csv).")
@click.option("--with-status", is_flag=True, default=False,
              help="Add Reviewed and Saved columns.")
@handle_errors
def export(result_file: Path, out_path: Optional[Path], with_status: bool, **filters):
    """Export saved results as CSV.

    RESULT_FILE: JSON written by `imagetrace analyze --save`
    """
    from imagetrace.export import default_export_name
    from imagetrace.models import MatchResult
    from imagetrace.storage import load_state

    session = _session(MatchResult.load(result_file), **filters)
    out_path = out_path or Path(default_export_name(session.now))
    _write_csv(session, out_path, state=load_state(), include_status=with_status)


# ---------------------------------------------------------------------------
# imagetrace mark / stats
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("url")
@click.option("--reviewed/--not-reviewed", default=None, help="Mark as reviewed (or not).")
@click.option("--saved/--not-saved", default=None, help="Mark as saved (or not).")
def mark(url: str, reviewed: Optional[bool], saved: Optional[bool]):
    """Mark a result URL as reviewed or saved.

    URL: the match or page URL as shown in the listing
    """
    from imagetrace.storage import load_state, save_state

    if reviewed is None and saved is None:
        reviewed = True

    state = load_state()
    for flag, items in ((reviewed, state.reviewed), (saved, state.saved)):
        if flag is True:
            items.add(url)
        elif flag is False:
            items.discard(url)
    save_state(state)

    status = []
    if state.is_reviewed(url):
        status.append("reviewed")
    if state.is_saved(url):
        status.append("saved")
    console.print(f"{url}: {', '.join(status) or 'unmarked'}", markup=False)


@cli.command()
def stats():
    """Show local search statistics."""
    from imagetrace.renderer import render_search_stats
    from imagetrace.storage import get_search_stats

    render_search_stats(get_search_stats())


# ---------------------------------------------------------------------------
# imagetrace env
# ---------------------------------------------------------------------------


@cli.group(invoke_without_command=True)
@click.pass_context
def env(ctx):
    """Show or configure settings.

    Run without arguments to see current status.
    Use `imagetrace env set KEY value` to save a key to ~/.imagetrace/.env.
    """
    if ctx.invoked_subcommand is not None:
        return

    from imagetrace.config import PERSISTENT_ENV, check_env

    statuses = check_env()
    console.print("Settings:")
    console.print()
    for var, is_set, info in statuses:
        status = "[green]set[/green]" if is_set else "[red]not set[/red]"
        console.print(f"  {var}: {status}")
        console.print(f"    {info['description']}")
        console.print(f"    Used by: {', '.join(info['required_by'])}", style="dim")
        console.print()

    console.print(f"Config file: {PERSISTENT_ENV}", style="dim")

    if not all(is_set for _, is_set, _ in statuses):
        console.print(
            "Tip: Run `imagetrace env set KEY value` to save a key persistently.",
            style="dim",
        )


@env.command("set")
@click.argument("key")
@click.argument("value")
def env_set(key: str, value: str):
    """Save a setting to ~/.imagetrace/.env.

    KEY: one of GOOGLE_VISION_API_KEY, IMAGETRACE_PAGE_SIZE
    VALUE: the value to store
    """
    from imagetrace.config import VALID_KEYS, save_key

    key = key.upper()
    if key not in VALID_KEYS:
        console.print(f"[red]Unknown key: {key}[/red]")
        console.print(f"Valid keys: {', '.join(sorted(VALID_KEYS))}")
        raise SystemExit(1)

    path = save_key(key, value)
    console.print(f"Saved {key} to {path}")
