"""Rich terminal renderer for the match dashboard and result listings."""

from __future__ import annotations

from typing import Callable, Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from imagetrace.categorize import page_bucket
from imagetrace.domains import get_website_name, group_by_domain
from imagetrace.models import DashboardData, FilteredData, FilterOptions, MatchCounts
from imagetrace.pagination import ProximityLoader, RevealWindow
from imagetrace.spam import is_suspicious_link
from imagetrace.storage import SessionState

console = Console()

# (attribute on FilteredData, heading, reference-id prefix)
IMAGE_SECTIONS = (
    ("exact_matches", "Exact Matches", "e"),
    ("partial_matches", "Partial Matches", "p"),
    ("similar_matches", "Similar Matches", "s"),
)

PAGE_TYPE_LABELS = {
    "product": "Product Pages",
    "category": "Category Pages",
    "search": "Search Pages",
    "other": "Other Pages",
}

TYPE_STYLES = {
    "marketplace": "yellow",
    "social": "magenta",
    "ecommerce": "green",
    "other": "dim",
}


def _pct(score: float) -> str:
    return f"{score * 100:.1f}%"


def _score_style(score: float) -> str:
    if score >= 0.9:
        return "bold red"
    if score >= 0.8:
        return "yellow"
    return "cyan"


def _markers(match, state: Optional[SessionState]) -> list[tuple[str, str]]:
    marks = []
    if match.kind == "page" and match.is_spam:
        marks.append(("spam", "bold red"))
    if match.kind == "image" and is_suspicious_link(match.url, match.score):
        marks.append(("suspicious", "red"))
    if match.kind == "image" and match.cdn:
        marks.append((match.cdn, "dim"))
    if state is not None:
        if state.is_reviewed(match.url):
            marks.append(("reviewed", "green"))
        if state.is_saved(match.url):
            marks.append(("saved", "bold green"))
    return marks


def render_dashboard(dashboard: DashboardData, counts: MatchCounts) -> None:
    """Render the summary statistics and the top-domains table."""
    if dashboard.total_matches == 0:
        console.print("[yellow]No matches found.[/yellow]")
        return

    header = Text()
    header.append(f"{dashboard.total_matches} matches", style="bold")
    header.append(f" across {dashboard.domains_count} domains", style="bold")
    header.append(f" (highest confidence {_pct(dashboard.highest_confidence)})")
    console.print(header)

    parts = [f"exact {counts.exact}", f"partial {counts.partial}"]
    if counts.similar:
        parts.append(f"similar {counts.similar}")
    parts.append(f"pages {counts.pages}")
    console.print("  " + " | ".join(parts), style="dim")
    console.print(
        f"  marketplaces {dashboard.marketplaces_count}"
        f" | social {dashboard.social_media_count}"
        f" | e-commerce {dashboard.ecommerce_count}",
        style="dim",
    )
    if counts.spam_pages:
        console.print(f"  {counts.spam_pages} page(s) flagged as likely spam", style="dim")
    console.print()

    if dashboard.top_domains:
        table = Table(title="Top Domains", title_justify="left")
        table.add_column("Domain")
        table.add_column("Matches", justify="right")
        table.add_column("Type")
        for stat in dashboard.top_domains:
            table.add_row(
                stat.domain,
                str(stat.count),
                Text(stat.type, style=TYPE_STYLES.get(stat.type, "")),
            )
        console.print(table)
        console.print()


def _print_line(ref: str, match, state: Optional[SessionState]) -> None:
    line = Text()
    line.append(f"[{ref}] ", style="bold cyan")
    line.append(get_website_name(match.url, match.platform), style="bold")
    line.append(f"  {_pct(match.score)}", style=_score_style(match.score))
    if match.date_found is not None:
        line.append(f"  {match.date_found:%Y-%m-%d}", style="dim")
    for label, style in _markers(match, state):
        line.append(f"  [{label}]", style=style)
    console.print(line)
    console.print(f"     {match.url}", style="dim", markup=False)
    if match.kind == "page" and match.page_title:
        console.print(f"     {match.page_title[:200]}", markup=False)


def _print_table(refs: Sequence[str], items: Sequence, state: Optional[SessionState],
                 detailed: bool) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Ref", style="cyan")
    table.add_column("Site")
    table.add_column("Confidence", justify="right")
    if detailed:
        table.add_column("Found")
        table.add_column("Flags")
    table.add_column("URL", overflow="fold")
    for ref, match in zip(refs, items):
        row = [ref, get_website_name(match.url, match.platform),
               Text(_pct(match.score), style=_score_style(match.score))]
        if detailed:
            row.append(f"{match.date_found:%Y-%m-%d}" if match.date_found else "")
            row.append(", ".join(label for label, _ in _markers(match, state)))
        row.append(match.url)
        table.add_row(*row)
    console.print(table)


def _print_items(prefix: str, start: int, items: Sequence, options: FilterOptions,
                 state: Optional[SessionState]) -> None:
    refs = [f"{prefix}{i}" for i in range(start, start + len(items))]
    if options.display_mode in ("grid", "improved"):
        _print_table(refs, items, state, detailed=options.display_mode == "improved")
    else:
        for ref, match in zip(refs, items):
            _print_line(ref, match, state)


def _print_batch(prefix: str, start: int, items: Sequence, options: FilterOptions,
                 state: Optional[SessionState]) -> None:
    if options.group_by == "domain":
        index = start
        for group in group_by_domain(items):
            label = group.domain
            if group.platform:
                label += f" ({group.platform})"
            console.print(f"  {label} [{len(group.items)}]", style="bold", markup=False)
            _print_items(prefix, index, group.items, options, state)
            index += len(group.items)
    elif options.group_by == "type" and items and items[0].kind == "page":
        index = start
        for bucket, label in PAGE_TYPE_LABELS.items():
            grouped = [p for p in items if page_bucket(p) == bucket]
            if grouped:
                console.print(f"  {label} [{len(grouped)}]", style="bold")
                _print_items(prefix, index, grouped, options, state)
                index += len(grouped)
    else:
        _print_items(prefix, start, items, options, state)


def render_section(
    heading: str,
    items: Sequence,
    options: FilterOptions,
    *,
    prefix: str,
    page_size: int = 10,
    state: Optional[SessionState] = None,
    more: Optional[Callable[[int], bool]] = None,
) -> RevealWindow:
    """Render one bucket a page at a time.

    ``more`` is asked (with the number of hidden items) whether to reveal the
    next page; without it only the first page is shown.
    """
    window: RevealWindow = RevealWindow(page_size)
    window.reset(items)
    console.print(f"{heading} ({len(items)})", style="bold underline")
    if not items:
        console.print("  none", style="dim")
        console.print()
        return window

    _print_batch(prefix, 1, window.visible, options, state)
    loader = ProximityLoader(window)
    while window.has_more and more is not None:
        if not more(window.total - len(window.visible)):
            break
        start = len(window.visible) + 1
        _print_batch(prefix, start, loader.signal(), options, state)

    if window.has_more:
        console.print(
            f"  showing {len(window.visible)} of {window.total}", style="dim italic"
        )
    console.print()
    return window


def render_results(
    filtered: FilteredData,
    options: FilterOptions,
    *,
    page_size: int = 10,
    state: Optional[SessionState] = None,
    more: Optional[Callable[[int], bool]] = None,
) -> None:
    """Render every image tier followed by the page listing."""
    for attr, heading, prefix in IMAGE_SECTIONS:
        items = getattr(filtered, attr)
        if attr == "similar_matches" and not items:
            continue
        render_section(heading, items, options, prefix=prefix,
                       page_size=page_size, state=state, more=more)
    render_section("Web Pages", filtered.all_pages, options, prefix="w",
                   page_size=page_size, state=state, more=more)


def render_search_stats(stats: dict) -> None:
    console.print(f"Total searches: {stats['total_searches']}", style="bold")
    console.print(f"Searches with results: {stats['searches_with_results']}")
    console.print(f"Average results per search: {stats['average_results']:.1f}")
    for source, count in sorted(stats["searches_by_type"].items()):
        console.print(f"  {source}: {count}", style="dim")


def render_entities(entities) -> None:
    if not entities:
        return
    labels = ", ".join(e.description for e in entities[:10])
    console.print(f"Detected: {labels}", style="italic")
    console.print()
