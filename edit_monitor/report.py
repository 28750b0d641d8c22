"""Plain-text rendering of a StatsSnapshot for terminals and logs."""

from typing import List, Tuple

from .stats import StatsSnapshot, format_percentage, format_time_saved

WINDOW_TITLES = (
    ("today", "Today"),
    ("this_week", "This week"),
    ("this_month", "This month"),
)
BAR_WIDTH = 30


def _leaderboard(title: str, rows: List[Tuple[str, int]]) -> List[str]:
    lines = [title]
    if not rows:
        lines.append("  N/A")
    for name, count in rows:
        lines.append(f"  {name:<24} {count}")
    return lines


def render_summary(snapshot: StatsSnapshot) -> str:
    """One-line summary, used for periodic log output."""
    total = snapshot.windows["total"]
    return (
        f"{total.count} completions, {total.chars} chars, "
        f"{format_time_saved(total.time_saved_minutes)} saved, "
        f"ratio {format_percentage(snapshot.ratios['total'])}"
    )


def render_report(snapshot: StatsSnapshot) -> str:
    total = snapshot.windows["total"]
    lines = [
        "Auto-completion stats",
        f"  Total completions: {total.count}",
        f"  Time saved:        {format_time_saved(total.time_saved_minutes)}",
        f"  Completion ratio:  {format_percentage(snapshot.ratios['total'])}",
        "",
    ]
    for key, title in WINDOW_TITLES:
        window = snapshot.windows[key]
        lines.append(
            f"  {title:<11} {window.count:>6} completions  "
            f"{format_time_saved(window.time_saved_minutes):>8}  "
            f"{format_percentage(snapshot.ratios[key]):>5}"
        )
    lines.append("")
    lines.extend(_leaderboard("Top repositories", snapshot.top_repositories))
    lines.append("")
    lines.extend(_leaderboard("Top languages", snapshot.top_languages))
    lines.append("")
    lines.extend(render_chart(snapshot))
    return "\n".join(lines)


def render_chart(snapshot: StatsSnapshot) -> List[str]:
    """Hourly bars: '#' for auto-completion chars, '.' for hand-written."""
    lines = ["Hourly activity (# auto-completion, . hand-written)"]
    peak = max(
        (p.auto_completion_chars + p.hand_written_chars for p in snapshot.hourly),
        default=0,
    )
    for point in snapshot.hourly:
        if peak:
            auto = round(point.auto_completion_chars * BAR_WIDTH / peak)
            hand = round(point.hand_written_chars * BAR_WIDTH / peak)
        else:
            auto = hand = 0
        lines.append(f"  {point.label:>5} {'#' * auto}{'.' * hand}")
    return lines
