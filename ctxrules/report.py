"""Human-readable explanation of a resolved rule list."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from .models import Provenance, ResolvedRuleList

_PROVENANCE_STYLE = {
    Provenance.DIRECT: "green",
    Provenance.REQUIRED: "cyan",
    Provenance.OPTIONAL: "dim",
}


def build_table(result: ResolvedRuleList) -> Table:
    scope = result.scope.value if result.scope else "unscoped"
    title = f"Rules for {scope}" + (" (cached)" if result.from_cache else "")
    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Rule", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Why")
    table.add_column("Sources")
    table.add_column("Required by", style="dim")

    for i, entry in enumerate(result.entries, 1):
        style = _PROVENANCE_STYLE.get(entry.provenance, "")
        table.add_row(
            str(i),
            entry.rule_id,
            str(entry.score),
            f"[{style}]{entry.provenance.value}[/]" if style else entry.provenance.value,
            ", ".join(sorted(s.value for s in entry.sources)) or "-",
            ", ".join(entry.required_by) or "-",
        )
    return table


def render_resolved(result: ResolvedRuleList, console: Console | None = None) -> None:
    """Print why each rule was chosen, plus the limit warning if any."""
    console = console or Console(stderr=True)

    if not result.entries:
        console.print("No rules matched.", style="dim")
    else:
        console.print(build_table(result))

    if result.warning is not None:
        console.print(f"[yellow]⚠ {result.warning}[/]")
