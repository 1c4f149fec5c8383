"""TokenForge console theme and panels."""

from __future__ import annotations

from typing import Any, Mapping

from rich import box
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from tokenforge.core.logs import LogEntry

TOKENFORGE_THEME = Theme(
    {
        "tokenforge.title": "bold #9945FF",
        "tokenforge.key": "bold #14F195",
        "tokenforge.value": "#E6FFFA",

        # Semantic States
        "tokenforge.info.border": "#38BDF8",
        "tokenforge.info.text": "#E6FFFA",
        "tokenforge.info.header": "bold #38BDF8",

        "tokenforge.success.border": "#14F195",
        "tokenforge.success.text": "#E6FFFA",
        "tokenforge.success.header": "bold #14F195",

        "tokenforge.warning.border": "#FBBF24",
        "tokenforge.warning.text": "#FEF3C7",
        "tokenforge.warning.header": "bold #FBBF24",

        "tokenforge.error.border": "#FB7185",
        "tokenforge.error.text": "#FEE2E2",
        "tokenforge.error.header": "bold #FB7185",

        # Pipeline events
        "tokenforge.stage": "#94A3B8",
        "tokenforge.log.info": "#38BDF8",
        "tokenforge.log.warning": "#FBBF24",
        "tokenforge.log.error": "#FB7185",
    }
)

_PANEL_STYLES: dict[str, dict[str, str]] = {
    "info": {"icon": "ℹ", "default_title": "Info"},
    "success": {"icon": "✓", "default_title": "Success"},
    "warning": {"icon": "⚠", "default_title": "Warning"},
    "error": {"icon": "✗", "default_title": "Error"},
}


def themed_console(**kwargs: object) -> Console:
    """Return a Console configured with the TokenForge theme."""
    return Console(theme=TOKENFORGE_THEME, **kwargs)


def create_semantic_panel(
    message: str,
    *,
    panel_type: str = "info",
    title: str | None = None,
) -> Panel:
    """Create a panel for an info, success, warning, or error message."""
    if panel_type not in _PANEL_STYLES:
        panel_type = "info"
    style = _PANEL_STYLES[panel_type]
    header = f"{style['icon']} {title or style['default_title']}"
    return Panel(
        Text(message, style=f"tokenforge.{panel_type}.text"),
        title=f"[tokenforge.{panel_type}.header]{header}[/]",
        title_align="left",
        border_style=f"tokenforge.{panel_type}.border",
        box=box.ROUNDED,
        padding=(1, 2),
        expand=False,
    )


def create_result_panel(result: Mapping[str, Any], *, network: str) -> Panel:
    """Summarize a launched token: addresses, signature and read-back state."""
    table = Table(show_header=False, box=None, padding=(0, 1), expand=False)
    table.add_column("Field", style="tokenforge.key")
    table.add_column("Value", style="tokenforge.value", overflow="fold")
    table.add_row("Network", network)
    table.add_row("Mint", str(result.get("mintAddress")))
    table.add_row("Token account", str(result.get("associatedTokenAddress")))
    table.add_row("Signature", str(result.get("signature")))
    table.add_row("Metadata URI", str(result.get("metadataUri")))

    metadata = result.get("metadata") or {}
    if metadata:
        table.add_row("Name", str(metadata.get("name", "")))
        table.add_row("Symbol", str(metadata.get("symbol", "")))
        for key, value in metadata.get("additionalMetadata", []):
            table.add_row(key.title(), value)

    parts: list[Any] = [table]
    read_back_error = result.get("readBackError")
    if read_back_error:
        parts.append(Text(""))
        parts.append(Text(f"Read-back failed: {read_back_error}", style="tokenforge.warning.text"))

    return Panel(
        Group(*parts),
        title="[tokenforge.success.header]✓ Token launched[/]",
        title_align="left",
        border_style="tokenforge.success.border",
        box=box.ROUNDED,
        padding=(1, 2),
        expand=False,
    )


def format_log_entry(entry: LogEntry) -> Text:
    text = Text()
    text.append(f"[{entry.stage or entry.category}] ", style="tokenforge.stage")
    text.append(entry.message, style=f"tokenforge.log.{entry.severity}")
    return text


__all__ = [
    "TOKENFORGE_THEME",
    "create_result_panel",
    "create_semantic_panel",
    "format_log_entry",
    "themed_console",
]
