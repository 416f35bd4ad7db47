from __future__ import annotations

from rich.console import Console
from rich.markup import escape

console = Console()
err_console = Console(stderr=True)


def out(text: str) -> None:
    """Write ``text`` verbatim on stdout: no markup, wrapping or highlighting."""
    console.out(text, highlight=False)


def err(msg: str) -> None:
    err_console.print(f"[bold red]ERR[/] {escape(msg)}", soft_wrap=True)
