"""Shared CLI plumbing: store, actor resolution, error reporting."""
import sys
from dataclasses import dataclass
from decimal import Decimal
from functools import wraps
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from db.store import Store
from errors import PracticeError, ProfileNotFound
from tenant import TenantContext, resolve_tenant

console = Console()


@dataclass
class CLIState:
    store: Store
    user_id: Optional[str]
    _context: Optional[TenantContext] = None

    def tenant(self) -> TenantContext:
        if self._context is None:
            self._context = resolve_tenant(self.store, self.user_id)
        return self._context


pass_state = click.make_pass_decorator(CLIState)


def reports_errors(func):
    """Turn PracticeError into a red message and exit status 1."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ProfileNotFound as e:
            console.print(f"[yellow]{escape(str(e))}[/yellow]")
            console.print("Run [bold]lawfirm onboard FIRM_NAME YOUR_NAME[/bold] to set up your firm.")
            sys.exit(1)
        except PracticeError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            sys.exit(1)
    return wrapper


def money(value: Optional[Decimal]) -> str:
    if value is None:
        return "-"
    return f"${value:,.2f}"
