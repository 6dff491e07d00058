"""Credential providers: where the explorer gets a username/password from."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from argus.models.explorer import Credentials

logger = logging.getLogger(__name__)


class CredentialProvider(Protocol):
    def request_credentials(self, login_url: str) -> Optional[Credentials]:
        """Return credentials for ``login_url``, or None to skip authentication."""
        ...


class StaticCredentialProvider:
    """Hands out pre-supplied credentials without any interaction."""

    def __init__(self, credentials: Optional[Credentials]):
        self.credentials = credentials

    def request_credentials(self, login_url: str) -> Optional[Credentials]:
        return self.credentials


class TerminalCredentialProvider:
    """Asks the operator for credentials on the terminal.

    Leaving either field empty declines authentication for the rest of the run.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def request_credentials(self, login_url: str) -> Optional[Credentials]:
        self.console.print(Panel(
            f"A login form was detected at [blue]{escape(login_url)}[/blue]\n"
            "Enter credentials to explore authenticated pages, "
            "or press Enter to skip.",
            title="Authentication required",
            border_style="yellow",
        ))

        username = click.prompt("Username", default="", show_default=False).strip()
        if not username:
            logger.info("Auth: no username entered, skipping authentication")
            return None

        password = click.prompt(
            "Password", default="", show_default=False, hide_input=True,
        )
        if not password:
            logger.info("Auth: no password entered, skipping authentication")
            return None

        return Credentials(username=username, password=password)
