"""
Glue between the synchronous typer commands and the asyncio controller.
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterable

import typer

from market_mind.config import load_settings
from market_mind.controller import Controller
from market_mind.utils.logging import configure_logging, console


def build_controller() -> Controller:
    settings = load_settings()
    configure_logging(settings.log_level)
    return Controller.from_settings(settings)


def run_operations(controller: Controller, launch: Callable[[Controller], Any], status: str = "Working...") -> None:
    """Start the controller loop, launch operations and block until every one settles."""

    async def _go() -> None:
        controller.start()
        try:
            launch(controller)
            with console.status(status):
                await controller.wait_idle()
        finally:
            await controller.stop()

    asyncio.run(_go())


def resolve_id(ids: Iterable[str], prefix: str, what: str) -> str:
    """Match a full id from the short prefix shown in the tables."""
    p = (prefix or "").strip().lower()
    matches = [i for i in ids if i.lower().startswith(p)] if p else []
    if not matches:
        raise typer.BadParameter(f"No {what} matches id {prefix!r}")
    if len(matches) > 1:
        raise typer.BadParameter(f"Id {prefix!r} is ambiguous ({len(matches)} {what}s match)")
    return matches[0]
