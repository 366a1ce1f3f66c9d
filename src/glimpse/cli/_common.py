"""Helpers shared by CLI commands: config loading and running coroutines."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from pathlib import Path
from typing import TypeVar

import typer
from rich.console import Console

from glimpse.cli.errors import err_config, err_timeout
from glimpse.config import GlimpseConfig, load_config
from glimpse.errors import ConfigError

T = TypeVar("T")


def load_cli_config(console: Console, db: Path | None = None) -> GlimpseConfig:
    """Load config, apply the ``--db`` flag, and exit 1 on ConfigError."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)
    if db is not None:
        cfg.storage.db_path = str(db)
    return cfg


def run_with_timeout(console: Console, coro: Awaitable[T], timeout: float | None) -> T:
    """Run *coro* to completion, enforcing *timeout* seconds if given."""
    try:
        if timeout:
            return asyncio.run(asyncio.wait_for(coro, timeout))
        return asyncio.run(coro)
    except (asyncio.TimeoutError, TimeoutError):
        console.print(err_timeout(timeout or 0))
        raise typer.Exit(1)
