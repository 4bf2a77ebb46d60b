"""
Configuration Management Commands

View and change the shellask config file.
This module is lazy-loaded only when config commands are used.
Heavy dependencies (Rich) are isolated here to avoid runtime overhead.
"""

import os
import shlex
import subprocess
from typing import Optional

from rich.console import Console
from rich.table import Table

from shellask.core.configs import (
    API_KEY_NAME,
    DEFAULT_CHARS_PER_TOKEN,
    DEFAULT_EDITOR,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    build_sources,
    get_config_path,
    resolve,
    update_config,
)

console = Console()

CONFIG_TEMPLATE = f"""[DEFAULT]
llm_model = {DEFAULT_MODEL}
max_tokens = {DEFAULT_MAX_TOKENS}
chars_per_token = {DEFAULT_CHARS_PER_TOKEN}
editor = {DEFAULT_EDITOR}

[API_KEYS]
{API_KEY_NAME} = your_key_here
"""


def mask_secret(value: str) -> str:
    """Show only the ends of a secret."""
    if len(value) > 8:
        return f"{value[:4]}...{value[-4:]}"
    return "***"


def show_config() -> None:
    """Display the effective configuration and where each value comes from."""
    config_path = get_config_path()
    sources = build_sources()

    table = Table(title="shellask Configuration", show_header=True)
    table.add_column("Setting", style="cyan", width=20)
    table.add_column("Value", style="green")
    table.add_column("Source", style="dim")

    for key in ("model", "max_tokens", "chars_per_token", "editor", "api_key"):
        value, source = resolve(key, sources)
        if value is None:
            table.add_row(key, "[dim]not set[/dim]", "")
            continue
        if key == "api_key":
            value = mask_secret(value)
        table.add_row(key, value, source or "")

    console.print(table)
    console.print(f"\n[dim]Config file: {config_path}[/dim]")


def edit_config() -> None:
    """Open config file in user's default editor."""
    config_path = get_config_path()

    if not config_path.exists():
        console.print("[yellow]No configuration found. Creating template...[/yellow]")
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(CONFIG_TEMPLATE)
        os.chmod(config_path, 0o600)

    editor, _ = resolve("editor", build_sources())
    editor = editor or DEFAULT_EDITOR

    try:
        console.print(f"[dim]Opening {config_path} with {editor}...[/dim]")
        subprocess.run(shlex.split(editor) + [str(config_path)], check=True)
        console.print("[green]✓ Config file updated[/green]")
    except subprocess.CalledProcessError:
        console.print(f"[red]Failed to open editor: {editor}[/red]")
        console.print(f"Edit manually: {config_path}")
    except FileNotFoundError:
        console.print(f"[red]Editor not found: {editor}[/red]")
        console.print(f"Set EDITOR environment variable or edit manually: {config_path}")


def set_api_key(key: str) -> None:
    path = update_config(API_KEY_NAME, key.strip())
    console.print(f"[green]✓ API key saved to {path}[/green]")


def set_model(model: str) -> None:
    path = update_config("llm_model", model.strip())
    console.print(f"[green]✓ Default model set to {model.strip()} ({path})[/green]")


def parse_positive_int(raw: str) -> Optional[int]:
    """Return the value as a positive int, or None if it is not one."""
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if value > 0 else None


def set_max_tokens(raw: str) -> bool:
    """
    Store the token budget.

    Returns:
        False if `raw` is not a positive integer (nothing is written)
    """
    value = parse_positive_int(raw)
    if value is None:
        console.print(f"[red]Invalid max tokens value: {raw!r} (expected a positive integer)[/red]")
        return False

    path = update_config("max_tokens", str(value))
    console.print(f"[green]✓ Max tokens set to {value} ({path})[/green]")
    return True
