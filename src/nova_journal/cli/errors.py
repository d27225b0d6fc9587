"""Rich error messages for the nova CLI.

Every message says what went wrong and the exact action that fixes it.

Usage:
    from nova_journal.cli.errors import err_not_configured
    console.print(err_not_configured(exc, "OPENAI_API_KEY"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from pathlib import Path


def err_config(exc: Exception) -> str:
    """Config file could not be loaded."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {exc}\n"
        "  Fix the file above (nova.yaml in the vault, or ~/.nova-journal/config.yaml)."
    )


def err_not_configured(exc: Exception, env_var: str) -> str:
    """AI disabled or API key missing/malformed.

    Example:
        Error: API key not found. Set the OPENAI_API_KEY environment variable.
          Set:  export OPENAI_API_KEY=sk-...
    """
    return (
        f"[red]Error:[/] {exc}\n"
        f"  Set:  export {env_var}=sk-...\n"
        "  If AI is disabled, set ai.enabled: true in nova.yaml."
    )


def err_no_journal_folder(path: Path) -> str:
    return (
        f"[red]Error:[/] Journal folder not found: '{path}'.\n"
        "  Set index.folder in nova.yaml or export NOVA_JOURNAL_FOLDER=<folder>."
    )


def err_provider(exc: Exception) -> str:
    """Embedding/completion provider failure."""
    return (
        f"[red]Error:[/] AI provider request failed.\n"
        f"  {exc}\n"
        "  Check your network connection and model name, then retry."
    )


def warn_no_index() -> str:
    return (
        "[yellow]No index yet.[/]\n"
        "  Run:  nova index update"
    )


def warn_update_skipped(reason: str) -> str:
    return (
        f"[yellow]Index update skipped:[/] {reason}\n"
        "  Retry once the running update has finished."
    )


def warn_no_results(query: str) -> str:
    return (
        f"[yellow]No matching journal entries for[/] '{query}'.\n"
        "  Try a broader query, or run:  nova index update"
    )
