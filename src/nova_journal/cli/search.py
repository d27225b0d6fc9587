"""nova search / context / ask: query the journal index.

  nova search QUERY [--mode contextual|emotional|temporal|thematic] [-k N]
  nova context TEXT [--line N]      print the assembled RAG context
  nova ask TEXT                     answer TEXT with journal context via the completion model
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from nova_journal.cli.errors import err_not_configured, err_provider, warn_no_index, warn_no_results
from nova_journal.cli.runtime import DbOpt, DebugOpt, Runtime, VaultOpt, console, open_runtime
from nova_journal.errors import NotConfiguredError, ProviderError
from nova_journal.index.models import Mood, SearchResult
from nova_journal.index.notes import read_frontmatter
from nova_journal.rag.llm_client import complete

_SYSTEM_PROMPT = (
    "You are {name}, a thoughtful journaling companion. Answer the user's entry "
    "in a warm, concise way. When the journal excerpts below are relevant, refer "
    "to them naturally; never invent past entries.\n\n"
    "Journal excerpts (most relevant first, [age] = how long ago):\n{context}"
)


class SearchMode(str, enum.Enum):
    contextual = "contextual"
    emotional = "emotional"
    temporal = "temporal"
    thematic = "thematic"


def search_cmd(
    query: Annotated[str, typer.Argument(help="Search text.")],
    mode: Annotated[
        SearchMode,
        typer.Option("--mode", "-m", help="Search preset."),
    ] = SearchMode.contextual,
    k: Annotated[int, typer.Option("-k", help="Maximum number of results.")] = 5,
    emotion: Annotated[
        list[str] | None,
        typer.Option("--emotion", help="Dominant emotion for --mode emotional (repeatable)."),
    ] = None,
    sentiment: Annotated[
        str | None,
        typer.Option("--sentiment", help="Mood sentiment for --mode emotional (positive/neutral/negative)."),
    ] = None,
    frame: Annotated[
        str,
        typer.Option("--frame", help="Time frame for --mode temporal (recent/week/month)."),
    ] = "week",
    theme: Annotated[
        list[str] | None,
        typer.Option("--theme", help="Theme for --mode thematic (repeatable)."),
    ] = None,
    note: Annotated[
        Path | None,
        typer.Option(
            "--note",
            help="Note whose frontmatter mood (sentiment, dominant_emotions) seeds --mode emotional.",
        ),
    ] = None,
    vault: VaultOpt = Path("."),
    db: DbOpt = None,
    debug: DebugOpt = False,
) -> None:
    """Search journal entries and show ranked passages."""
    with open_runtime(vault, db, debug) as rt:
        _require_index(rt)
        engine = rt.engine
        if mode is SearchMode.emotional:
            mood = _mood(note, emotion, sentiment)
            results = engine.emotional_search(query, mood, k)
        elif mode is SearchMode.temporal:
            if frame not in rt.cfg.search.time_frames:
                frames = ", ".join(sorted(rt.cfg.search.time_frames))
                console.print(f"[red]Error:[/] Unknown --frame '{frame}'. Use one of: {frames}")
                raise typer.Exit(1)
            results = engine.temporal_search(query, frame, k)
        elif mode is SearchMode.thematic:
            results = engine.thematic_search(query, theme or (), k)
        else:
            results = engine.contextual_search(query, k)

    if not results:
        console.print(warn_no_results(query))
        return
    _print_results(results)


def context_cmd(
    text: Annotated[str, typer.Argument(help="Conversation text (may include assistant turns).")],
    line: Annotated[
        int | None,
        typer.Option("--line", "-l", help="1-based line of TEXT to use as the query."),
    ] = None,
    vault: VaultOpt = Path("."),
    db: DbOpt = None,
    debug: DebugOpt = False,
) -> None:
    """Print the RAG context that would accompany TEXT."""
    with open_runtime(vault, db, debug) as rt:
        _require_index(rt)
        context = rt.assembler.get_context(text, _target_line(text, line))

    if not context:
        console.print("[dim]No relevant journal context.[/]")
        return
    console.print(Panel(context, title="[bold]Journal context[/]", expand=False))


def ask_cmd(
    text: Annotated[str, typer.Argument(help="What to ask or reflect on.")],
    max_tokens: Annotated[int, typer.Option("--max-tokens", help="Completion token cap.")] = 512,
    vault: VaultOpt = Path("."),
    db: DbOpt = None,
    debug: DebugOpt = False,
) -> None:
    """Answer TEXT with the completion model, grounded in your journal."""
    with open_runtime(vault, db, debug) as rt:
        context = rt.assembler.get_context(text)
        messages = [
            {
                "role": "system",
                "content": _SYSTEM_PROMPT.format(
                    name=rt.cfg.rag.assistant_name, context=context or "(none)"
                ),
            },
            {"role": "user", "content": text},
        ]
        try:
            answer = complete(rt.cfg.ai, messages, max_tokens=max_tokens)
        except NotConfiguredError as exc:
            console.print(err_not_configured(exc, rt.cfg.ai.api_key_env))
            raise typer.Exit(1) from exc
        except ProviderError as exc:
            console.print(err_provider(exc))
            raise typer.Exit(1) from exc

    console.print(f"[bold]{rt.cfg.rag.assistant_name}:[/] {answer}")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _require_index(rt: Runtime) -> None:
    if rt.indexer.snapshot() is None:
        console.print(warn_no_index())
        raise typer.Exit(1)


def _mood(note: Path | None, emotion: list[str] | None, sentiment: str | None) -> Mood:
    """Mood from *note* frontmatter; --emotion / --sentiment take precedence."""
    base = Mood()
    if note is not None:
        if not note.is_file():
            console.print(f"[red]Error:[/] Note not found: '{note}'.")
            raise typer.Exit(1)
        base = Mood.from_frontmatter(read_frontmatter(note))
    return Mood(
        sentiment=sentiment or base.sentiment,
        dominant_emotions=tuple(emotion) if emotion else base.dominant_emotions,
        tags=base.tags,
    )


def _target_line(text: str, line: int | None) -> str | None:
    if line is None:
        return None
    lines = text.split("\n")
    if not 1 <= line <= len(lines):
        console.print(f"[red]Error:[/] --line {line} is out of range (TEXT has {len(lines)} lines).")
        raise typer.Exit(1)
    return lines[line - 1]


def _print_results(results: list[SearchResult]) -> None:
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("#", style="dim", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Type", style="cyan")
    table.add_column("Note", style="dim")
    table.add_column("Passage")

    for i, result in enumerate(results, start=1):
        chunk = result.chunk
        passage = result.display_text
        if len(passage) > 200:
            passage = passage[:197] + "..."
        table.add_row(str(i), f"{result.score:.3f}", chunk.context_type.value, chunk.path, passage)

    console.print(table)
