"""
Command-line interface for bioresolve.

Commands:
- resolve: Resolve a query into a query plan (anchors, disease candidates)
- mentions: Show the lexical mentions extracted from a query
- config: Show the effective configuration
"""

import asyncio
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="bioresolve",
    help="Biomedical query-to-entity resolution CLI",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    log_level: Annotated[
        str | None, typer.Option("--log-level", "-l", help="DEBUG, INFO, WARNING or ERROR")
    ] = None,
):
    """Load .env and configure logging before any command runs."""
    load_dotenv(override=False)
    from bioresolve.logger import setup_logger

    setup_logger(log_level)


@app.command()
def resolve(
    query: str = typer.Argument(..., help="Free-text biomedical question"),
    as_json: bool = typer.Option(False, "--json", help="Print the bundle as camelCase JSON"),
    no_llm: bool = typer.Option(False, "--no-llm", help="Lexical resolution only"),
):
    """Resolve a query into anchors, disease candidates and a primary disease."""
    from bioresolve.llm import create_client
    from bioresolve.resolve.engine import EntityResolver
    from bioresolve.sources import CompositeSearchBackend

    llm = None if no_llm else create_client()
    resolver = EntityResolver(CompositeSearchBackend(), llm=llm)
    if not as_json:
        console.print(Panel(query, title="Query"))
        if llm is None:
            console.print("[yellow]LLM disabled; using lexical resolution[/]")

    bundle = asyncio.run(resolver.resolve_query_entities_bundle(query))

    if as_json:
        console.print_json(bundle.model_dump_json(by_alias=True))
        return

    table = Table(title="Anchors")
    table.add_column("Mention", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("ID", style="green")
    table.add_column("Name")
    table.add_column("Confidence", justify="right", style="yellow")
    for anchor in bundle.query_plan.anchors:
        table.add_row(anchor.mention, anchor.entity_type, anchor.id, anchor.name, f"{anchor.confidence:.2f}")
    console.print(table)

    if bundle.disease_candidates:
        candidates = Table(title="Disease Candidates")
        candidates.add_column("ID", style="green")
        candidates.add_column("Name")
        for candidate in bundle.disease_candidates:
            candidates.add_row(candidate.id, candidate.name)
        console.print(candidates)

    selected = bundle.selected_disease
    console.print(
        f"[bold]Selected disease:[/] {f'{selected.name} ({selected.id})' if selected else '[dim]none[/]'}"
    )
    if bundle.query_plan.unresolved_mentions:
        console.print(f"[bold]Unresolved:[/] {', '.join(bundle.query_plan.unresolved_mentions)}")
    console.print(f"[bold]LLM calls:[/] {bundle.openai_calls}")
    console.print(Panel(bundle.rationale or "-", title="Rationale"))


@app.command()
def mentions(
    query: str = typer.Argument(..., help="Free-text biomedical question"),
):
    """Show lexical mentions with their heuristic scores."""
    from bioresolve.resolve.mentions import extract_mentions, extract_structured_mentions, score_mention

    structured = set(extract_structured_mentions(query))
    table = Table(title="Mentions")
    table.add_column("Mention", style="cyan")
    table.add_column("Score", justify="right", style="yellow")
    table.add_column("Structured", style="green")
    for mention in extract_mentions(query):
        table.add_row(mention, f"{score_mention(mention):.2f}", "yes" if mention in structured else "")
    console.print(table)


@app.command()
def config():
    """Show the effective configuration."""
    from bioresolve.config import settings
    from bioresolve.llm import LLMConfig

    table = Table(title="Settings")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for key, value in settings.model_dump(exclude={"thresholds"}).items():
        table.add_row(key, str(value))
    for key, value in settings.thresholds.model_dump().items():
        table.add_row(f"thresholds.{key}", str(value))
    console.print(table)

    llm_config = LLMConfig()
    console.print(Panel(llm_config.summary(), title="LLM"))
    for error in llm_config.validate():
        console.print(f"[yellow]{error}[/]")


if __name__ == "__main__":
    app()
