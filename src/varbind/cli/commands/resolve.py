"""
Resolve Command - Show the value a variable resolves to.

Follows the alias chain under an active-mode selection and prints every
hop, so "where does this color come from?" has a direct answer.
"""

import sys
from typing import List, Optional, Tuple

import click
from pydantic import BaseModel
from rich.console import Console
from rich.table import Table

from ...core.resolver import Resolver
from ..utils import (
    echo_error,
    load_config_or_exit,
    load_document_or_exit,
    parse_mode_options,
    render_json,
)

console = Console()


# --- API Models ---
class ChainHop(BaseModel):
    variable_id: str
    name: str
    collection: str


class ResolveResponse(BaseModel):
    variable_id: str
    value: bool | int | float | str
    type: str
    mode_id: str
    source_chain: List[ChainHop]


@click.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.argument("variable")
@click.option("--mode", "-m", "modes", multiple=True, metavar="COLLECTION=MODE",
              help="Active mode for a collection (repeatable)")
@click.option("--pin", default=None, help="Pin the starting variable's collection to this mode id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def resolve(ctx: click.Context, document: str, variable: str, modes: Tuple[str, ...],
            pin: Optional[str], as_json: bool):
    """
    Resolve VARIABLE (id, name, or Collection/Name) in DOCUMENT.
    """
    load_config_or_exit(ctx)
    doc = load_document_or_exit(document)
    snapshot = doc.store.snapshot()
    active_modes = parse_mode_options(snapshot, modes)

    target = snapshot.find_variable(variable)
    if target is None:
        if as_json:
            render_json("resolve", error=LookupError(f"Variable not found: {variable}"))
        else:
            echo_error(f"Variable not found: {variable}")
        sys.exit(1)

    result = Resolver(snapshot, active_modes).resolve_variable(target.id, mode_override=pin)
    if result.is_err():
        if as_json:
            render_json("resolve", error=result.error)
        else:
            echo_error(result.error.message)
            if result.error.source_chain:
                click.echo(f"   chain: {' -> '.join(result.error.source_chain)}")
        sys.exit(1)

    resolved = result.value
    hops = []
    for variable_id in resolved.source_chain:
        hop = snapshot.get_variable(variable_id)
        collection = snapshot.get_collection(hop.collection_id)
        hops.append(ChainHop(
            variable_id=variable_id,
            name=hop.name,
            collection=collection.name if collection else hop.collection_id,
        ))
    response = ResolveResponse(
        variable_id=target.id,
        value=resolved.value,
        type=resolved.type.value,
        mode_id=resolved.mode_id,
        source_chain=hops,
    )

    if as_json:
        render_json("resolve", response)
        return

    console.print(f"[bold]{target.name}[/bold] = [green]{resolved.value}[/green] "
                  f"[dim]({resolved.type.value}, mode {resolved.mode_id})[/dim]")
    table = Table(show_header=True)
    table.add_column("#", justify="right")
    table.add_column("Variable", style="cyan")
    table.add_column("Collection")
    for position, hop in enumerate(hops, start=1):
        table.add_row(str(position), f"{hop.name} ({hop.variable_id})", hop.collection)
    console.print(table)
