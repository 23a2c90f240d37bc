"""
Impact Command - What changes if a variable changes.

Prints the invalidation set of a variable: every variable that aliases it,
directly or transitively, and every bound property that would need to be
recomputed after an edit to its value.
"""

import sys
from typing import List

import click
from pydantic import BaseModel, Field
from rich.console import Console
from rich.tree import Tree

from ..utils import echo_error, load_config_or_exit, load_document_or_exit, render_json

console = Console()


# --- API Models ---
class ImpactResponse(BaseModel):
    variable_id: str
    aliasing_variables: List[str] = Field(default_factory=list)
    bindings: List[str] = Field(default_factory=list)
    count: int


@click.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.argument("variable")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def impact(ctx: click.Context, document: str, variable: str, as_json: bool):
    """
    Show everything that depends on VARIABLE in DOCUMENT.
    """
    load_config_or_exit(ctx)
    doc = load_document_or_exit(document)
    target = doc.store.find_variable(variable)
    if target is None:
        if as_json:
            render_json("impact", error=LookupError(f"Variable not found: {variable}"))
        else:
            echo_error(f"Variable not found: {variable}")
        sys.exit(1)

    affected = doc.index.invalidation_set([target.id])
    response = ImpactResponse(
        variable_id=target.id,
        aliasing_variables=sorted(affected.variables - {target.id}),
        bindings=sorted(str(ref) for ref in affected.bindings),
        count=len(affected.bindings),
    )

    if as_json:
        render_json("impact", response)
        return

    tree = Tree(f"[bold]{target.name}[/bold] [dim]({target.id})[/dim]")
    _add_dependents(tree, doc, target.id, seen={target.id})
    console.print(tree)
    console.print(f"\n{response.count} bound propert{'y' if response.count == 1 else 'ies'} affected")


def _add_dependents(branch: Tree, doc, variable_id: str, seen: set) -> None:
    for ref in sorted(doc.index.bindings_for(variable_id), key=str):
        branch.add(f"[green]{ref}[/green]")
    for aliaser_id in sorted(doc.index.aliasers_of(variable_id)):
        if aliaser_id in seen:
            continue
        seen.add(aliaser_id)
        aliaser = doc.store.get_variable(aliaser_id)
        label = aliaser.name if aliaser else aliaser_id
        _add_dependents(branch.add(f"[cyan]{label}[/cyan] [dim]({aliaser_id})[/dim]"), doc, aliaser_id, seen)
