"""
Render Command - Materialize the resolved scene tree.

Writes the scene with every binding replaced by its resolved literal, as
JSON, for a renderer or a snapshot test. Broken bindings are rendered as
the configured placeholder and listed on stderr.
"""

import json
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from ...scene.resolve import resolve_scene_tree
from ..utils import (
    echo_error,
    echo_success,
    load_config_or_exit,
    load_document_or_exit,
    parse_mode_options,
)


@click.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.option("--mode", "-m", "modes", multiple=True, metavar="COLLECTION=MODE",
              help="Active mode for a collection (repeatable)")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the resolved tree to a file instead of stdout")
@click.pass_context
def render(ctx: click.Context, document: str, modes: Tuple[str, ...], output: Optional[Path]):
    """
    Resolve every binding in DOCUMENT's scene.
    """
    config = load_config_or_exit(ctx)
    doc = load_document_or_exit(document)
    if doc.scene is None:
        echo_error(f"{document} has no scene")
        sys.exit(1)

    snapshot = doc.store.snapshot()
    active_modes = parse_mode_options(snapshot, modes)
    tree = resolve_scene_tree(doc.scene.root, snapshot, active_modes, config)

    broken = [(node.id, path, error) for node in tree.iter_tree() for path, error in node.errors.items()]
    for node_id, path, error in broken:
        click.echo(click.style(f"⚠️  {node_id}.{path}: {error['message']}", fg="yellow"), err=True)

    payload = json.dumps(tree.model_dump(mode="json"), indent=2, ensure_ascii=False)
    if output is None:
        click.echo(payload)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(payload)
    echo_success(f"Resolved tree written to {output}")
