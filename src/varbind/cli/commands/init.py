"""
Init Command - Project bootstrap.

This module handles the `varbind init` command, which writes the default
`.varbind/config.yaml` and, with `--demo`, a sample brand document to try
the other commands against.
"""

from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm

from ...config import CONFIG_DIR, VarbindConfig, default_config_path, write_config
from ...core.mutations import MutationAPI
from ...core.types import Alias
from ...io.serialization import save_document
from ...scene.model import SceneGraph, SceneNode
from ...scene.properties import NodeType

console = Console()

DEMO_DOCUMENT = "brand.json"


def create_gitignore(varbind_dir: Path) -> None:
    """Ensure the .varbind/ directory is ignored by git."""
    gitignore = varbind_dir.parent / ".gitignore"
    entry = f"\n# varbind\n{CONFIG_DIR}/\n"

    if not gitignore.exists():
        with open(gitignore, "w") as f:
            f.write(entry)
    else:
        content = gitignore.read_text()
        if CONFIG_DIR not in content:
            with open(gitignore, "a") as f:
                f.write(entry)


def build_demo(path: Path) -> Path:
    """Write a small Brand light/dark document with a bound scene."""
    scene = SceneGraph(SceneNode(
        id="page",
        name="Page",
        type=NodeType.FRAME,
        properties={"fill.color": "#FFFFFF", "layout.gap": 16},
        children=[
            SceneNode(id="cta", name="Call to action", type=NodeType.RECTANGLE,
                      properties={"fill.color": "#000000", "cornerRadius": 4}),
            SceneNode(id="headline", name="Headline", type=NodeType.TEXT,
                      properties={"text.content": "Hello", "text.color": "#000000"}),
        ],
    ))
    api = MutationAPI(scene=scene)

    brand = api.create_collection("Brand", modes=["light", "dark"], collection_id="brand")
    api.create_variable(brand.id, "Primary", "color", variable_id="primary",
                        values={"light": "#0047AB", "dark": "#6CA0DC"})
    api.create_variable(brand.id, "Accent", "color", variable_id="accent",
                        values={"light": Alias(variable_id="primary"),
                                "dark": Alias(variable_id="primary")})
    api.create_variable(brand.id, "Radius", "number", variable_id="radius",
                        values={"light": 8, "dark": 8}, scopes=["number"])

    copy = api.create_collection("Copy", modes=["en", "de"], collection_id="copy")
    api.create_variable(copy.id, "Headline", "string", variable_id="headline-text",
                        values={"en": "Build with tokens", "de": "Mit Tokens bauen"},
                        scopes=["text"])

    api.rebind("cta", "fill.color", "accent")
    api.rebind("cta", "cornerRadius", "radius")
    api.rebind("headline", "text.content", "headline-text")
    api.rebind("headline", "text.color", "primary")

    return save_document(path, api.store, scene)


def _init_project(root_dir: Path, demo: bool) -> None:
    config_file = default_config_path(root_dir)
    config = VarbindConfig(project_name=root_dir.name)
    write_config(config, config_file)
    create_gitignore(config_file.parent)

    console.print("\n✨ [bold green]Initialized successfully![/bold green]")
    console.print(f"   Config created at: [dim]{config_file}[/dim]")

    if demo:
        document = build_demo(root_dir / DEMO_DOCUMENT)
        console.print(f"📂 Demo document written to: [bold]{document}[/bold]")
        console.print("\n[bold green]Ready to go! Try these commands:[/bold green]")
        console.print(f"1. [bold cyan]varbind check {DEMO_DOCUMENT}[/bold cyan]")
        console.print(f"2. [bold cyan]varbind resolve {DEMO_DOCUMENT} accent --mode Brand=dark[/bold cyan]")
        console.print(f"3. [bold cyan]varbind impact {DEMO_DOCUMENT} primary[/bold cyan]")


@click.command()
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
@click.option("--demo", is_flag=True, help="Also write a sample brand document")
def init(force: bool, demo: bool):
    """
    Initialize varbind in the current directory.
    """
    console.print(Panel.fit("🚀 [bold blue]varbind Initialization[/bold blue]", border_style="blue"))

    root_dir = Path.cwd()
    config_file = default_config_path(root_dir)

    if config_file.exists() and not force:
        console.print(f"[yellow]Configuration already exists at {config_file}[/yellow]")
        if not Confirm.ask("Do you want to overwrite it?"):
            console.print("Aborted.")
            return

    _init_project(root_dir, demo)
