"""
varbind CLI - Main entry point.

This module registers all CLI commands. Each command is implemented
in its own module under cli/commands/.
"""

import logging
from pathlib import Path
from typing import Optional

import click

from .commands import check, impact, init, render, resolve


@click.group()
@click.version_option(package_name="varbind")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ./.varbind/config.yaml).",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: Optional[Path]):
    """varbind: Design-token binding and resolution engine.

    Resolves variables bound to scene properties across collections
    and modes, and reports broken bindings before they render.

    \b
    Quick Start:
      varbind init
      varbind check brand.json
      varbind resolve brand.json Accent --mode Brand=dark
      varbind render brand.json --mode Brand=dark -o resolved.json
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


# Register commands
main.add_command(init.init)
main.add_command(check.check)
main.add_command(resolve.resolve)
main.add_command(impact.impact)
main.add_command(render.render)

if __name__ == "__main__":
    main()
