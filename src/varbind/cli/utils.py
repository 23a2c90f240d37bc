"""
CLI Utilities - Shared helper functions for command line operations.

Formatted printing, config and document loading with user-facing errors,
and parsing of `--mode COLLECTION=MODE` selections.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, Optional

import click
from pydantic import BaseModel

from .. import __version__
from ..config import VarbindConfig, load_config
from ..core.exceptions import VarbindError
from ..core.store import StoreReader
from ..io.serialization import Document, load_document


def echo_success(message: str) -> None:
    """
    Print a success message with a green checkmark.

    Args:
        message (str): The message to display.
    """
    click.echo(click.style(f"✅ {message}", fg="green"))


def echo_error(message: str) -> None:
    """
    Print an error message with a red cross.

    Args:
        message (str): The error message to display.
    """
    click.echo(click.style(f"❌ {message}", fg="red"), err=True)


def echo_info(message: str) -> None:
    """
    Print an informational message, dimmed.

    Args:
        message (str): The info message to display.
    """
    click.echo(click.style(f"   {message}", dim=True))


def load_config_or_exit(ctx: Optional[click.Context] = None) -> VarbindConfig:
    """
    Load the project config named on the command line, or the default one.

    Applies the configured log level to the varbind loggers unless
    `--verbose` asked for debug output.
    """
    options = (ctx.obj if ctx is not None else None) or {}
    config_path: Optional[Path] = options.get("config_path")
    try:
        config = load_config(config_path)
    except VarbindError as e:
        echo_error(e.message)
        sys.exit(1)
    if not options.get("verbose"):
        logging.getLogger("varbind").setLevel(config.log_level.upper())
    return config


def load_document_or_exit(path: str) -> Document:
    """Load a document, printing a friendly error and exiting on failure."""
    try:
        return load_document(path)
    except FileNotFoundError:
        echo_error(f"Document not found: {path}")
        sys.exit(1)
    except VarbindError as e:
        echo_error(e.message)
        sys.exit(1)


def parse_mode_options(reader: StoreReader, options: Iterable[str]) -> Dict[str, str]:
    """
    Turn `COLLECTION=MODE` options into an active-mode selection.

    Collections and modes may be given by id or by (case-insensitive) name.

    Raises:
        click.BadParameter: If an option is malformed or names nothing.
    """
    selection: Dict[str, str] = {}
    for option in options:
        collection_key, sep, mode_key = option.partition("=")
        if not sep or not collection_key or not mode_key:
            raise click.BadParameter(f"'{option}' is not COLLECTION=MODE", param_hint="--mode")

        collection = reader.get_collection(collection_key) or next(
            (c for c in reader.iter_collections() if c.name.lower() == collection_key.lower()),
            None,
        )
        if collection is None:
            raise click.BadParameter(f"Unknown collection '{collection_key}'", param_hint="--mode")
        mode = collection.find_mode(mode_key)
        if mode is None:
            raise click.BadParameter(
                f"Collection '{collection.name}' has no mode '{mode_key}'", param_hint="--mode"
            )
        selection[collection.id] = mode.id
    return selection


def render_json(command: str, data: Optional[BaseModel] = None,
                error: Optional[Exception] = None) -> None:
    """
    Print the standard JSON envelope for machine consumers.

    Exactly one of `data` or `error` is reported.
    """
    envelope = {
        "meta": {"command": command, "version": __version__},
        "status": "error" if error is not None else "success",
        "data": data.model_dump(mode="json") if data is not None and error is None else None,
        "error": None,
    }
    if error is not None:
        envelope["error"] = (
            error.to_dict() if isinstance(error, VarbindError)
            else {"code": type(error).__name__, "message": str(error)}
        )
    click.echo(json.dumps(envelope, indent=2, ensure_ascii=False))
