"""
Persistence hooks.

Collections, Variables (with `values_by_mode`), Bindings and the scene tree
round-trip as plain records. Derived state is never written: the
DependencyIndex and any resolution cache are rebuilt from the loaded store.

Loaded data is taken as-is, even when it breaks invariants the Mutation API
would enforce (dangling bindings after an external migration, alias
cycles). Such problems surface as resolution errors and are logged here.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from ..core.exceptions import VarbindError
from ..core.graph import AliasGraph
from ..core.index import DependencyIndex
from ..core.store import StoreReader, VariableStore
from ..core.types import Binding, Collection, Variable
from ..scene.model import SceneGraph, SceneNode

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

YAML_SUFFIXES = {".yaml", ".yml"}


class Document(NamedTuple):
    """A loaded document: store, its rebuilt index, and an optional scene."""
    store: VariableStore
    index: DependencyIndex
    scene: Optional[SceneGraph]


# =============================================================================
# Records
# =============================================================================

def _dump_variable(variable: Variable) -> Dict[str, Any]:
    data = variable.model_dump(mode="json")
    data["scopes"] = sorted(data["scopes"])
    data["editable_by"] = sorted(data["editable_by"])
    return data


def dump_store(store: StoreReader) -> Dict[str, Any]:
    """Serialize a store (or snapshot) to plain records."""
    return {
        "format": FORMAT_VERSION,
        "version": getattr(store, "version", 0),
        "collections": [c.model_dump(mode="json") for c in store.iter_collections()],
        "variables": [
            _dump_variable(v) for v in sorted(store.iter_variables(), key=lambda v: v.id)
        ],
        "bindings": [
            b.model_dump(mode="json")
            for b in sorted(store.iter_bindings(), key=lambda b: (b.node_id, b.property_path))
        ],
    }


def load_store(data: Dict[str, Any]) -> Tuple[VariableStore, DependencyIndex]:
    """
    Rebuild a store and its dependency index from records.

    Raises:
        VarbindError: If a record is malformed.
    """
    try:
        collections = [Collection.model_validate(c) for c in data.get("collections", [])]
        variables = [Variable.model_validate(v) for v in data.get("variables", [])]
        bindings = [Binding.model_validate(b) for b in data.get("bindings", [])]
    except ValidationError as e:
        raise VarbindError(f"Malformed store record: {e}") from e

    store = VariableStore.from_records(
        collections, variables, bindings, version=int(data.get("version", 0))
    )
    index = DependencyIndex()
    index.rebuild(store)

    graph = AliasGraph.from_reader(store)
    for cycle in graph.find_cycles(limit=10):
        logger.warning("Loaded data contains an alias cycle: %s", " -> ".join(cycle))
    for binding in bindings:
        if not store.has_variable(binding.variable_id):
            logger.warning(
                "Binding %s targets missing variable '%s'", binding.ref, binding.variable_id
            )

    logger.debug(
        "Loaded %d collection(s), %d variable(s), %d binding(s)",
        len(collections), len(variables), len(bindings),
    )
    return store, index


def dump_scene(scene: SceneGraph) -> Dict[str, Any]:
    return scene.root.model_dump(mode="json")


def load_scene(data: Dict[str, Any]) -> SceneGraph:
    try:
        return SceneGraph(SceneNode.model_validate(data))
    except (ValidationError, ValueError) as e:
        raise VarbindError(f"Malformed scene: {e}") from e


# =============================================================================
# Files
# =============================================================================

def _is_yaml(path: Path) -> bool:
    return path.suffix.lower() in YAML_SUFFIXES


def save_document(
    path: Union[str, Path],
    store: StoreReader,
    scene: Optional[SceneGraph] = None,
) -> Path:
    """Write the store (and scene, if given) as JSON or YAML, chosen by suffix."""
    path = Path(path)
    data = dump_store(store)
    if scene is not None:
        data["scene"] = dump_scene(scene)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        if _is_yaml(path):
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        else:
            json.dump(data, f, indent=2, ensure_ascii=False)
    logger.debug("Saved document to %s", path)
    return path


def load_document(path: Union[str, Path]) -> Document:
    """
    Load a document written by `save_document` (or by hand).

    Raises:
        VarbindError: If the file cannot be parsed.
    """
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) if _is_yaml(path) else json.load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise VarbindError(f"Could not parse {path}: {e}", str(path)) from e

    if not isinstance(data, dict):
        raise VarbindError(f"{path} does not contain a document", str(path))

    store, index = load_store(data)
    scene = load_scene(data["scene"]) if data.get("scene") else None
    return Document(store, index, scene)
