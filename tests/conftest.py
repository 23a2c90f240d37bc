"""Shared fixtures: a Brand light/dark collection, a small scene, and the CLI demo document."""

import json
import logging

import pytest
from click.testing import CliRunner

from varbind.cli.commands.init import build_demo
from varbind.core.governance import LockableProperty
from varbind.core.mutations import MutationAPI
from varbind.core.types import Alias, UserRole
from varbind.scene.model import NodeGovernance, SceneGraph, SceneNode
from varbind.scene.properties import NodeType


@pytest.fixture
def scene():
    return SceneGraph(SceneNode(
        id="page",
        name="Page",
        type=NodeType.FRAME,
        properties={"fill.color": "#FFFFFF", "layout.gap": 16},
        children=[
            SceneNode(
                id="cta",
                name="Call to action",
                type=NodeType.RECTANGLE,
                properties={"fill.color": "#000000", "cornerRadius": 4},
                governance=NodeGovernance(locked_props={
                    "fill.color": LockableProperty(locked=True, allowed_roles=frozenset({UserRole.ADMIN})),
                    "cornerRadius": LockableProperty(min_value=0, max_value=24),
                }),
            ),
            SceneNode(
                id="title",
                name="Title",
                type=NodeType.TEXT,
                properties={"text.content": "Hello", "text.color": "#111111"},
            ),
        ],
    ))


@pytest.fixture
def api():
    return MutationAPI()


@pytest.fixture
def scene_api(scene):
    return MutationAPI(scene=scene)


def _add_brand(api: MutationAPI):
    collection = api.create_collection("Brand", modes=["light", "dark"], collection_id="brand")
    api.create_variable("brand", "Primary", "color", variable_id="primary",
                        values={"light": "#0047AB", "dark": "#6CA0DC"})
    api.create_variable("brand", "Accent", "color", variable_id="accent",
                        values={"light": Alias(variable_id="primary"),
                                "dark": Alias(variable_id="primary")})
    return collection


@pytest.fixture
def brand(api):
    """Brand collection with Primary (literal) and Accent (alias of Primary)."""
    return _add_brand(api)


@pytest.fixture
def scene_brand(scene_api):
    return _add_brand(scene_api)


@pytest.fixture(autouse=True)
def restore_log_level():
    """CLI commands set the package log level from config."""
    logger = logging.getLogger("varbind")
    level = logger.level
    yield
    logger.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def demo_doc(tmp_path):
    """The `init --demo` brand document: Brand (light/dark) and Copy (en/de)."""
    return build_demo(tmp_path / "brand.json")


@pytest.fixture
def no_config(tmp_path):
    return ["--config", str(tmp_path / "none.yaml")]


@pytest.fixture
def edit_doc(demo_doc):
    """Rewrite the demo document's raw records in place."""
    def edit(change):
        data = json.loads(demo_doc.read_text())
        change(data)
        demo_doc.write_text(json.dumps(data))
        return demo_doc
    return edit
