"""
Unit tests for the 'render' command.
"""

import json

from varbind.cli.main import main
from varbind.io.serialization import load_document, save_document


def _find(tree, node_id):
    if tree["id"] == node_id:
        return tree
    for child in tree["children"]:
        found = _find(child, node_id)
        if found:
            return found
    return None


class TestRenderCommand:
    def test_stdout(self, runner, demo_doc, no_config):
        result = runner.invoke(main, [*no_config, "render", str(demo_doc)])

        assert result.exit_code == 0
        tree = json.loads(result.output)
        cta = _find(tree, "cta")
        assert cta["properties"] == {"fill.color": "#0047AB", "cornerRadius": 8}
        assert cta["sources"]["fill.color"] == ["accent", "primary"]

    def test_modes_and_output_file(self, runner, demo_doc, no_config, tmp_path):
        out = tmp_path / "out" / "resolved.json"

        result = runner.invoke(main, [*no_config, "render", str(demo_doc),
                                      "-m", "Brand=dark", "-m", "Copy=de", "-o", str(out)])

        assert result.exit_code == 0
        assert "Resolved tree written to" in result.output
        headline = _find(json.loads(out.read_text()), "headline")
        assert headline["properties"]["text.color"] == "#6CA0DC"
        assert headline["properties"]["text.content"] == "Mit Tokens bauen"

    def test_broken_binding_renders_placeholder(self, runner, edit_doc, no_config, tmp_path):
        path = edit_doc(lambda data: next(
            b for b in data["bindings"] if b["property_path"] == "fill.color"
        ).update(variable_id="ghost"))
        out = tmp_path / "resolved.json"

        result = runner.invoke(main, [*no_config, "render", str(path), "-o", str(out)])

        assert result.exit_code == 0
        assert "cta.fill.color" in result.output
        cta = _find(json.loads(out.read_text()), "cta")
        assert cta["properties"]["fill.color"] == "#FF00FF"
        assert cta["errors"]["fill.color"]["code"] == "dangling_reference"

    def test_document_without_scene(self, runner, demo_doc, no_config, tmp_path):
        document = load_document(demo_doc)
        bare = save_document(tmp_path / "tokens.json", document.store)

        result = runner.invoke(main, [*no_config, "render", str(bare)])

        assert result.exit_code == 1
        assert "has no scene" in result.output
