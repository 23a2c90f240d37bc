"""Unit tests for the rustworkx-backed AliasGraph."""

import pytest

from varbind.core.exceptions import CircularReference
from varbind.core.graph import AliasGraph


@pytest.fixture
def graph():
    graph = AliasGraph()
    graph.add_variable("primary", [])
    graph.add_variable("accent", ["primary"])
    graph.add_variable("button", ["accent"])
    graph.add_variable("link", ["primary"])
    return graph


class TestAliasGraph:
    def test_creation_order_puts_targets_first(self, graph):
        order = graph.creation_order()

        assert order.index("primary") < order.index("accent") < order.index("button")
        assert order.index("primary") < order.index("link")
        assert len(order) == 4

    def test_acyclic(self, graph):
        assert graph.is_acyclic()
        assert graph.find_cycles() == []

    def test_cycle_detection(self, graph):
        graph.add_alias("primary", "button")

        assert not graph.is_acyclic()
        cycles = graph.find_cycles()
        assert len(cycles) == 1
        assert cycles[0][0] == cycles[0][-1]
        assert set(cycles[0]) == {"primary", "accent", "button"}

    def test_creation_order_raises_on_cycle(self, graph):
        graph.add_alias("primary", "button")
        with pytest.raises(CircularReference) as exc_info:
            graph.creation_order()
        assert set(exc_info.value.source_chain) == {"primary", "accent", "button"}

    def test_duplicate_edges_are_ignored(self, graph):
        graph.add_alias("accent", "primary")
        assert graph.edge_count == 3

    def test_stats(self, graph):
        stats = graph.get_stats()
        assert stats["variables"] == 4
        assert stats["alias_edges"] == 3
        assert stats["token_roots"] == 1
        assert stats["acyclic"] is True
