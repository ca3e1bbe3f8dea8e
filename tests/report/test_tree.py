"""Tests for dependency tree rendering."""

import pytest

from modinspect.graph import Graph
from modinspect.report import ALREADY_SHOWN, OutputStyle, TreeOptions, render_paths, render_tree


@pytest.fixture
def graph():
    g = Graph("example.com/app")
    a = g.get_or_create_node("example.com/a", "v1.0.0", True)
    b = g.get_or_create_node("example.com/b", "v2.1.0", True)
    shared = g.get_or_create_node("example.com/shared", "v0.3.0", False)
    leaf = g.get_or_create_node("example.com/leaf", "v1.0.0", False)
    g.root.children.extend([a, b])
    a.children.append(shared)
    b.children.append(shared)
    shared.children.append(leaf)
    return g


@pytest.mark.short
class TestRenderTree:
    def test_full_layout(self, graph):
        text = render_tree(graph.root, TreeOptions(prune=False))

        assert text == (
            "example.com/app\n"
            "├── example.com/a@1.0.0\n"
            "│   └── example.com/shared@0.3.0\n"
            "│       └── example.com/leaf@1.0.0\n"
            "└── example.com/b@2.1.0\n"
            "    └── example.com/shared@0.3.0\n"
            "        └── example.com/leaf@1.0.0\n"
        )

    def test_prune_repeated_subtree(self, graph):
        text = render_tree(graph.root)

        assert text.count("example.com/leaf") == 1
        assert text.count(ALREADY_SHOWN) == 1
        assert text.endswith(f"        └── {ALREADY_SHOWN}\n")

    def test_max_depth(self, graph):
        text = render_tree(graph.root, TreeOptions(max_depth=2))
        assert "example.com/a" in text
        assert "example.com/shared" not in text

    def test_without_versions(self, graph):
        text = render_tree(graph.root, TreeOptions(show_versions=False))
        assert "@" not in text

    def test_pattern_searches_below_skipped_nodes(self, graph):
        text = render_tree(graph.root, TreeOptions(pattern="leaf", prune=False))
        assert text.count("example.com/leaf@1.0.0") == 2
        assert "example.com/a" not in text

    def test_cycle_terminates(self):
        g = Graph("root")
        a = g.get_or_create_node("a", "v1.0.0", True)
        b = g.get_or_create_node("b", "v1.0.0", False)
        g.root.children.append(a)
        a.children.append(b)
        b.children.append(a)

        text = render_tree(g.root, TreeOptions(prune=False))
        assert text.count("a@1.0.0") == 1

    def test_none_root(self):
        assert render_tree(None) == ""

    def test_color_output_contains_escape_codes(self, graph):
        text = render_tree(graph.root, style=OutputStyle(color=True))
        assert "\x1b[" in text


@pytest.mark.short
class TestRenderPaths:
    def test_paths(self):
        text = render_paths(
            "x", [["root", "a", "x"], ["root", "b", "x"]], OutputStyle(color=False)
        )
        assert "x is required through 2 path(s):" in text
        assert "#1" in text and "#2" in text
        assert "    └─ x" in text

    def test_no_paths(self):
        text = render_paths("x", [], OutputStyle(color=False))
        assert text == "x is not required by the main module\n"
