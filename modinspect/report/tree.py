"""Text rendering of dependency trees."""

from dataclasses import dataclass
from typing import List, Optional, Set

from modinspect.graph import Node
from modinspect.versioning import strip_prefix
from .style import OutputStyle

ALREADY_SHOWN = "(already shown above)"


@dataclass(frozen=True)
class TreeOptions:
    """
    Attributes:
        max_depth: Deepest level to print, 0 for unlimited
        show_versions: Append ``@version`` to module paths
        prune: Print a repeated ``path@version`` subtree only once
        pattern: Only print modules whose path contains this text; children
            of skipped modules are still searched
    """

    max_depth: int = 0
    show_versions: bool = True
    prune: bool = True
    pattern: str = ""


def render_tree(
    root: Optional[Node],
    options: TreeOptions = TreeOptions(),
    style: OutputStyle = OutputStyle(color=False),
) -> str:
    if root is None:
        return ""

    out: List[str] = []
    seen: Set[str] = set()
    _render_node(out, root, "", True, 0, options, style, seen, set())
    return "".join(out)


def _child_prefix(prefix: str, is_last: bool, depth: int) -> str:
    if depth == 0:
        return prefix
    return prefix + ("    " if is_last else "│   ")


def _render_node(
    out: List[str],
    node: Node,
    prefix: str,
    is_last: bool,
    depth: int,
    options: TreeOptions,
    style: OutputStyle,
    seen: Set[str],
    on_path: Set[int],
) -> None:
    if options.max_depth > 0 and depth >= options.max_depth:
        return
    # Shared nodes can form cycles; never descend into a node already on the path
    if id(node) in on_path:
        return
    on_path = on_path | {id(node)}

    if options.pattern and options.pattern not in node.path:
        for i, child in enumerate(node.children):
            _render_node(
                out, child, prefix, i == len(node.children) - 1,
                depth, options, style, seen, on_path,
            )
        return

    if depth > 0:
        branch = "└── " if is_last else "├── "
        out.append(style.paint(prefix + branch, dim=True))

    if node.direct:
        out.append(style.paint(node.path, fg="blue"))
    else:
        out.append(style.paint(node.path, dim=True))
    if options.show_versions and node.version:
        out.append(style.paint("@" + strip_prefix(node.version), fg="green"))
    out.append("\n")

    child_prefix = _child_prefix(prefix, is_last, depth)

    if options.prune:
        if node.key in seen and node.children:
            out.append(style.paint(child_prefix + "└── ", dim=True))
            out.append(style.paint(ALREADY_SHOWN, dim=True))
            out.append("\n")
            return
        seen.add(node.key)

    for i, child in enumerate(node.children):
        _render_node(
            out, child, child_prefix, i == len(node.children) - 1,
            depth + 1, options, style, seen, on_path,
        )


def render_paths(target: str, paths: List[List[str]], style: OutputStyle) -> str:
    """Render the answer to "why is ``target`` required"."""
    if not paths:
        return f"{target} is not required by the main module\n"

    lines = [style.paint(f"{target} is required through {len(paths)} path(s):", bold=True)]
    for i, path in enumerate(paths, 1):
        lines.append("")
        lines.append(f"#{i}")
        for depth, module in enumerate(path):
            indent = "  " * depth
            marker = "" if depth == 0 else "└─ "
            text = module if module != target else style.paint(module, bold=True)
            lines.append(f"  {indent}{marker}{text}")
    return "\n".join(lines) + "\n"
