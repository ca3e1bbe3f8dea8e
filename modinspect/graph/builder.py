"""
Module dependency graph.

The graph is a tree rooted at the main module as seen by ``go.mod``. Without
a registry client it holds the direct requirements as children of the root,
plus the indirect requirements as unattached nodes. With a client, every
direct requirement is expanded by downloading its go.mod at the pinned
version, depth first from an explicit stack, down to a fixed depth.

This is not a version resolver: a module that appears in several versions
shows up once per version, exactly as each go.mod pins it.

Nodes are shared. Two requirements on the same ``path@version`` resolve to one
Node, so a module required by several parents appears under each of them and
the structure may contain cycles when the registry serves a cyclic chain.
Traversals therefore track the nodes on the current path.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

from modinspect.constants import MAX_GRAPH_DEPTH
from modinspect.modfile import ModFileParseError, Requirement, parse_mod
from modinspect.registry import CancelToken, RegistryClient, RegistryError

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Node:
    """A module at one version. Compared by identity."""

    path: str
    version: str = ""
    direct: bool = False
    children: List["Node"] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.path}@{self.version}"

    def has_child(self, path: str) -> bool:
        return any(child.path == path for child in self.children)

    def __repr__(self) -> str:
        return f"Node({self.key!r}, direct={self.direct}, children={len(self.children)})"


# A node being expanded: the node, its depth and its not yet visited requirements
_Frame = Tuple[Node, int, Iterator[Requirement]]


class Graph:
    """Dependency tree of a main module with an index of all known nodes."""

    def __init__(self, module_path: str):
        self.root = Node(path=module_path, version="", direct=True)
        self.nodes: Dict[str, Node] = {module_path: self.root}

    def get_or_create_node(self, path: str, version: str, direct: bool) -> Node:
        """
        Return the node for ``path@version``, creating and indexing it if new.

        The node is also indexed under its bare path, pointing at the most
        recently created version. A node becomes direct as soon as any
        requirement on it is direct.
        """
        key = f"{path}@{version}"
        node = self.nodes.get(key)
        if node is not None:
            if direct:
                node.direct = True
            return node

        node = Node(path=path, version=version, direct=direct)
        self.nodes[key] = node
        self.nodes[path] = node
        return node

    def find_node(self, path: str) -> Optional[Node]:
        return self.nodes.get(path)

    def find_paths(self, target_path: str) -> List[List[str]]:
        """
        Find every path from the root to a module.

        A module reachable through two parents yields two paths, which is what
        answers "why is this module in my build".

        Returns:
            Lists of module paths, each starting at the root module
        """
        paths: List[List[str]] = []

        def dfs(node: Node, current: List[str], on_path: Set[str]) -> None:
            if node.path in on_path:
                return

            current.append(node.path)
            on_path.add(node.path)

            if node.path == target_path:
                paths.append(current[:])
            else:
                for child in node.children:
                    dfs(child, current, on_path)

            current.pop()
            on_path.remove(node.path)

        dfs(self.root, [], set())
        return paths

    def count_nodes(self) -> int:
        """Number of nodes in the tree, counting shared nodes once per occurrence."""

        def count(node: Node, on_path: Set[int]) -> int:
            on_path.add(id(node))
            total = 1 + sum(
                count(child, on_path)
                for child in node.children
                if id(child) not in on_path
            )
            on_path.remove(id(node))
            return total

        return count(self.root, set())

    def max_depth(self) -> int:
        """Number of nodes on the longest root-to-leaf path, cycles cut."""

        def depth(node: Node, on_path: Set[int]) -> int:
            on_path.add(id(node))
            deepest = max(
                (
                    depth(child, on_path)
                    for child in node.children
                    if id(child) not in on_path
                ),
                default=0,
            )
            on_path.remove(id(node))
            return 1 + deepest

        return depth(self.root, set())

    def _expand(
        self,
        client: RegistryClient,
        start: Node,
        max_depth: int,
        visited: Set[str],
        cancel: Optional[CancelToken],
    ) -> None:
        """Grow the subtree below ``start`` depth-first with an explicit stack."""
        stack: List[_Frame] = []
        frame = self._open(client, start, 0, max_depth, visited, cancel)
        if frame is not None:
            stack.append(frame)

        while stack:
            if cancel is not None and cancel.is_set():
                return

            node, depth, pending = stack[-1]
            req = next(pending, None)
            if req is None:
                stack.pop()
                continue

            child = self.get_or_create_node(req.path, req.version, False)
            if node.has_child(child.path):
                continue
            node.children.append(child)

            frame = self._open(client, child, depth + 1, max_depth, visited, cancel)
            if frame is not None:
                stack.append(frame)

    @staticmethod
    def _open(
        client: RegistryClient,
        node: Node,
        depth: int,
        max_depth: int,
        visited: Set[str],
        cancel: Optional[CancelToken],
    ) -> Optional[_Frame]:
        if depth >= max_depth or node.key in visited:
            return None
        visited.add(node.key)

        try:
            data = client.get_mod_file(node.path, node.version, cancel=cancel)
            mod = parse_mod(data, filename=f"{node.key}/go.mod", strict=False)
        except (RegistryError, ModFileParseError) as e:
            logger.debug(f"Not expanding {node.key}: {e}")
            return None

        direct = [r for r in mod.requires if not r.indirect]
        return node, depth, iter(direct)


def build(module_path: str, requirements: List[Requirement]) -> Graph:
    """
    Build the one-level graph described by a go.mod, without network access.

    Direct requirements become children of the root. Indirect requirements are
    indexed but not attached to anything.
    """
    graph = Graph(module_path)

    for req in requirements:
        if not req.indirect:
            graph.root.children.append(
                graph.get_or_create_node(req.path, req.version, True)
            )

    for req in requirements:
        if req.indirect:
            graph.get_or_create_node(req.path, req.version, False)

    return graph


def build_with_registry(
    module_path: str,
    requirements: List[Requirement],
    client: Optional[RegistryClient],
    max_depth: int = MAX_GRAPH_DEPTH,
    cancel: Optional[CancelToken] = None,
) -> Graph:
    """
    Build the dependency tree, expanding direct requirements through the registry.

    Each ``path@version`` is expanded at most once per build, which also ends
    cycles. A requirement whose go.mod cannot be fetched or parsed stays a
    leaf; the build itself does not fail because of it, so an incomplete tree
    shows up as a module without children.

    Args:
        module_path: Path of the main module
        requirements: Requirements of the main module's go.mod
        client: Registry client, or None to build without network access
        max_depth: Expansion depth below the direct requirements
        cancel: Stops the expansion when set

    Returns:
        The dependency graph
    """
    if client is None:
        return build(module_path, requirements)

    graph = Graph(module_path)
    visited: Set[str] = set()

    for req in requirements:
        if req.indirect:
            continue
        child = graph.get_or_create_node(req.path, req.version, True)
        graph.root.children.append(child)
        graph._expand(client, child, max_depth, visited, cancel)

    logger.debug(
        f"Built graph for {module_path}: {len(visited)} modules expanded"
    )
    return graph


def build_from_requires(module_path: str, requirements: List[Requirement]) -> Graph:
    """Flat graph with one fresh node per direct requirement, nothing shared."""
    graph = Graph(module_path)

    for req in requirements:
        if req.indirect:
            continue
        child = Node(path=req.path, version=req.version, direct=True)
        graph.root.children.append(child)
        graph.nodes[child.path] = child

    return graph
