from .audit import annotate_installed, audit_payload, render_audit, render_json
from .outdated import (
    Dependency,
    Package,
    check_outdated,
    load_dependencies,
    render_outdated,
    summarize,
)
from .style import OutputStyle, Verbosity, render_table, truncate
from .tree import ALREADY_SHOWN, TreeOptions, render_paths, render_tree

__all__ = [
    "ALREADY_SHOWN",
    "Dependency",
    "OutputStyle",
    "Package",
    "TreeOptions",
    "Verbosity",
    "annotate_installed",
    "audit_payload",
    "check_outdated",
    "load_dependencies",
    "render_audit",
    "render_json",
    "render_outdated",
    "render_paths",
    "render_table",
    "render_tree",
    "summarize",
]
