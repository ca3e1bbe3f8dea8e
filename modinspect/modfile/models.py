from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Requirement:
    """A single ``require`` entry of a go.mod file."""

    path: str
    version: str
    indirect: bool = False

    # Position in the source, None for requirements built in code
    line: Optional[int] = field(default=None, compare=False)
    in_block: bool = field(default=False, compare=False)

    @property
    def key(self) -> str:
        return f"{self.path}@{self.version}"


@dataclass
class Block:
    """A parenthesised directive block, with 0-based line indexes of its delimiters."""

    verb: str
    start: int
    end: int


@dataclass
class ModFile:
    """Parsed go.mod content.

    ``lines`` keeps the original text so that edits can be applied without
    reformatting parts of the file they do not touch.
    """

    module_path: str = ""
    go_version: str = ""
    toolchain: str = ""
    requires: List[Requirement] = field(default_factory=list)
    blocks: List[Block] = field(default_factory=list)
    lines: List[str] = field(default_factory=list)

    def require_blocks(self) -> List[Block]:
        return [b for b in self.blocks if b.verb == "require"]

    def format(self) -> str:
        text = "\n".join(self.lines)
        return text + "\n" if text else ""
