"""
go.mod parsing.

Only the parts of the go.mod grammar needed for dependency inspection are
interpreted: ``module``, ``go``, ``toolchain`` and ``require`` (single line and
block form, including the ``// indirect`` marker). Other directives such as
``replace``, ``exclude`` or ``retract`` are accepted and kept verbatim.

Strict parsing rejects unknown directives; lax parsing, used for go.mod files
downloaded from the proxy, skips them so that files written for newer Go
releases still yield their requirements.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from modinspect.versioning import canonical, is_valid
from .exceptions import ModFileError, ModFileParseError
from .models import Block, ModFile, Requirement

logger = logging.getLogger(__name__)

_BLOCK_VERBS = frozenset(
    ("require", "exclude", "replace", "retract", "godebug", "tool", "ignore")
)
_KNOWN_VERBS = _BLOCK_VERBS | {"module", "go", "toolchain"}


def _split_comment(line: str) -> Tuple[str, str]:
    """Split a line into code and the text after ``//``, honouring quotes."""
    quote = ""
    i = 0
    while i < len(line):
        char = line[i]
        if quote:
            if char == "\\" and quote == '"':
                i += 2
                continue
            if char == quote:
                quote = ""
        elif char in ('"', "`"):
            quote = char
        elif line.startswith("//", i):
            return line[:i], line[i + 2 :].strip()
        i += 1
    return line, ""


def _tokenize(code: str, filename: str, lineno: int) -> List[str]:
    tokens: List[str] = []
    i = 0
    while i < len(code):
        char = code[i]
        if char.isspace():
            i += 1
        elif char in "()":
            tokens.append(char)
            i += 1
        elif char in ('"', "`"):
            end = i + 1
            while end < len(code) and code[end] != char:
                end += 2 if (char == '"' and code[end] == "\\") else 1
            if end >= len(code):
                raise ModFileParseError(filename, lineno, "unterminated quoted string")
            tokens.append(code[i : end + 1])
            i = end + 1
        else:
            end = i
            while end < len(code) and not code[end].isspace() and code[end] not in "()":
                end += 1
            tokens.append(code[i:end])
            i = end
    return tokens


def _unquote(token: str, filename: str, lineno: int) -> str:
    if token.startswith("`"):
        return token[1:-1]
    if token.startswith('"'):
        try:
            return json.loads(token)
        except ValueError as e:
            raise ModFileParseError(filename, lineno, f"invalid quoted string: {e}") from e
    return token


def _canonical_version(version: str) -> str:
    # Shorthands such as v1.2 are stored as v1.2.0; +incompatible is kept
    normalized = canonical(version)
    if version.endswith("+incompatible"):
        normalized += "+incompatible"
    return normalized


def _is_indirect(comment: str) -> bool:
    return comment == "indirect" or comment.startswith("indirect;")


def parse_mod(
    data: Union[bytes, str], filename: str = "go.mod", strict: bool = True
) -> ModFile:
    """
    Parse go.mod content.

    Args:
        data: File content
        filename: Name used in error messages
        strict: Reject unknown directives instead of skipping them

    Returns:
        The parsed ModFile

    Raises:
        ModFileParseError: If the content is not valid go.mod syntax
    """
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ModFileParseError(filename, None, f"invalid UTF-8: {e}") from e
    else:
        text = data

    mod = ModFile(lines=text.splitlines())
    block: Optional[Block] = None

    for index, raw in enumerate(mod.lines):
        lineno = index + 1
        code, comment = _split_comment(raw)
        tokens = _tokenize(code, filename, lineno)
        if not tokens:
            continue

        if block is not None:
            if tokens == [")"]:
                block.end = index
                mod.blocks.append(block)
                block = None
                continue
            _apply(mod, block.verb, tokens, comment, index, True, filename, strict)
            continue

        verb, args = tokens[0], tokens[1:]
        if args == ["("]:
            if verb in _KNOWN_VERBS and verb not in _BLOCK_VERBS:
                raise ModFileParseError(filename, lineno, f"{verb} does not take a block")
            if verb not in _KNOWN_VERBS and strict:
                raise ModFileParseError(filename, lineno, f"unknown directive: {verb}")
            block = Block(verb=verb, start=index, end=-1)
            continue

        _apply(mod, verb, args, comment, index, False, filename, strict)

    if block is not None:
        raise ModFileParseError(filename, block.start + 1, f"unterminated {block.verb} block")

    return mod


def _apply(
    mod: ModFile,
    verb: str,
    args: List[str],
    comment: str,
    index: int,
    in_block: bool,
    filename: str,
    strict: bool,
) -> None:
    lineno = index + 1

    if verb == "module":
        if len(args) != 1:
            raise ModFileParseError(filename, lineno, "usage: module module/path")
        if mod.module_path:
            raise ModFileParseError(filename, lineno, "repeated module statement")
        mod.module_path = _unquote(args[0], filename, lineno)

    elif verb == "go":
        if len(args) != 1:
            raise ModFileParseError(filename, lineno, "usage: go 1.23")
        mod.go_version = args[0]

    elif verb == "toolchain":
        if len(args) != 1:
            raise ModFileParseError(filename, lineno, "usage: toolchain go1.23.4")
        mod.toolchain = args[0]

    elif verb == "require":
        # Inside a block the verb is implicit, so the entry is "path version"
        if len(args) != 2:
            raise ModFileParseError(filename, lineno, "usage: require module/path v1.2.3")
        path = _unquote(args[0], filename, lineno)
        version = _unquote(args[1], filename, lineno)
        if not is_valid(version):
            raise ModFileParseError(
                filename, lineno, f"invalid module version {version!r} for {path}"
            )
        version = _canonical_version(version)
        mod.requires.append(
            Requirement(
                path=path,
                version=version,
                indirect=_is_indirect(comment),
                line=index,
                in_block=in_block,
            )
        )

    elif verb in _KNOWN_VERBS:
        pass

    elif strict:
        raise ModFileParseError(filename, lineno, f"unknown directive: {verb}")

    else:
        logger.debug(f"{filename}:{lineno}: skipping unknown directive {verb}")


class Parser:
    """A go.mod file on disk together with its parsed content."""

    def __init__(self, path: Path, mod_file: ModFile, data: bytes):
        self.path = Path(path)
        self.mod_file = mod_file
        self.data = data

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "Parser":
        """
        Read and parse a go.mod file.

        Raises:
            ModFileError: If the file cannot be read or parsed
        """
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ModFileError(f"reading {path}: {e}") from e

        mod_file = parse_mod(data, filename=str(path))
        return cls(path, mod_file, data)

    @property
    def module_path(self) -> str:
        return self.mod_file.module_path

    def direct_requires(self) -> List[Requirement]:
        return [r for r in self.mod_file.requires if not r.indirect]

    def indirect_requires(self) -> List[Requirement]:
        return [r for r in self.mod_file.requires if r.indirect]

    def all_requires(self) -> List[Requirement]:
        return list(self.mod_file.requires)

    def find_require(self, module_path: str) -> Optional[Requirement]:
        for req in self.mod_file.requires:
            if req.path == module_path:
                return req
        return None

    def has_require(self, module_path: str) -> bool:
        return self.find_require(module_path) is not None
