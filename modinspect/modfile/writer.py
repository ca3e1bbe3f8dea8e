"""
Editing go.mod files.

Edits are applied to the original lines of the file so that comments,
ordering and the formatting of untouched directives survive a round trip.
After every edit the content is parsed again, which keeps the line indexes
of the parsed requirements in sync with the text.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from modinspect.versioning import is_valid
from .exceptions import ModFileError
from .models import ModFile
from .parser import Parser, parse_mod

logger = logging.getLogger(__name__)


class Writer:
    """Applies requirement changes to a parsed go.mod and writes it back safely."""

    def __init__(self, parser: Parser):
        self.parser = parser
        self.backup_path: Optional[Path] = None

    @property
    def mod_file(self) -> ModFile:
        return self.parser.mod_file

    def _reparse(self, lines: List[str]) -> None:
        self.parser.mod_file = parse_mod(
            "\n".join(lines), filename=str(self.parser.path)
        )

    # Backups

    def backup(self) -> Path:
        """Copy the original file content next to it, once per writer."""
        if self.backup_path is not None:
            return self.backup_path

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup_path = Path(f"{self.parser.path}.backup.{timestamp}")
        try:
            backup_path.write_bytes(self.parser.data)
        except OSError as e:
            raise ModFileError(f"creating backup: {e}") from e

        self.backup_path = backup_path
        logger.debug(f"Backed up {self.parser.path} to {backup_path}")
        return backup_path

    def restore_backup(self) -> None:
        if self.backup_path is None:
            raise ModFileError("no backup to restore")
        try:
            self.parser.path.write_bytes(self.backup_path.read_bytes())
        except OSError as e:
            raise ModFileError(f"restoring backup: {e}") from e

    def cleanup_backup(self) -> None:
        if self.backup_path is None:
            return
        try:
            self.backup_path.unlink()
        except OSError as e:
            raise ModFileError(f"removing backup: {e}") from e
        self.backup_path = None

    # Edits

    def update_require(self, module_path: str, version: str) -> None:
        """
        Set the required version of a module, adding the requirement if needed.

        An existing ``// indirect`` marker is kept. Duplicate entries for the
        same path are collapsed into the first one.

        Raises:
            ModFileError: If the version is not a valid module version
        """
        if not is_valid(version):
            raise ModFileError(f"updating require: invalid version {version!r}")

        lines = list(self.mod_file.lines)
        existing = [r for r in self.mod_file.requires if r.path == module_path]

        if existing:
            first = existing[0]
            lines[first.line] = _format_require(
                lines[first.line], module_path, version, first.in_block
            )
            for line_index in sorted((r.line for r in existing[1:]), reverse=True):
                del lines[line_index]
        else:
            lines = self._insert_require(lines, module_path, version)

        self._reparse(lines)

    def _insert_require(
        self, lines: List[str], module_path: str, version: str
    ) -> List[str]:
        blocks = self.mod_file.require_blocks()
        direct_blocks = [
            b
            for b in blocks
            if any(
                b.start < r.line < b.end and not r.indirect
                for r in self.mod_file.requires
            )
        ]
        target = (direct_blocks or blocks or [None])[-1]

        if target is not None:
            lines.insert(target.end, f"\t{module_path} {version}")
            return lines

        single = [r for r in self.mod_file.requires if not r.in_block]
        if single:
            lines.insert(single[-1].line + 1, f"require {module_path} {version}")
            return lines

        while lines and not lines[-1].strip():
            lines.pop()
        lines.extend(["", f"require {module_path} {version}"])
        return lines

    def drop_require(self, module_path: str) -> None:
        """Remove every requirement on a module. Unknown paths are ignored."""
        doomed = {r.line for r in self.mod_file.requires if r.path == module_path}
        if not doomed:
            return
        lines = [line for i, line in enumerate(self.mod_file.lines) if i not in doomed]
        self._reparse(lines)
        self.cleanup()

    def cleanup(self) -> None:
        """Remove require blocks that no longer hold any entry."""
        mod = self.mod_file
        empty = [
            b
            for b in mod.require_blocks()
            if not any(b.start < r.line < b.end for r in mod.requires)
            and not any(mod.lines[i].strip() for i in range(b.start + 1, b.end))
        ]
        if not empty:
            return

        doomed = set()
        for block in empty:
            doomed.update(range(block.start, block.end + 1))
        self._reparse([line for i, line in enumerate(mod.lines) if i not in doomed])

    # Output

    def format(self) -> str:
        return self.mod_file.format()

    def write(self) -> None:
        content = self.format()
        try:
            os.makedirs(self.parser.path.parent, exist_ok=True)
            self.parser.path.write_text(content)
        except OSError as e:
            raise ModFileError(f"writing {self.parser.path}: {e}") from e

    def safe_write(self) -> None:
        """
        Back up, write and validate the file, restoring the backup on failure.

        Raises:
            ModFileError: If writing or validation failed. The message tells
                whether the backup could be restored.
        """
        try:
            self.backup()
        except ModFileError as e:
            raise ModFileError(f"backup failed: {e}") from e

        try:
            self.write()
        except ModFileError as e:
            self._restore_after("write", e)

        try:
            Parser.from_path(self.parser.path)
        except ModFileError as e:
            self._restore_after("validation", e)

        self.parser.data = self.format().encode("utf-8")

    def _restore_after(self, stage: str, error: ModFileError) -> None:
        try:
            self.restore_backup()
        except ModFileError as restore_error:
            raise ModFileError(
                f"{stage} failed and restore failed: {restore_error} (original error: {error})"
            ) from error
        raise ModFileError(f"{stage} failed (backup restored): {error}") from error


def _format_require(line: str, module_path: str, version: str, in_block: bool) -> str:
    indent = line[: len(line) - len(line.lstrip())]
    comment = ""
    if "//" in line:
        comment = " //" + line.split("//", 1)[1].rstrip()
    prefix = "" if in_block else "require "
    return f"{indent}{prefix}{module_path} {version}{comment}"
