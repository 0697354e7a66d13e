from __future__ import annotations

import os
from pathlib import Path

from src.errors.api import OutputWriteError
from .model import WriteResult


FILENAME_TEMPLATE = "{number}_{initial} Schedule 9_CC.{ext}"
_FORBIDDEN_CHARS = set('<>:"/\\|?*')


class Writer:
    def output_filename(self, number: str, initial: str, ext: str) -> str:
        for label, part in (("company number", number), ("company initial", initial)):
            self._check_name_part(label, part)
        return FILENAME_TEMPLATE.format(number=number, initial=initial, ext=ext.lstrip("."))

    def write_document(self, output_dir: str, filename: str, data: bytes) -> WriteResult:
        out_dir = Path(output_dir)
        target = out_dir / filename
        tmp_path = out_dir / f".{filename}.part"
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            status = "overwritten" if target.exists() else "created"
            tmp_path.write_bytes(data)
            os.replace(tmp_path, target)
        except OSError as e:
            self._discard(tmp_path)
            raise OutputWriteError(f"Cannot write {target}: {e}") from e
        return WriteResult(path=str(target), size=len(data), status=status)

    def _check_name_part(self, label: str, part: str) -> None:
        # Parts are never rewritten: distinct pairs must keep distinct filenames.
        bad = sorted({ch for ch in part if ch in _FORBIDDEN_CHARS or ord(ch) < 32})
        if bad:
            shown = ", ".join(repr(ch) for ch in bad)
            raise OutputWriteError(f"{label} {part!r} contains characters not allowed in a filename: {shown}")
        if part in (".", ".."):
            raise OutputWriteError(f"{label} {part!r} is not a usable filename part")

    def _discard(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError:
            pass
