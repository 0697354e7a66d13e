from __future__ import annotations

from .model import WriteResult
from .writer import FILENAME_TEMPLATE, Writer


def output_filename(number: str, initial: str, ext: str) -> str:
    """Public API (Writer)

    Contract:
    - "{number}_{initial} Schedule 9_CC.{ext}".
    - Distinct (number, initial) pairs give distinct names; a part that is not
      filename-safe raises OutputWriteError instead of being rewritten.
    """
    return Writer().output_filename(number, initial, ext)


def write_document(output_dir: str, filename: str, data: bytes) -> WriteResult:
    """Public API (Writer)

    Contract:
    - Output dir is created if missing.
    - Temp file + os.replace; no half-written file is left behind.
    - Existing file is overwritten (last write wins), reported as "overwritten".
    - OSError -> OutputWriteError.
    """
    return Writer().write_document(output_dir, filename, data)
