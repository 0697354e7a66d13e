from __future__ import annotations

from typing import Optional

from .converter import (
    DEFAULT_TIMEOUT_SEC,
    Converter,
    Docx2PdfConverter,
    LibreOfficeConverter,
    make_converter,
)
from .model import PDF_EXTENSION, ConvertedDocument


def convert(
    document_bytes: bytes,
    converter: str = LibreOfficeConverter.engine,
    timeout: float = DEFAULT_TIMEOUT_SEC,
    binary: Optional[str] = None,
) -> ConvertedDocument:
    """Public API (Converter)

    Contract:
    - docx bytes in, PDF bytes out (ConvertedDocument).
    - Strategy token: "libreoffice" (headless subprocess, default) or "docx2pdf"
      (Word automation in a spawned child process).
    - Every call is bounded by `timeout`; the converter process is killed on timeout
      and temp files are removed on every exit path.
    - Any failure, including timeout or an unreadable PDF -> ConversionError.
    """
    return make_converter(converter, timeout=timeout, binary=binary).convert(document_bytes)
