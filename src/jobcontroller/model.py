from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional

from src.rowsource.api import InputRecord

TEMPLATE_PATH = "input/template.docx"
EXCEL_PATH = "input/companyList.xlsx"
OUTPUT_DIR = "output"
CONVERTER = "libreoffice"
CONVERSION_TIMEOUT_SEC = 30.0
SOFFICE_BINARY = "soffice"


@dataclass(frozen=True)
class BatchConfig:
    template_path: str = TEMPLATE_PATH
    excel_path: str = EXCEL_PATH
    output_dir: str = OUTPUT_DIR
    converter: str = CONVERTER  # libreoffice|docx2pdf
    conversion_timeout: float = CONVERSION_TIMEOUT_SEC
    soffice_binary: str = SOFFICE_BINARY

    @classmethod
    def for_project(cls, project_root: str) -> "BatchConfig":
        root = Path(project_root)
        return cls(
            template_path=str(root / TEMPLATE_PATH),
            excel_path=str(root / EXCEL_PATH),
            output_dir=str(root / OUTPUT_DIR),
        )


class RowStatus(str, Enum):
    DONE = "DONE"
    PARTIAL = "PARTIAL"  # editable document written, PDF conversion failed
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class RowResult:
    record: InputRecord
    status: RowStatus
    docx_path: Optional[str] = None
    pdf_path: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class RunTally:
    success_count: int = 0
    error_count: int = 0
    conversion_failed_count: int = 0
    skipped_count: int = 0

    def add(self, result: RowResult) -> "RunTally":
        if result.status is RowStatus.DONE:
            return replace(self, success_count=self.success_count + 1)
        if result.status is RowStatus.FAILED:
            return replace(self, error_count=self.error_count + 1)
        if result.status is RowStatus.PARTIAL:
            return replace(self, conversion_failed_count=self.conversion_failed_count + 1)
        return replace(self, skipped_count=self.skipped_count + 1)
