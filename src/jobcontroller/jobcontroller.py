from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

from src.converter.api import PDF_EXTENSION, Converter, make_converter
from src.errors.api import (
    BatchError,
    ConversionError,
    FatalInputError,
    OutputWriteError,
    RowRenderError,
    TemplateFormatError,
)
from src.merger.api import PLACEHOLDERS, MergeFields, TemplateLoadError, check_template, merge
from src.rowsource.api import InputRecord, read_records
from src.writer.api import output_filename, write_document

from .model import BatchConfig, RowResult, RowStatus, RunTally


DOCX_EXTENSION = "docx"
SEPARATOR = "=" * 50


class JobController:
    def __init__(self, config: Optional[BatchConfig] = None, converter: Optional[Converter] = None):
        self.config = config or BatchConfig()
        self.converter = converter or make_converter(
            self.config.converter,
            timeout=self.config.conversion_timeout,
            binary=self.config.soffice_binary,
        )

    def run(self) -> RunTally:
        cfg = self.config

        # LOAD_INPUTS: nothing is written unless template and rows both load.
        template_bytes = self._load_template(cfg.template_path)
        report = check_template(template_bytes)
        print(f"Template is valid: {Path(cfg.template_path).name}")
        if report.unknown:
            print(f"Warning: template uses unknown placeholders (rendered empty): {', '.join(report.unknown)}")
        if report.missing:
            print(f"Warning: template has no placeholder for: {', '.join(report.missing)}")

        records = read_records(cfg.excel_path)
        print(f"Rows found: {len(records)}")
        try:
            Path(cfg.output_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FatalInputError(f"Cannot create output directory {cfg.output_dir}: {e}") from e

        tally = RunTally()
        for record in records:
            result = self.process_row(record, template_bytes)
            tally = tally.add(result)

        self._print_summary(tally)
        return tally

    def process_row(self, record: InputRecord, template_bytes: bytes) -> RowResult:
        cfg = self.config

        # VALIDATE
        if not record.is_valid:
            print(
                f"Skipping row {record.row_number} with missing data: {record.number or '-'} "
                f"(missing: {', '.join(record.missing_fields())})"
            )
            return RowResult(record=record, status=RowStatus.SKIPPED)

        # MERGE + WRITE_DOCUMENT
        fields = MergeFields(header=record.header, number=record.number, initial=record.initial)
        try:
            docx_name = output_filename(record.number, record.initial, DOCX_EXTENSION)
            docx_bytes = merge(template_bytes, fields)
            docx = write_document(cfg.output_dir, docx_name, docx_bytes)
        except TemplateFormatError:
            raise
        except (RowRenderError, OutputWriteError) as e:
            print(f"Failed to process row {record.row_number} ({record.number}): {e}", file=sys.stderr)
            return RowResult(record=record, status=RowStatus.FAILED, error=str(e))
        print(f"Generated DOCX: {docx_name}" + (" (overwritten)" if docx.status == "overwritten" else ""))

        # CONVERT + WRITE_CONVERTED
        try:
            converted = self.converter.convert(docx_bytes)
            pdf_name = output_filename(record.number, record.initial, PDF_EXTENSION)
            pdf = write_document(cfg.output_dir, pdf_name, converted.data)
        except (ConversionError, OutputWriteError) as e:
            print(f"PDF conversion failed for {record.number}: {e}", file=sys.stderr)
            return RowResult(record=record, status=RowStatus.PARTIAL, docx_path=docx.path, error=str(e))
        print(f"Generated PDF: {pdf_name} ({converted.page_count} page(s))")

        return RowResult(record=record, status=RowStatus.DONE, docx_path=docx.path, pdf_path=pdf.path)

    def _load_template(self, template_path: str) -> bytes:
        path = Path(template_path)
        try:
            return path.read_bytes()
        except OSError as e:
            raise TemplateLoadError(f"Cannot read template {path}: {e}") from e

    def _print_summary(self, tally: RunTally) -> None:
        print()
        print("Process completed!")
        print(f"Successful: {tally.success_count}")
        print(f"Errors: {tally.error_count}")
        if tally.conversion_failed_count:
            print(f"DOCX only (PDF conversion failed): {tally.conversion_failed_count}")
        print(f"Skipped: {tally.skipped_count}")


def fatal_report(error: BatchError, config: BatchConfig) -> List[str]:
    if not isinstance(error, TemplateFormatError):
        return [f"Run aborted: {error}"]

    template_name = Path(config.template_path).name
    example = "{{" + PLACEHOLDERS[0] + "}}"
    lines = [
        "TEMPLATE FORMATTING ERROR",
        "The Word template has formatting issues that break its placeholders.",
        "",
        "To fix:",
        f"1. Open {template_name} in Microsoft Word",
        "2. Select all text (Ctrl+A)",
        "3. Remove formatting (Ctrl+Shift+N)",
        f"4. Make sure placeholders like {example} are typed fresh, in one go",
        "5. Save and try again",
    ]
    if error.issues:
        lines += ["", "Specific issues:"]
        for i, issue in enumerate(error.issues, start=1):
            lines.append(f"{i}. {issue.message}")
            lines.append(f'   Problem with: "{issue.context or "unknown"}"')
    return lines


def print_fatal(error: BatchError, config: BatchConfig) -> None:
    print(SEPARATOR, file=sys.stderr)
    for line in fatal_report(error, config):
        print(line, file=sys.stderr)
    print(SEPARATOR, file=sys.stderr)
