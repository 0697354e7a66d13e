from __future__ import annotations

from typing import Optional

from src.converter.api import Converter
from .jobcontroller import JobController, fatal_report, print_fatal
from .model import BatchConfig, RowResult, RowStatus, RunTally


def run(config: Optional[BatchConfig] = None, converter: Optional[Converter] = None) -> RunTally:
    """Public API (JobController)

    Contract:
    - Load template + rows first; fatal errors (FatalInputError, TemplateFormatError)
      propagate before any output is written.
    - Serial loop: validate -> merge -> write .docx -> convert -> write .pdf.
    - Invalid rows are skipped; RowRenderError / write errors fail the row;
      ConversionError leaves the row PARTIAL (docx only). None of these stop the run.
    - TemplateFormatError during a merge aborts the run.
    - Prints one line per row and a final summary; returns the RunTally.
    """
    return JobController(config, converter).run()
