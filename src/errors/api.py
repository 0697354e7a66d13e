from __future__ import annotations

from .model import (
    BatchError,
    ConversionError,
    FatalInputError,
    OutputWriteError,
    RowRenderError,
    TemplateFormatError,
    TemplateIssue,
)
