from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class TemplateIssue:
    message: str
    context: Optional[str] = None


class BatchError(RuntimeError):
    """Base for every failure kind raised by the batch components."""


class FatalInputError(BatchError):
    pass


class TemplateFormatError(BatchError):
    def __init__(self, issues: List[TemplateIssue]):
        self.issues: List[TemplateIssue] = list(issues)
        first = self.issues[0].message if self.issues else "template markup is broken"
        super().__init__(f"{first} ({len(self.issues)} issue(s))")


class RowRenderError(BatchError):
    pass


class ConversionError(BatchError):
    pass


class OutputWriteError(BatchError):
    pass
