from __future__ import annotations

from .merger import Merger, TemplateLoadError
from .model import PLACEHOLDERS, MergeFields, TemplateReport


def merge(template_bytes: bytes, fields: MergeFields) -> bytes:
    """Public API (Merger)

    Contract:
    - Fresh DocxTemplate per call; template_bytes are never modified.
    - Placeholders {{CompanyHeader}}, {{CompanyNumber}}, {{CompanyInitial}}.
    - Placeholders split across runs resolve; "\\n" in values becomes a line break.
    - Deterministic: same template + same fields -> identical bytes.
    - Broken markup -> TemplateFormatError; any other failure -> RowRenderError.
    """
    return Merger().merge(template_bytes, fields)


def check_template(template_bytes: bytes) -> TemplateReport:
    """Public API (Merger): structural check before the first row.

    Contract:
    - Not a docx -> TemplateLoadError (fatal).
    - Unbalanced / empty delimiters or Jinja syntax errors -> TemplateFormatError
      carrying every issue found, in document order.
    - Unknown placeholders are reported, not raised.
    """
    return Merger().check_template(template_bytes)
