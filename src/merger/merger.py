from __future__ import annotations

import io
import re
import zipfile
from typing import Iterator, List, Optional

from docx import Document
from docxtpl import DocxTemplate
from jinja2 import Environment, TemplateSyntaxError

from src.errors.api import FatalInputError, RowRenderError, TemplateFormatError, TemplateIssue
from .model import PLACEHOLDERS, MergeFields, TemplateReport


OPEN_TAG = "{{"
CLOSE_TAG = "}}"
CONTEXT_MAX_CHARS: int = 120
FIXED_ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)
ZIP_ENTRY_ATTR: int = 0o600 << 16

_tag_re = re.compile(r"<[^>]+>")
_ws_re = re.compile(r"\s+")


class TemplateLoadError(FatalInputError):
    pass


class Merger:
    """Fills the docx template, one fresh working copy per call."""

    def merge(self, template_bytes: bytes, fields: MergeFields) -> bytes:
        with io.BytesIO(template_bytes) as src:
            tpl = DocxTemplate(src)
            try:
                tpl.render(fields.as_context(), jinja_env=self._jinja_env())
            except TemplateSyntaxError as e:
                raise TemplateFormatError([_issue_from_syntax_error(e)]) from e
            except Exception as e:
                raise RowRenderError(str(e)) from e

            with io.BytesIO() as out:
                try:
                    tpl.save(out)
                except Exception as e:
                    raise RowRenderError(f"Cannot save merged document: {e}") from e
                return _repack_deterministic(out.getvalue())

    def check_template(self, template_bytes: bytes) -> TemplateReport:
        try:
            with io.BytesIO(template_bytes) as src:
                doc = Document(src)
        except Exception as e:
            raise TemplateLoadError(f"Template is not a readable .docx document: {e}") from e

        issues: List[TemplateIssue] = []
        for text in _paragraph_texts(doc):
            issues.extend(_scan_delimiters(text))
        if issues:
            raise TemplateFormatError(issues)

        with io.BytesIO(template_bytes) as src:
            tpl = DocxTemplate(src)
            try:
                found = tpl.get_undeclared_template_variables(self._jinja_env())
            except TemplateSyntaxError as e:
                raise TemplateFormatError([_issue_from_syntax_error(e)]) from e

        return TemplateReport(
            placeholders=sorted(found),
            unknown=sorted(name for name in found if name not in PLACEHOLDERS),
            missing=[name for name in PLACEHOLDERS if name not in found],
        )

    def _jinja_env(self) -> Environment:
        # Field values such as "Smith & Co" must not break the document XML.
        return Environment(autoescape=True)


def _paragraph_texts(doc) -> Iterator[str]:
    for p in doc.paragraphs:
        yield p.text
    yield from _table_texts(doc.tables)
    for section in doc.sections:
        for part in (section.header, section.footer):
            if part.is_linked_to_previous:
                continue
            for p in part.paragraphs:
                yield p.text
            yield from _table_texts(part.tables)


def _table_texts(tables) -> Iterator[str]:
    for table in tables:
        for row in table.rows:
            for cell in row.cells:
                for p in cell.paragraphs:
                    yield p.text


def _scan_delimiters(text: str) -> List[TemplateIssue]:
    issues: List[TemplateIssue] = []
    pos = 0
    while True:
        start = text.find(OPEN_TAG, pos)
        close = text.find(CLOSE_TAG, pos)
        if start == -1 and close == -1:
            break
        if close != -1 and (start == -1 or close < start):
            issues.append(TemplateIssue("Unopened tag", _clip(text)))
            pos = close + len(CLOSE_TAG)
            continue
        end = text.find(CLOSE_TAG, start + len(OPEN_TAG))
        reopen = text.find(OPEN_TAG, start + len(OPEN_TAG))
        if end == -1 or (reopen != -1 and reopen < end):
            issues.append(TemplateIssue("Unclosed tag", _clip(text)))
            pos = start + len(OPEN_TAG) if reopen != -1 else len(text)
            continue
        if not text[start + len(OPEN_TAG):end].strip():
            issues.append(TemplateIssue("Empty tag", _clip(text)))
        pos = end + len(CLOSE_TAG)
    return issues


def _issue_from_syntax_error(e: TemplateSyntaxError) -> TemplateIssue:
    context: Optional[str] = None
    docx_context = getattr(e, "docx_context", None)
    if docx_context:
        context = " ".join(line for line in docx_context if line.strip())
    elif e.source and e.lineno:
        lines = e.source.splitlines()
        if 0 < e.lineno <= len(lines):
            context = _tag_re.sub(" ", lines[e.lineno - 1])
    return TemplateIssue(e.message or str(e), _clip(context) if context else None)


def _clip(text: str) -> str:
    text = _ws_re.sub(" ", text).strip()
    if len(text) > CONTEXT_MAX_CHARS:
        return text[: CONTEXT_MAX_CHARS - 3] + "..."
    return text


def _repack_deterministic(data: bytes) -> bytes:
    out = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(data)) as src, zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as dst:
        for info in src.infolist():
            entry = zipfile.ZipInfo(info.filename, date_time=FIXED_ZIP_TIMESTAMP)
            entry.compress_type = zipfile.ZIP_DEFLATED
            entry.external_attr = ZIP_ENTRY_ATTR
            dst.writestr(entry, src.read(info.filename))
    return out.getvalue()
