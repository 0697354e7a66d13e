import io
from pathlib import Path
from typing import List, Sequence, Union

import fitz  # PyMuPDF
import pytest
from docx import Document
from openpyxl import Workbook

from src.converter.api import ConvertedDocument
from src.errors.api import ConversionError

HEADER_ROW = ["Company Header", "Company Number", "Company Initial"]

Paragraph = Union[str, Sequence[str]]


def build_docx(paragraphs: List[Paragraph]) -> bytes:
    """A paragraph given as a list of strings is written as one run per string."""
    doc = Document()
    for para in paragraphs:
        if isinstance(para, str):
            doc.add_paragraph(para)
            continue
        p = doc.add_paragraph()
        for i, text in enumerate(para):
            run = p.add_run(text)
            run.bold = i % 2 == 1
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def build_workbook(path: Path, rows: List[Sequence[object]]) -> Path:
    wb = Workbook()
    ws = wb.active
    ws.append(HEADER_ROW)
    for row in rows:
        ws.append(list(row))
    wb.save(path)
    return path


def build_pdf(pages: int = 1) -> bytes:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page()
        page.insert_text((72, 72), f"page {i + 1}")
    data = doc.tobytes()
    doc.close()
    return data


def docx_text(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    return "\n".join(p.text for p in doc.paragraphs)


VALID_TEMPLATE = [
    "Schedule 9",
    "{{CompanyHeader}}",
    "Company no. {{CompanyNumber}} / {{CompanyInitial}}",
]


@pytest.fixture
def valid_template_bytes() -> bytes:
    return build_docx(VALID_TEMPLATE)


class FakeConverter:
    """Records every call; the calls numbered in fail_on (1-based) raise ConversionError."""

    engine = "fake"

    def __init__(self, fail_on=()):
        self.calls: List[bytes] = []
        self.fail_on = set(fail_on)

    def convert(self, document_bytes: bytes) -> ConvertedDocument:
        self.calls.append(document_bytes)
        if len(self.calls) in self.fail_on:
            raise ConversionError("fake converter timed out after 30s")
        return ConvertedDocument(data=build_pdf(), page_count=1, engine=self.engine)


@pytest.fixture
def fake_converter() -> FakeConverter:
    return FakeConverter()
