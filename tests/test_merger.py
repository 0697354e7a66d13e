import io
import zipfile

import pytest

from conftest import build_docx, docx_text
from src.errors.api import RowRenderError, TemplateFormatError
from src.merger.api import MergeFields, TemplateLoadError, check_template, merge

ACME = MergeFields(header="Acme Corp", number="100", initial="A")


def _document_xml(data: bytes) -> str:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return zf.read("word/document.xml").decode("utf-8")


def test_merge_substitutes_all_placeholders(valid_template_bytes: bytes):
    out = merge(valid_template_bytes, ACME)

    text = docx_text(out)
    assert "Acme Corp" in text
    assert "Company no. 100 / A" in text
    assert "{{" not in text and "}}" not in text


def test_merge_is_deterministic_and_leaves_template_untouched(valid_template_bytes: bytes):
    original = bytes(valid_template_bytes)

    first = merge(valid_template_bytes, ACME)
    second = merge(valid_template_bytes, ACME)

    assert first == second
    assert valid_template_bytes == original
    assert "{{CompanyHeader}}" in docx_text(valid_template_bytes)


def test_rows_do_not_leak_into_each_other(valid_template_bytes: bytes):
    merge(valid_template_bytes, ACME)
    beta = merge(valid_template_bytes, MergeFields(header="Beta LLC", number="102", initial="B"))

    text = docx_text(beta)
    assert "Beta LLC" in text
    assert "Acme Corp" not in text


def test_placeholder_split_across_runs_still_resolves():
    template = build_docx([["{{Company", "Header}}"], ["No. {{", "CompanyNumber", "}}"]])

    out = merge(template, ACME)

    text = docx_text(out)
    assert "Acme Corp" in text
    assert "No. 100" in text
    assert "{{" not in text


def test_newlines_in_values_become_line_breaks(valid_template_bytes: bytes):
    fields = MergeFields(header="Acme Corp\nLondon", number="100", initial="A")

    xml = _document_xml(merge(valid_template_bytes, fields))

    assert "<w:br/>" in xml
    assert "London" in xml
    assert "\\n" not in xml


def test_markup_characters_in_values_are_escaped(valid_template_bytes: bytes):
    fields = MergeFields(header="Smith & Sons <Ltd>", number="100", initial="A")

    out = merge(valid_template_bytes, fields)

    assert "Smith & Sons <Ltd>" in docx_text(out)


def test_check_template_reports_placeholders(valid_template_bytes: bytes):
    report = check_template(valid_template_bytes)
    assert report.placeholders == ["CompanyHeader", "CompanyInitial", "CompanyNumber"]
    assert report.unknown == []
    assert report.missing == []


def test_check_template_flags_unknown_placeholder():
    template = build_docx(["{{CompanyHeader}} {{CompanyNumber}} {{CompanyInitial}} {{Director}}"])
    report = check_template(template)
    assert report.unknown == ["Director"]


def test_unclosed_placeholder_is_a_template_format_error():
    template = build_docx(["Dear {{CompanyHeader", "Number {{CompanyNumber}}"])

    with pytest.raises(TemplateFormatError) as excinfo:
        check_template(template)

    issues = excinfo.value.issues
    assert len(issues) >= 1
    assert issues[0].message == "Unclosed tag"
    assert "Dear {{CompanyHeader" in issues[0].context


def test_every_broken_paragraph_is_reported_in_order():
    template = build_docx(["{{CompanyHeader", "fine {{CompanyNumber}}", "CompanyInitial}}", "{{ }}"])

    with pytest.raises(TemplateFormatError) as excinfo:
        check_template(template)

    assert [i.message for i in excinfo.value.issues] == ["Unclosed tag", "Unopened tag", "Empty tag"]


def test_placeholder_split_across_paragraphs_is_a_format_error_not_a_row_error():
    template = build_docx(["{{Company", "Header}}"])

    with pytest.raises(TemplateFormatError) as excinfo:
        check_template(template)
    assert not isinstance(excinfo.value, RowRenderError)
    assert len(excinfo.value.issues) == 2


def test_merge_raises_template_format_error_on_broken_markup():
    template = build_docx(["{{CompanyHeader"])
    with pytest.raises(TemplateFormatError) as excinfo:
        merge(template, ACME)
    assert excinfo.value.issues


def test_jinja_syntax_error_is_reported_with_context():
    template = build_docx(["{{ CompanyHeader | }}"])

    with pytest.raises(TemplateFormatError) as excinfo:
        check_template(template)

    assert len(excinfo.value.issues) == 1
    assert excinfo.value.issues[0].message


def test_non_docx_template_is_a_load_error():
    with pytest.raises(TemplateLoadError):
        check_template(b"plain text, not a document")


def test_row_render_error_for_bad_data():
    template = build_docx(["Per unit: {{ 1000 // (CompanyNumber | int) }}"])

    assert "Per unit: 10" in docx_text(merge(template, ACME))
    with pytest.raises(RowRenderError):
        merge(template, MergeFields(header="Zero Ltd", number="0", initial="Z"))
