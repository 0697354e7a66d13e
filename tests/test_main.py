from pathlib import Path

import pytest

import main as entry
from src.errors.api import TemplateFormatError, TemplateIssue
from src.jobcontroller.api import RunTally


def test_main_exits_nonzero_with_report_on_fatal_error(monkeypatch, capsys):
    def broken_template(config):
        raise TemplateFormatError([TemplateIssue("Unclosed tag", "{{CompanyHeader")])

    monkeypatch.setattr(entry, "run", broken_template)

    with pytest.raises(SystemExit) as excinfo:
        entry.main()

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "TEMPLATE FORMATTING ERROR" in err
    assert 'Problem with: "{{CompanyHeader"' in err


def test_main_uses_paths_next_to_script(monkeypatch):
    seen = []
    monkeypatch.setattr(entry, "run", lambda config: seen.append(config) or RunTally())

    entry.main()

    cfg = seen[0]
    assert Path(cfg.template_path) == Path(entry.__file__).resolve().parent / "input" / "template.docx"
    assert cfg.converter == "libreoffice"
    assert cfg.conversion_timeout == 30.0
