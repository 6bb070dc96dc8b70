import io
import json

from rich.console import Console

from ctxrules.errors import LimitExceededWarning
from ctxrules.models import Provenance, ResolvedEntry, ResolvedRuleList, Scope, Source
from ctxrules.report import render_resolved


def _console() -> tuple[Console, io.StringIO]:
    buf = io.StringIO()
    return Console(file=buf, width=200, color_system=None), buf


def _result(warning=None) -> ResolvedRuleList:
    return ResolvedRuleList(
        entries=(
            ResolvedEntry("react", 10, Provenance.DIRECT, frozenset({Source.FILE_TYPE, Source.MANIFEST})),
            ResolvedEntry("ui-base", 10, Provenance.REQUIRED, required_by=("react",), depth=1),
        ),
        scope=Scope.SINGLE_FILE_EDIT,
        warning=warning,
    )


def test_render_explains_each_rule() -> None:
    console, buf = _console()
    render_resolved(_result(), console)
    out = buf.getvalue()

    assert "Rules for single_file_edit" in out
    assert "react" in out
    assert "file_type, manifest" in out
    assert "required_dependency" in out
    assert "directly_matched" in out


def test_render_reports_limit_warning() -> None:
    console, buf = _console()
    render_resolved(_result(LimitExceededWarning(limit=5, required_count=7, dropped=3)), console)
    assert "dropped 3" in buf.getvalue()


def test_render_empty_result() -> None:
    console, buf = _console()
    render_resolved(ResolvedRuleList(), console)
    assert "No rules matched." in buf.getvalue()


def test_to_dict_is_json_ready() -> None:
    data = json.loads(json.dumps(_result(LimitExceededWarning(5, 7, 3)).to_dict()))
    assert data["scope"] == "single_file_edit"
    assert data["rules"][1] == {
        "rule_id": "ui-base",
        "score": 10,
        "provenance": "required_dependency",
        "sources": [],
        "depth": 1,
        "required_by": ["react"],
    }
    assert data["warning"]["required_count"] == 7
