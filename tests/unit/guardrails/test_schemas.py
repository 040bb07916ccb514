from __future__ import annotations

import json
from pathlib import Path

import pytest

from agentdesk.core.domain import Intensity
from agentdesk.core.errors import TemplateValidationError
from agentdesk.guardrails import default_template, dump_template, parse_template
from agentdesk.guardrails.__main__ import main as guardrails_cli

pytestmark = pytest.mark.unit


def test_parse_template_reads_camel_case_document() -> None:
    template = parse_template(
        {
            "enabled": True,
            "intensity": "ultra_strict",
            "domain": "bike repairs",
            "companyName": "Velo",
            "contextLimitations": {"competitorMention": True},
            "responsePatterns": {"refusalMessage": "Only [COMPANY_NAME] topics."},
        }
    )

    assert template.intensity is Intensity.ULTRA_STRICT
    assert template.company_name == "Velo"
    assert template.context_limitations.competitor_mention is True
    assert template.context_limitations.strict_boundaries is True
    assert template.response_patterns.refusal_message == "Only [COMPANY_NAME] topics."


def test_parse_template_accepts_json_text() -> None:
    document = json.dumps({"intensity": "light", "companyName": "Acme"})

    template = parse_template(document)

    assert template.intensity is Intensity.LIGHT


def test_unknown_intensity_degrades_to_disabled() -> None:
    template = parse_template({"intensity": "maximum"})

    assert template.intensity is Intensity.DISABLED
    assert not template.is_active


@pytest.mark.parametrize(
    "document, field",
    [
        ({"enabled": "yes"}, "enabled"),
        ({"intensity": 3}, "intensity"),
        ({"contextLimitations": {"strictBoundaries": "no"}}, "contextLimitations.strictBoundaries"),
        ({"responsePatterns": {"refusalMessage": 42}}, "responsePatterns.refusalMessage"),
    ],
)
def test_structurally_invalid_documents_are_rejected(document: dict, field: str) -> None:
    with pytest.raises(TemplateValidationError) as exc_info:
        parse_template(document)

    fields = [error["field"] for error in exc_info.value.details["errors"]]
    assert field in fields
    assert exc_info.value.status_code == 422


def test_non_object_documents_are_rejected() -> None:
    with pytest.raises(TemplateValidationError):
        parse_template("[1, 2, 3]")


def test_dump_template_uses_persisted_shape() -> None:
    dumped = dump_template(default_template(Intensity.STRICT))

    assert dumped["intensity"] == "strict"
    assert "companyName" in dumped
    assert set(dumped["responsePatterns"]) == {
        "refusalMessage",
        "escalationMessage",
        "uncertaintyMessage",
    }
    assert parse_template(dumped) == default_template(Intensity.STRICT)


def test_cli_preview_prints_prompt_and_score(tmp_path: Path, capsys) -> None:
    template_file = tmp_path / "template.json"
    template_file.write_text(json.dumps({"intensity": "strict"}), encoding="utf-8")
    base_file = tmp_path / "base.txt"
    base_file.write_text("Be concise.", encoding="utf-8")

    exit_code = guardrails_cli(
        [
            "preview",
            "--template",
            str(template_file),
            "--company",
            "Acme",
            "--base-prompt",
            str(base_file),
        ]
    )

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Be concise." in out
    assert "# risk score: 0/100 (low)" in out


def test_cli_preview_reports_invalid_template(tmp_path: Path, capsys) -> None:
    template_file = tmp_path / "template.json"
    template_file.write_text(json.dumps({"enabled": "sure"}), encoding="utf-8")

    exit_code = guardrails_cli(
        ["preview", "--template", str(template_file), "--company", "Acme"]
    )

    assert exit_code == 1
    assert "enabled" in capsys.readouterr().err


def test_cli_defaults_dumps_template(capsys) -> None:
    assert guardrails_cli(["defaults", "light"]) == 0

    dumped = json.loads(capsys.readouterr().out)
    assert dumped["intensity"] == "light"
