"""CLI for previewing compiled guardrail prompts offline."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from agentdesk.core.errors import TemplateValidationError

from .compiler import compile_prompt, default_template, risk_level, risk_score
from .schemas import dump_template, parse_template


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Guardrail template helpers.")
    sub = parser.add_subparsers(dest="command", required=True)

    preview = sub.add_parser("preview", help="Print the compiled system prompt.")
    source = preview.add_mutually_exclusive_group(required=True)
    source.add_argument("--template", type=Path, help="Template JSON document.")
    source.add_argument(
        "--intensity",
        choices=["disabled", "light", "strict", "ultra_strict"],
        help="Use the default template for this level.",
    )
    preview.add_argument("--company", required=True, help="Company name to substitute.")
    preview.add_argument(
        "--base-prompt",
        type=Path,
        default=None,
        help="File holding the operator system prompt (default: empty).",
    )

    defaults = sub.add_parser("defaults", help="Dump the default template for a level.")
    defaults.add_argument(
        "intensity", choices=["disabled", "light", "strict", "ultra_strict"]
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "defaults":
        print(json.dumps(dump_template(default_template(args.intensity)), indent=2))
        return 0

    if args.template is not None:
        try:
            template = parse_template(args.template.read_text(encoding="utf-8"))
        except TemplateValidationError as exc:
            print(f"! {exc.message}", file=sys.stderr)
            for error in exc.details.get("errors", []):
                print(f"  - {error['field']}: {error['message']}", file=sys.stderr)
            return 1
    else:
        template = default_template(args.intensity)

    base_prompt = args.base_prompt.read_text(encoding="utf-8") if args.base_prompt else ""
    score = risk_score(template)
    print(compile_prompt(template, args.company, base_prompt))
    print()
    print(f"# risk score: {score}/100 ({risk_level(score)})")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(main())
