# mermaid_sequence/cli.py
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import RenderConfig
from .constants import LINE_SEPARATOR_DEFAULT, LINE_SEPARATORS
from .errors import DiagramError
from .mermaid_fmt import mermaid_block
from .scenario import build_diagram, get_diagram, load_scenarios
from .suite import render_suite
from .validate import ValidateConfig, validate_scenarios


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mermaid-sequence",
        description="Generate Mermaid sequence diagrams from YAML scenario documents.",
    )
    parser.add_argument(
        "--scenario",
        type=Path,
        required=True,
        help="Scenario YAML file, or a directory whose *.yaml files are merged in name order.",
    )
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=None,
        help=(
            "Write one <diagram_id>.md per diagram plus index.md here. "
            "When omitted, a single diagram is printed to stdout."
        ),
    )
    parser.add_argument(
        "--diagram",
        type=str,
        default=None,
        help="Diagram id to print in stdout mode (default: the first diagram).",
    )
    parser.add_argument(
        "--markdown",
        action="store_true",
        help="Wrap stdout output in a ```mermaid code fence.",
    )
    parser.add_argument(
        "--line-separator",
        type=str,
        choices=tuple(sorted(LINE_SEPARATORS)),
        default=LINE_SEPARATOR_DEFAULT,
        help="Line separator used for the whole rendered document.",
    )
    parser.add_argument(
        "--no-check-nesting",
        action="store_true",
        help=(
            "Trust the scenario's block start/end pairing (no unmatched/unclosed "
            "block or activation errors)."
        ),
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail generation on validation warnings. Errors always fail.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entrypoint."""
    args = build_parser().parse_args(argv)
    cfg = RenderConfig(
        line_separator_name=args.line_separator,
        check_nesting=not args.no_check_nesting,
        strict=args.strict,
    )

    model = load_scenarios(args.scenario)

    errors, warnings = validate_scenarios(
        model, ValidateConfig(check_structure=cfg.check_nesting)
    )
    for warning in warnings:
        print(f"warning: {warning}", file=sys.stderr)

    if errors or (cfg.strict and warnings):
        for error in errors:
            print(f"error: {error}", file=sys.stderr)
        raise SystemExit(2)

    try:
        if args.out_dir is not None:
            render_suite(model, args.out_dir, cfg)
            return

        try:
            entry = get_diagram(model, args.diagram)
        except KeyError as e:
            print(f"error: {e.args[0]}", file=sys.stderr)
            raise SystemExit(2) from e

        diagram = build_diagram(entry, cfg.diagram_config())
        sep = diagram.config.line_separator
        # Surface construction errors before anything reaches stdout.
        diagram.check()
        if args.markdown:
            sys.stdout.write(mermaid_block(diagram.render(), sep))
        else:
            diagram.finalize(sys.stdout)
            sys.stdout.write(sep)
    except DiagramError as e:
        print(f"error: {e}", file=sys.stderr)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
