"""CLI for formulary - formula documents, styled ranges and caret tracking."""

import argparse
import json
import logging
import platform
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .adapters.yaml_codec import (
    dump_yaml,
    formula_to_dict,
    node_to_dict,
    positioned_to_dict,
    range_to_dict,
)
from .core.cursor import CursorTracker
from .core.errors import FormulaError
from .core.formula import Formula
from .core.latex import LATEX_MODES
from .core.model import node_id
from .core.ranges import decorations, flatten_ranges
from .core.styles import (
    apply_box,
    apply_brace,
    apply_color,
    apply_strikethrough,
    remove_style,
)
from .runtime import build_runtime


def _read_formula(args: argparse.Namespace, rt: Any) -> Formula:
    text = sys.stdin.read() if args.expr == "-" else args.expr
    return rt.parser.parse(text.strip())


def _selections(raw: list[str]) -> list[list[str]]:
    # each --select is one run: comma-separated sibling ids
    return [[s.strip() for s in item.split(",") if s.strip()] for item in raw]


def cmd_latex(args: argparse.Namespace, rt: Any) -> int:
    """Print the formula serialized in the requested mode."""
    formula = _read_formula(args, rt)
    print(formula.to_latex(args.mode))
    return 0


def cmd_ranges(args: argparse.Namespace, rt: Any) -> int:
    """Print the styled range forest."""
    formula = _read_formula(args, rt)
    ranges = formula.to_styled_ranges()

    if args.flat:
        positioned = flatten_ranges(ranges)
        if args.json:
            print(json.dumps([positioned_to_dict(p) for p in positioned], indent=2))
        else:
            for p in positioned:
                label = p.id if p.id is not None else repr(p.range.text)
                print(f"{p.start}\t{p.end}\t{p.depth}\t{label}")
        return 0

    if args.json:
        print(json.dumps([range_to_dict(r) for r in ranges], indent=2))
        return 0

    for deco in decorations(ranges):
        tooltip = deco.hints.tooltip if deco.hints and deco.hints.tooltip else ""
        indent = "  " * deco.depth
        print(f"{indent}{deco.id}\t{deco.start}-{deco.end}\t{tooltip}".rstrip())
    return 0


def cmd_tree(args: argparse.Namespace, rt: Any) -> int:
    """Dump the node tree."""
    formula = _read_formula(args, rt)
    data = formula_to_dict(formula)
    if args.format == "json":
        print(json.dumps(data, indent=2))
    else:
        print(dump_yaml(data), end="")
    return 0


def cmd_find(args: argparse.Namespace, rt: Any) -> int:
    """Show a node, its markup span and its ancestry."""
    formula = _read_formula(args, rt)
    node = formula.find_node(args.id)
    if node is None:
        print(f"Node {args.id} not found", file=sys.stderr)
        return 1

    span = formula.latex_spans()[args.id]
    path = [f"{a.kind}:{node_id(a)}" for a in formula.ancestors_of(args.id)]
    if args.json:
        print(json.dumps({
            "node": node_to_dict(node),
            "start": span.start,
            "end": span.end,
            "ancestors": path,
        }, indent=2))
        return 0

    print(f"kind: {node.kind}")
    print(f"span: {span.start}-{span.end}")
    print(f"latex: {formula.to_latex()[span.start:span.end]}")
    print(f"ancestors: {' > '.join(path) if path else '(top level)'}")
    return 0


def cmd_style(args: argparse.Namespace, rt: Any) -> int:
    """Apply or remove a style and print the resulting markup."""
    formula = _read_formula(args, rt)
    selections = _selections(args.select)
    style = rt.config.style

    if args.style_cmd == "color":
        result = apply_color(formula, selections, args.color, rt.idgen)
    elif args.style_cmd == "box":
        background = args.background or style.box_background
        result = apply_box(formula, selections, args.color, rt.idgen, background)
    elif args.style_cmd == "brace":
        caption = args.caption if args.caption is not None else style.brace_caption
        result = apply_brace(formula, selections, not args.under, rt.idgen, caption)
    elif args.style_cmd == "strike":
        result = apply_strikethrough(formula, selections, rt.idgen)
    elif args.style_cmd == "unstyle":
        ids = [nid for run in selections for nid in run]
        result = remove_style(formula, ids, rt.idgen)
    else:
        print(f"Unknown style command: {args.style_cmd}", file=sys.stderr)
        return 1

    if result is formula and not args.quiet:
        print("Nothing to change", file=sys.stderr)
    print(result.to_latex(args.mode))
    return 0


def cmd_cursor(args: argparse.Namespace, rt: Any) -> int:
    """Replay caret moves and print the active styled ranges after each."""
    formula = _read_formula(args, rt)
    offsets = args.offsets
    tracker = CursorTracker(formula.to_styled_ranges(), offsets[0])
    print(f"{offsets[0]}\t")
    for offset in offsets[1:]:
        active = tracker.move(offset)
        print(f"{offset}\t{','.join(sorted(active))}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="formulary", description="Formula document CLI"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: search cwd/formulary.toml)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging on stderr"
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Minimize output"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=(
            f"formulary {__version__} "
            f"(Python {platform.python_version()}, {platform.platform()})"
        ),
    )

    subparsers = parser.add_subparsers(dest="cmd", required=True)

    def add_expr(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("expr", help="Formula markup, or - to read stdin")

    # latex command
    parser_latex = subparsers.add_parser("latex", help="Re-serialize a formula")
    add_expr(parser_latex)
    parser_latex.add_argument(
        "--mode", choices=LATEX_MODES, default="ast", help="Serialization mode (default: ast)"
    )

    # ranges command
    parser_ranges = subparsers.add_parser("ranges", help="Show styled ranges")
    add_expr(parser_ranges)
    parser_ranges.add_argument("--json", action="store_true", help="Machine-readable output")
    parser_ranges.add_argument(
        "--flat", action="store_true", help="List every range with absolute offsets"
    )

    # tree command
    parser_tree = subparsers.add_parser("tree", help="Dump the node tree")
    add_expr(parser_tree)
    parser_tree.add_argument(
        "--format", choices=["yaml", "json"], default="yaml", help="Output format (default: yaml)"
    )

    # find command
    parser_find = subparsers.add_parser("find", help="Locate a node by id")
    add_expr(parser_find)
    parser_find.add_argument("id", help="Node ID")
    parser_find.add_argument("--json", action="store_true", help="Machine-readable output")

    # style command
    parser_style = subparsers.add_parser("style", help="Apply or remove styles")
    style_sub = parser_style.add_subparsers(dest="style_cmd", required=True)
    style_help = {
        "color": "Color the selection",
        "box": "Box the selection",
        "brace": "Annotate the selection with a brace",
        "strike": "Strike the selection through",
        "unstyle": "Remove the styles with the selected ids",
    }
    for name, help_text in style_help.items():
        sub = style_sub.add_parser(name, help=help_text)
        add_expr(sub)
        sub.add_argument(
            "--select",
            action="append",
            required=True,
            help="Comma-separated run of sibling ids (repeatable)",
        )
        sub.add_argument(
            "--mode", choices=LATEX_MODES, default="ast", help="Output mode (default: ast)"
        )
        if name in ("color", "box"):
            sub.add_argument("--color", required=True, help="Color (or border color for box)")
        if name == "box":
            sub.add_argument("--background", help="Background color (default from config)")
        if name == "brace":
            sub.add_argument("--under", action="store_true", help="Under brace instead of over")
            sub.add_argument("--caption", help="Caption text (default from config)")

    # cursor command
    parser_cursor = subparsers.add_parser("cursor", help="Replay caret moves")
    add_expr(parser_cursor)
    parser_cursor.add_argument("offsets", type=int, nargs="+", help="Caret offsets in order")

    args = parser.parse_args(argv)

    rt = build_runtime(config_path=args.config)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else rt.config.logging.level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    handlers = {
        "latex": cmd_latex,
        "ranges": cmd_ranges,
        "tree": cmd_tree,
        "find": cmd_find,
        "style": cmd_style,
        "cursor": cmd_cursor,
    }

    handler = handlers.get(args.cmd)
    if handler:
        try:
            exit_code = handler(args, rt)
            sys.exit(exit_code)
        except FormulaError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        print(f"Unknown command: {args.cmd}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
