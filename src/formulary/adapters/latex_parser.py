import logging
import re
from collections.abc import Iterable
from dataclasses import replace

from ..core.errors import DuplicateIdError, LatexParseError
from ..core.formula import Formula
from ..core.latex import TEXT_ESCAPES
from ..core.model import (
    AlignMarker,
    Aligned,
    Array,
    Box,
    Brace,
    Color,
    Fraction,
    Group,
    NewLine,
    Node,
    Op,
    Root,
    Script,
    Space,
    Strikethrough,
    Symbol,
    Text,
    Variable,
    node_id,
)
from ..core.ports import FormulaParser
from ..core.transform import label_nodes

logger = logging.getLogger(__name__)

COMMAND_RE = re.compile(r"\\([A-Za-z]+|.)", re.DOTALL)

SPACING_COMMANDS = frozenset(
    {"\\,", "\\;", "\\:", "\\!", "\\ ", "\\quad", "\\qquad", "\\enspace", "\\thinspace"}
)
BIG_OPERATORS = frozenset(
    {
        "\\sum",
        "\\prod",
        "\\coprod",
        "\\int",
        "\\iint",
        "\\iiint",
        "\\oint",
        "\\bigcup",
        "\\bigcap",
        "\\bigoplus",
        "\\bigotimes",
    }
)
WHITESPACE = " \t\r\n"
TEXT_UNESCAPES = tuple((escaped, ch) for ch, escaped in TEXT_ESCAPES.items())


def _collapse(items: list[Node]) -> Node:
    # Argument slots: one item stands for itself, anything else is a Group
    if len(items) == 1:
        return items[0]
    return Group("", tuple(items))


def _unescape_text(raw: str) -> list[str]:
    """Characters of a \\text body, with escaped braces and backslashes restored."""
    chars: list[str] = []
    i = 0
    while i < len(raw):
        for escaped, ch in TEXT_UNESCAPES:
            if raw.startswith(escaped, i):
                chars.append(ch)
                i += len(escaped)
                break
        else:
            chars.append(raw[i])
            i += 1
    return chars


class _Reader:
    def __init__(self, text: str, variables: tuple[str, ...]):
        self.text = text
        self.pos = 0
        self.variables = variables

    def error(self, message: str, position: int | None = None) -> LatexParseError:
        return LatexParseError(message, self.pos if position is None else position)

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in WHITESPACE:
            self.pos += 1

    def peek(self) -> str:
        return self.text[self.pos:self.pos + 1]

    def peek_command(self) -> str | None:
        m = COMMAND_RE.match(self.text, self.pos)
        return "\\" + m.group(1) if m else None

    def expect(self, literal: str) -> None:
        self.skip_ws()
        if not self.text.startswith(literal, self.pos):
            raise self.error(f"Expected {literal!r}")
        self.pos += len(literal)

    def raw_group(self) -> str:
        """Verbatim content of a ``{...}`` group, nested braces included."""
        self.expect("{")
        start = self.pos
        depth = 1
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch == "\\":
                self.pos += 2
                continue
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    value = self.text[start:self.pos]
                    self.pos += 1
                    return value
            self.pos += 1
        raise self.error("Unterminated group", start - 1)

    def sequence(self, stops: str = "}", stop_commands: tuple[str, ...] = ()) -> list[Node]:
        items: list[Node] = []
        while True:
            self.skip_ws()
            if self.pos >= len(self.text):
                return items
            if self.peek() in stops:
                return items
            if stop_commands and self.peek_command() in stop_commands:
                return items
            items.append(self.item())

    def arg(self) -> Node:
        self.expect("{")
        items = self.sequence("}")
        self.expect("}")
        return _collapse(items)

    def item(self) -> Node:
        base = self.atom()
        sub = sup = None
        while True:
            self.skip_ws()
            ch = self.peek()
            if ch == "_" and sub is None:
                self.pos += 1
                sub = self.script_arg()
            elif ch == "^" and sup is None:
                self.pos += 1
                sup = self.script_arg()
            else:
                break
        if sub is None and sup is None:
            return base
        if isinstance(base, Group) and len(base.body) == 1 and isinstance(base.body[0], Script):
            base = base.body[0]
        return Script("", base, sub, sup)

    def script_arg(self) -> Node:
        self.skip_ws()
        if self.peek() == "{":
            return self.arg()
        if self.pos >= len(self.text):
            raise self.error("Missing script argument")
        return self.atom()

    def atom(self) -> Node:
        self.skip_ws()
        start = self.pos
        for latex in self.variables:
            if self.text.startswith(latex, self.pos):
                self.pos += len(latex)
                return Variable("", latex)

        ch = self.peek()
        if ch == "{":
            self.pos += 1
            items = self.sequence("}")
            self.expect("}")
            return Group("", tuple(items))
        if ch in ("}", "_", "^"):
            raise self.error(f"Unexpected {ch!r}")
        if ch == "&":
            self.pos += 1
            return AlignMarker()
        if ch == "\\":
            cmd = self.peek_command()
            if cmd is None:
                raise self.error("Dangling backslash")
            self.pos += len(cmd)
            return self.command(cmd, start)
        self.pos += 1
        return Symbol("", ch)

    def command(self, cmd: str, start: int) -> Node:
        if cmd == "\\\\":
            return NewLine()
        if cmd in SPACING_COMMANDS:
            return Space("", cmd)
        if cmd == "\\cssId":
            nid = self.raw_group().strip()
            self.expect("{")
            items = self.sequence("}")
            self.expect("}")
            if len(items) != 1 or node_id(items[0]) is None:
                raise self.error("\\cssId must wrap exactly one node", start)
            return replace(items[0], id=nid)
        if cmd in BIG_OPERATORS:
            after = self.pos
            self.skip_ws()
            if self.peek_command() == "\\limits":
                self.pos += len("\\limits")
                return Op("", cmd, limits=True)
            self.pos = after
            return Op("", cmd)
        if cmd == "\\frac":
            numerator = self.arg()
            return Fraction("", numerator, self.arg())
        if cmd == "\\sqrt":
            index = None
            self.skip_ws()
            if self.peek() == "[":
                self.pos += 1
                items = self.sequence("]")
                self.expect("]")
                index = _collapse(items)
            return Root("", self.arg(), index)
        if cmd == "\\text":
            return Text("", tuple(Symbol("", ch) for ch in _unescape_text(self.raw_group())))
        if cmd == "\\textcolor":
            color = self.raw_group().strip()
            self.expect("{")
            items = self.sequence("}")
            self.expect("}")
            return Color("", color, tuple(items))
        if cmd == "\\fcolorbox":
            border = self.raw_group().strip()
            background = self.raw_group().strip()
            self.expect("{")
            self.expect("$")
            items = self.sequence("$")
            self.expect("$")
            self.expect("}")
            return Box("", border, _collapse(items), background)
        if cmd in ("\\overbrace", "\\underbrace"):
            return Brace("", cmd == "\\overbrace", self.arg())
        if cmd == "\\cancel":
            return Strikethrough("", self.arg())
        if cmd == "\\begin":
            return self.environment(start)
        if cmd in ("\\end", "\\limits"):
            raise self.error(f"Unexpected {cmd}", start)
        return Symbol("", cmd)

    def environment(self, start: int) -> Node:
        name = self.raw_group().strip()
        if name == "array":
            align = self.raw_group().strip()
            rows = self.array_rows()
            self.end_environment("array")
            return Array("", rows, align)
        if name == "aligned":
            cells = self.sequence("}", stop_commands=("\\end",))
            self.end_environment("aligned")
            return Aligned("", tuple(cells))
        raise self.error(f"Unsupported environment {name!r}", start)

    def array_rows(self) -> tuple[tuple[Node, ...], ...]:
        rows: list[tuple[Node, ...]] = []
        row: list[Node] = []
        while True:
            items = self.sequence("&}", stop_commands=("\\\\", "\\end"))
            if self.peek() == "&":
                row.append(_collapse(items))
                self.pos += 1
                continue
            cmd = self.peek_command()
            if cmd == "\\\\":
                row.append(_collapse(items))
                rows.append(tuple(row))
                row = []
                self.pos += 2
                continue
            if cmd == "\\end":
                if items or row or rows:
                    row.append(_collapse(items))
                    rows.append(tuple(row))
                return tuple(rows)
            raise self.error("Unterminated array")

    def end_environment(self, name: str) -> None:
        self.skip_ws()
        if self.peek_command() != "\\end":
            raise self.error(f"Expected \\end{{{name}}}")
        self.pos += len("\\end")
        found = self.raw_group().strip()
        if found != name:
            raise self.error(f"Expected \\end{{{name}}}, found \\end{{{found}}}")


class LatexParser(FormulaParser):
    """
    Parser for the markup produced by ``Formula.to_latex``.

    Both ast and render markup are accepted; ``\\cssId{id}{x}`` gives ``x``
    that id and every other node receives a path id. Strings listed in
    ``variables`` are read as Variable nodes wherever an item starts with
    them, longest first.
    """

    def __init__(self, variables: Iterable[str] = ()):
        self.variables = tuple(sorted(set(variables), key=len, reverse=True))

    def parse(self, text: str) -> Formula:
        reader = _Reader(text, self.variables)
        items = reader.sequence(stops="")
        try:
            formula = Formula(label_nodes(items))
        except DuplicateIdError as e:
            raise LatexParseError(str(e)) from e
        logger.debug("Parsed %d top-level nodes from %d characters", len(formula), len(text))
        return formula
