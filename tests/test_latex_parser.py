"""Tests for the markup parser adapter."""

import pytest

from formulary.adapters.latex_parser import LatexParser
from formulary.core.errors import LatexParseError
from formulary.core.model import (
    Aligned,
    Array,
    Box,
    Color,
    Fraction,
    Group,
    Op,
    Script,
    Space,
    Symbol,
    Text,
    Variable,
)

CANONICAL = [
    "a + b = c",
    "\\frac{a + b}{2}",
    "x^{2}",
    "x_{i}^{n}",
    "{x_{1}}^{2}",
    "{a b} c",
    "\\sqrt[3]{x} \\sqrt{y}",
    "a \\, b \\quad c",
    "\\alpha + \\beta",
    "\\sum\\limits_{i}^{n} i",
    "\\int_{0}^{1} f",
    "\\text{if } x",
    "\\text{a\\{b\\} \\textbackslash{}}",
    "\\begin{array}{l}\n{}\n\\end{array}",
    "\\begin{array}{rl}\na & {} \\\\ {} & d\n\\end{array}",
    "\\textcolor{red}{a + b} = c",
    "\\fcolorbox{red}{white}{$x + 1$}",
    "\\overbrace{a + b}^{\\text{caption}}",
    "\\underbrace{c}_{\\text{x}}",
    "\\cancel{x}",
    "\\begin{array}{rl}\na & b \\\\ c & d\n\\end{array}",
    "\\begin{aligned}a & = b \\\\ c & = d\\end{aligned}",
]


def test_parse_assigns_path_ids():
    formula = LatexParser().parse("a + b")
    assert formula.children == (Symbol("0", "a"), Symbol("1", "+"), Symbol("2", "b"))


@pytest.mark.parametrize("latex", CANONICAL)
def test_canonical_markup_round_trips(latex):
    """Serialized markup parses back to a formula that serializes identically."""
    assert LatexParser().parse(latex).to_latex() == latex


def test_render_markup_round_trips_with_ids():
    """Render output carries leaf ids, so parsing it restores the same tree."""
    parser = LatexParser()
    formula = parser.parse("\\frac{a}{b} + \\textcolor{red}{x^{2}} \\sum\\limits_{k}")
    again = parser.parse(formula.to_latex("render"))
    assert again == formula


def test_css_id_names_node():
    formula = LatexParser().parse("\\cssId{k}{a} b")
    assert formula.children[0] == Symbol("k", "a")
    assert formula.children[1].id == "1"


def test_argument_slots_collapse():
    """One item stands for itself; several become a Group."""
    frac = LatexParser().parse("\\frac{a}{b + c}").children[0]
    assert isinstance(frac, Fraction)
    assert frac.numerator == Symbol("0.numerator", "a")
    assert isinstance(frac.denominator, Group)
    assert len(frac.denominator.body) == 3


def test_structures():
    parser = LatexParser()
    script = parser.parse("x_1^2").children[0]
    assert isinstance(script, Script)
    assert script.sub.value == "1" and script.sup.value == "2"

    op = parser.parse("\\sum\\limits").children[0]
    assert op == Op("0", "\\sum", limits=True)

    assert isinstance(parser.parse("\\,").children[0], Space)

    text = parser.parse("\\text{ab}").children[0]
    assert isinstance(text, Text)
    assert [s.value for s in text.body] == ["a", "b"]

    color = parser.parse("\\textcolor{#ff0000}{a b}").children[0]
    assert isinstance(color, Color) and color.color == "#ff0000"
    assert len(color.body) == 2

    box = parser.parse("\\fcolorbox{red}{yellow}{$a$}").children[0]
    assert isinstance(box, Box) and box.background_color == "yellow"

    array = parser.parse("\\begin{array}{ll}a & b\\end{array}").children[0]
    assert isinstance(array, Array)
    assert array.align == "ll"
    assert [[c.value for c in row] for row in array.rows] == [["a", "b"]]

    aligned = parser.parse("\\begin{aligned}x & = 1 \\\\ y\\end{aligned}").children[0]
    assert isinstance(aligned, Aligned)
    assert [c.kind for c in aligned.cells] == [
        "symbol", "alignmark", "symbol", "symbol", "newline", "symbol",
    ]


def test_variables():
    """Configured variable markup is read as Variable nodes, longest first."""
    parser = LatexParser(variables=["x", "x_1"])
    formula = parser.parse("x_1 + x")
    assert formula.children[0] == Variable("0", "x_1")
    assert formula.children[2] == Variable("2", "x")


def test_scripted_group_keeps_group():
    group = LatexParser().parse("{a b}^{2}").children[0].base
    assert isinstance(group, Group)


@pytest.mark.parametrize(
    "latex",
    [
        "\\frac{a}",
        "a}",
        "{a",
        "x^",
        "x_1_2",
        "\\begin{array}{l}a",
        "\\begin{matrix}a\\end{matrix}",
        "\\begin{aligned}a\\end{array}",
        "\\cssId{k}{a b}",
        "\\",
    ],
)
def test_malformed_markup(latex):
    with pytest.raises(LatexParseError) as excinfo:
        LatexParser().parse(latex)
    assert excinfo.value.position is not None


def test_duplicate_explicit_ids():
    with pytest.raises(LatexParseError):
        LatexParser().parse("\\cssId{k}{a} \\cssId{k}{b}")
