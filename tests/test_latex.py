"""Tests for markup serialization."""

from formulary.core.formula import Formula
from formulary.core.latex import node_to_latex
from formulary.core.model import (
    AlignMarker,
    Aligned,
    Array,
    Box,
    Brace,
    Color,
    Fraction,
    Group,
    NewLine,
    Op,
    Root,
    Script,
    Space,
    Strikethrough,
    Symbol,
    Text,
    Variable,
)


def sym(nid, value=None):
    return Symbol(nid, value if value is not None else nid)


def test_leaf_modes():
    """Render mode wraps addressable leaves in their id."""
    a = sym("a")
    assert node_to_latex(a) == "a"
    assert node_to_latex(a, "render") == "\\cssId{a}{a}"
    assert node_to_latex(Op("o", "\\sum", limits=True)) == "\\sum\\limits"
    assert node_to_latex(Variable("v", "x_1"), "render") == "\\cssId{v}{x_1}"
    assert node_to_latex(Space("sp", "\\,"), "render") == "\\,"


def test_group_argument_elides_braces():
    """A Group in an argument slot contributes only its children."""
    num = Group("g", (sym("a"), sym("p", "+"), sym("b")))
    frac = Fraction("f", num, sym("2"))
    assert node_to_latex(frac) == "\\frac{a + b}{2}"
    assert node_to_latex(num) == "{a + b}"


def test_top_level_group_keeps_braces():
    """A Group at the top level is written with its braces."""
    formula = Formula((Group("g", (sym("a"), sym("b"))), sym("c")))
    assert formula.to_latex() == "{a b} c"


def test_script_forms():
    """Scripts are always braced; a script base is wrapped."""
    inner = Script("s1", sym("x"), sub=sym("1"))
    assert node_to_latex(inner) == "x_{1}"
    assert node_to_latex(Script("s2", inner, sup=sym("2"))) == "{x_{1}}^{2}"
    both = Script("s3", sym("y"), sub=sym("i"), sup=sym("n"))
    assert node_to_latex(both) == "y_{i}^{n}"


def test_root_with_index():
    assert node_to_latex(Root("r", sym("x"), index=sym("3"))) == "\\sqrt[3]{x}"
    assert node_to_latex(Root("r", sym("x"))) == "\\sqrt{x}"


def test_style_markup():
    """Style wrappers in ast mode and their removal in content mode."""
    a = sym("a")
    color = Color("c", "red", (a, sym("p", "+"), sym("b")))
    box = Box("bx", "blue", a)
    brace = Brace("br", False, a)
    strike = Strikethrough("st", a)

    assert node_to_latex(color) == "\\textcolor{red}{a + b}"
    assert node_to_latex(box) == "\\fcolorbox{blue}{white}{$a$}"
    assert node_to_latex(brace) == "\\underbrace{a}"
    assert node_to_latex(strike) == "\\cancel{a}"

    assert node_to_latex(color, "content") == "a + b"
    assert node_to_latex(box, "content") == "a"
    assert node_to_latex(strike, "content") == "a"


def test_text_content_never_carries_ids():
    """Text children serialize plainly even in render mode."""
    text = Text("t", (sym("t1", "h"), sym("t2", "i")))
    assert node_to_latex(text) == "\\text{hi}"
    assert node_to_latex(text, "render") == "\\text{hi}"


def test_array_and_aligned():
    """Array cells and rows use & and \\\\ separators."""
    array = Array("m", ((sym("a"), sym("b")), (sym("c"), sym("d"))))
    assert node_to_latex(array) == "\\begin{array}{rl}\na & b \\\\ c & d\n\\end{array}"
    three = Array("m3", ((sym("a"), sym("b"), sym("c")),))
    assert node_to_latex(three).startswith("\\begin{array}{lll}")

    aligned = Aligned("al", (sym("x"), AlignMarker(), sym("e", "="), sym("y"), NewLine(), sym("z")))
    assert node_to_latex(aligned) == "\\begin{aligned}x & = y \\\\ z\\end{aligned}"


def test_latex_spans_match_serialization():
    """Every id's span slices its own serialization out of the whole."""
    color = Color("c", "red", (Fraction("f", sym("a"), sym("b")),))
    formula = Formula((sym("x"), sym("p", "+"), color))

    for mode in ("ast", "render"):
        text = formula.to_latex(mode)
        spans = formula.latex_spans(mode)
        for nid in ("x", "p", "c", "f", "a", "b"):
            node = formula.find_node(nid)
            span = spans[nid]
            assert text[span.start:span.end] == node_to_latex(node, mode)

    spans = formula.latex_spans()
    assert (spans["x"].start, spans["x"].end) == (0, 1)
    assert (spans["p"].start, spans["p"].end) == (2, 3)


def test_text_escapes_braces_and_backslashes():
    """Markup characters inside text are escaped so the group stays balanced."""
    text = Text("t", tuple(Symbol(f"t{i}", ch) for i, ch in enumerate("x}{\\")))
    assert node_to_latex(text) == "\\text{x\\}\\{\\textbackslash{}}"
    assert node_to_latex(Symbol("s", "}")) == "}"


def test_array_empty_cell_keeps_braces():
    array = Array("m", ((Group("e", ()),),))
    assert node_to_latex(array) == "\\begin{array}{l}\n{}\n\\end{array}"
    formula = Formula((array,))
    span = formula.latex_spans()["e"]
    assert formula.to_latex()[span.start:span.end] == "{}"
