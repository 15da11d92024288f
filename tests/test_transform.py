"""Tests for rewrite, consolidation and canonicalization."""

import pytest

from formulary.adapters.idgen import SequentialId
from formulary.core.errors import IdAllocationError
from formulary.core.formula import Formula
from formulary.core.model import (
    Array,
    Color,
    Fraction,
    Group,
    Script,
    Symbol,
)
from formulary.core.transform import (
    IdMinter,
    assign_path_ids,
    consolidate_groups,
    consolidate_targets,
    remove_empty_groups,
    replace_nodes,
)


class ConstantId:
    def __init__(self, value):
        self.value = value

    def new_id(self):
        return self.value


def abc():
    """a + b = c"""
    return Formula((
        Symbol("s1", "a"),
        Symbol("op1", "+"),
        Symbol("s2", "b"),
        Symbol("eq", "="),
        Symbol("s3", "c"),
    ))


def test_identity_rewrite_returns_same_formula():
    """A visitor that changes nothing yields the input formula."""
    formula = Formula((Fraction("f", Symbol("a", "a"), Group("g", (Symbol("b", "b"),))),))
    result = replace_nodes(formula, lambda n: n)
    assert result is formula
    assert result.to_latex() == formula.to_latex()


def test_rewrite_is_bottom_up():
    """The visitor sees parents rebuilt around already rewritten children."""
    formula = Formula((Fraction("f", Symbol("a", "x"), Symbol("b", "y")),))
    seen = []

    def visit(node):
        seen.append(node.id)
        if isinstance(node, Symbol) and node.value == "x":
            return Symbol(node.id, "z")
        if isinstance(node, Fraction):
            assert node.numerator.value == "z"
        return node

    result = replace_nodes(formula, visit)
    assert seen == ["a", "b", "f"]
    assert result.to_latex() == "\\frac{z}{y}"
    # untouched subtree is shared
    assert result.find_node("b") is formula.find_node("b")


def test_consolidate_groups_run():
    """A run of siblings becomes one fresh Group in place."""
    result, targets = consolidate_targets(abc(), [["s1", "op1", "s2"]], SequentialId("n"))
    assert targets == ["n1"]
    assert result.to_latex() == "{a + b} = c"
    group = result.find_node("n1")
    assert isinstance(group, Group)
    assert [n.id for n in group.body] == ["s1", "op1", "s2"]


def test_consolidation_preserves_siblings():
    """Nodes outside the run keep their ids and order."""
    result = consolidate_groups(abc(), [["op1", "s2"]], SequentialId("n"))
    assert [n.id for n in result.children] == ["s1", "n1", "eq", "s3"]


def test_consolidate_inside_nested_sequence():
    formula = Formula((Color("c", "red", (Symbol("a", "a"), Symbol("b", "b"), Symbol("d", "d"))),))
    result, targets = consolidate_targets(formula, [["a", "b"]], SequentialId("g"))
    assert targets == ["g1"]
    assert result.to_latex() == "\\textcolor{red}{{a b} d}"
    assert result.parent_of("g1").id == "c"


def test_stale_runs_are_skipped():
    """Unknown, non-contiguous and cross-parent runs leave the formula alone."""
    formula = Formula((
        Symbol("a", "a"),
        Symbol("p", "+"),
        Group("g", (Symbol("b", "b"), Symbol("c", "c"))),
    ))
    result, targets = consolidate_targets(
        formula,
        [["a", "g"], ["missing", "a"], ["p", "b"], ["c", "b"]],
        SequentialId("n"),
    )
    assert targets == [None, None, None, None]
    assert result is formula


def test_single_id_run_is_grouped():
    """A run of one id is wrapped like any other run."""
    formula = Formula((Symbol("a", "a"), Symbol("b", "b")))
    result, targets = consolidate_targets(formula, [["a"]], SequentialId("n"))
    assert targets == ["n1"]
    assert result.to_latex() == "{a} b"
    assert consolidate_groups(formula, [["a"]], SequentialId("n")).to_latex() == "{a} b"


def test_single_id_run_can_stay_in_place():
    formula = abc()
    result, targets = consolidate_targets(
        formula, [["s2"], ["nope"], []], SequentialId("n"), group_singletons=False
    )
    assert targets == ["s2", None, None]
    assert result is formula


def test_multiple_runs_apply_in_order():
    result, targets = consolidate_targets(
        abc(), [["s1", "op1"], ["eq", "s3"]], SequentialId("n")
    )
    assert targets == ["n1", "n2"]
    assert result.to_latex() == "{a +} b {= c}"


def test_id_minter_skips_collisions():
    """Ids already in use are redrawn."""
    minter = IdMinter({"n1", "n2"}, SequentialId("n"))
    assert minter.mint() == "n3"
    assert minter.mint() == "n4"


def test_id_minter_gives_up():
    """A generator that only collides raises after bounded retries."""
    minter = IdMinter({"dup"}, ConstantId("dup"))
    with pytest.raises(IdAllocationError):
        minter.mint()


def test_consolidate_raises_when_ids_exhausted():
    with pytest.raises(IdAllocationError):
        consolidate_groups(abc(), [["s1", "op1"]], ConstantId("s1"))


def test_remove_empty_groups():
    """Empty groups vanish from sequences but stay as array placeholders."""
    formula = Formula((
        Group("e1", ()),
        Symbol("a", "a"),
        Color("c", "red", (Group("e2", ()), Symbol("b", "b"))),
        Array("m", ((Group("e3", ()), Symbol("d", "d")),)),
    ))
    result = remove_empty_groups(formula)
    assert not result.contains("e1")
    assert not result.contains("e2")
    assert result.contains("e3")
    assert result.to_latex().startswith("a \\textcolor{red}{b}")


def test_remove_empty_groups_noop():
    formula = abc()
    assert remove_empty_groups(formula) is formula


def test_assign_path_ids():
    formula = Formula((
        Symbol("zz", "y"),
        Script("q", Symbol("w", "x"), sup=Group("k", (Symbol("m", "1"), Symbol("n", "2")))),
    ))
    result = assign_path_ids(formula)
    assert [n.id for n in result.iter_nodes()] == [
        "0", "1", "1.base", "1.sup", "1.sup.0", "1.sup.1",
    ]
    assert result.equivalent(formula)
