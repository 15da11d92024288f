import io
from dataclasses import fields
from typing import Any

import yaml

from ..core.formula import Formula
from ..core.model import Node, is_node
from ..core.ranges import FormulaLatexRange, PositionedRange, StyledRange, UnstyledRange


def _value(value: Any) -> Any:
    if is_node(value):
        return node_to_dict(value)
    if isinstance(value, tuple):
        return [_value(v) for v in value]
    return value


def node_to_dict(node: Node) -> dict[str, Any]:
    """Plain dict view of a node: ``kind`` first, then its fields in order."""
    out: dict[str, Any] = {"kind": node.kind}
    for f in fields(node):
        out[f.name] = _value(getattr(node, f.name))
    return out


def formula_to_dict(formula: Formula) -> dict[str, Any]:
    return {"children": [node_to_dict(n) for n in formula.children]}


def range_to_dict(r: FormulaLatexRange) -> dict[str, Any]:
    if isinstance(r, UnstyledRange):
        return {"text": r.text}
    out: dict[str, Any] = {"id": r.id, "left": r.left}
    out["children"] = [range_to_dict(c) for c in r.children]
    out["right"] = r.right
    if r.hints is not None:
        out["hints"] = {k: v for k, v in (("color", r.hints.color), ("tooltip", r.hints.tooltip)) if v}
    return out


def positioned_to_dict(p: PositionedRange) -> dict[str, Any]:
    out: dict[str, Any] = {"start": p.start, "end": p.end, "depth": p.depth}
    if isinstance(p.range, StyledRange):
        out["id"] = p.range.id
    else:
        out["text"] = p.range.text
    return out


def dump_yaml(data: Any) -> str:
    buf = io.StringIO()
    yaml.safe_dump(data, buf, sort_keys=False, allow_unicode=True)
    return buf.getvalue()
