"""Boolean filter expressions over event records.

Expressions use a small, side-effect free subset of Python expression syntax:

    "work" in tags and not hidden
    start >= "2024-03-01" or title == "Flight"

Field names are looked up in the event mapping (see ``EventRecord.as_mapping``);
unknown names evaluate to ``None``.
"""

from __future__ import annotations

import ast
import math
import operator
from functools import lru_cache
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from .errors import FilterSyntaxError

Predicate = Callable[[Mapping[str, Any]], bool]
_Node = Callable[[Mapping[str, Any]], Any]

_CONSTANT_NAMES = {
    "true": True,
    "false": False,
    "null": None,
    "True": True,
    "False": False,
    "None": None,
}

_FUNCTIONS: dict[str, Callable[..., Any]] = {
    "abs": abs,
    "ceil": math.ceil,
    "floor": math.floor,
    "min": min,
    "max": max,
    "round": round,
    "sqrt": math.sqrt,
    "len": len,
    "lower": lambda s: str(s).lower(),
    "upper": lambda s: str(s).upper(),
}

_MAX_EXPONENT = 64
_MAX_REPEAT = 10_000
_MAX_BITS = 4096


def _pow(base: Any, exponent: Any) -> Any:
    if isinstance(exponent, (int, float)) and abs(exponent) > _MAX_EXPONENT:
        raise OverflowError(f"exponent {exponent} is too large")
    if isinstance(base, int) and isinstance(exponent, int) and base.bit_length() * abs(exponent) > _MAX_BITS:
        raise OverflowError("power is too large")
    return operator.pow(base, exponent)


def _mul(left: Any, right: Any) -> Any:
    for seq, count in ((left, right), (right, left)):
        if isinstance(seq, (str, tuple)) and isinstance(count, int) and count * max(len(seq), 1) > _MAX_REPEAT:
            raise OverflowError("repeated sequence is too long")
    return operator.mul(left, right)


_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: _mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: _pow,
}

_UNARY_OPS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
    ast.Not: operator.not_,
}

_COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
}


class _Compiler:
    def __init__(self, expression: str) -> None:
        self.expression = expression

    def fail(self, reason: str) -> FilterSyntaxError:
        return FilterSyntaxError(self.expression, reason)

    def compile(self, node: ast.AST) -> _Node:
        if isinstance(node, ast.Constant):
            if not isinstance(node.value, (str, int, float, bool, type(None))):
                raise self.fail(f"unsupported literal {node.value!r}")
            value = node.value
            return lambda item: value

        if isinstance(node, ast.Name):
            name = node.id
            if name in _CONSTANT_NAMES:
                const = _CONSTANT_NAMES[name]
                return lambda item: const
            return lambda item: item.get(name)

        if isinstance(node, (ast.Tuple, ast.List)):
            elts = [self.compile(e) for e in node.elts]
            return lambda item: tuple(e(item) for e in elts)

        if isinstance(node, ast.BoolOp):
            values = [self.compile(v) for v in node.values]
            if isinstance(node.op, ast.And):
                return lambda item: all(v(item) for v in values)
            return lambda item: any(v(item) for v in values)

        if isinstance(node, ast.UnaryOp):
            op = _UNARY_OPS.get(type(node.op))
            if op is None:
                raise self.fail(f"unsupported operator {type(node.op).__name__}")
            operand = self.compile(node.operand)
            return lambda item: op(operand(item))

        if isinstance(node, ast.BinOp):
            op = _BINARY_OPS.get(type(node.op))
            if op is None:
                raise self.fail(f"unsupported operator {type(node.op).__name__}")
            left = self.compile(node.left)
            right = self.compile(node.right)
            return lambda item: op(left(item), right(item))

        if isinstance(node, ast.Compare):
            return self._compile_compare(node)

        if isinstance(node, ast.IfExp):
            test = self.compile(node.test)
            body = self.compile(node.body)
            orelse = self.compile(node.orelse)
            return lambda item: body(item) if test(item) else orelse(item)

        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.func.id not in _FUNCTIONS:
                raise self.fail(f"unknown function {ast.unparse(node.func)}")
            if node.keywords:
                raise self.fail("keyword arguments are not supported")
            fn = _FUNCTIONS[node.func.id]
            args = [self.compile(a) for a in node.args]
            return lambda item: fn(*(a(item) for a in args))

        raise self.fail(f"unsupported syntax {type(node).__name__}")

    def _compile_compare(self, node: ast.Compare) -> _Node:
        left = self.compile(node.left)
        ops = []
        for op_node, comparator in zip(node.ops, node.comparators):
            op = _COMPARE_OPS.get(type(op_node))
            if op is None:
                raise self.fail(f"unsupported comparison {type(op_node).__name__}")
            ops.append((op, self.compile(comparator)))

        def compare(item: Mapping[str, Any]) -> bool:
            current = left(item)
            for op, right in ops:
                nxt = right(item)
                if not op(current, nxt):
                    return False
                current = nxt
            return True

        return compare


@lru_cache(maxsize=256)
def compile_filter(expression: str) -> Predicate:
    """Compile ``expression`` into a predicate; raises FilterSyntaxError."""
    if not isinstance(expression, str) or not expression.strip():
        raise FilterSyntaxError(str(expression), "empty expression")
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as exc:
        raise FilterSyntaxError(expression, exc.msg) from exc

    node = _Compiler(expression).compile(tree.body)

    def predicate(item: Mapping[str, Any]) -> bool:
        try:
            return bool(node(item))
        except Exception:
            return False

    return predicate


class FilterChain:
    """AND of zero or more compiled filters, evaluated in order."""

    def __init__(
        self,
        expressions: Union[str, Sequence[str], None] = None,
        log: Optional[Callable[[str], None]] = None,
    ) -> None:
        if expressions is None:
            expressions = ()
        elif isinstance(expressions, str):
            expressions = (expressions,)
        self.expressions = tuple(expressions)
        self._log = log
        self._predicates: List[Predicate] = []
        for idx, expression in enumerate(self.expressions):
            self._predicates.append(compile_filter(expression))
            self.log(f"Filter #{idx} '{expression}' compiled")

    def __len__(self) -> int:
        return len(self._predicates)

    def log(self, message: str) -> None:
        if self._log is not None:
            self._log(message)

    def first_rejection(self, item: Mapping[str, Any]) -> Optional[int]:
        for idx, predicate in enumerate(self._predicates):
            if not predicate(item):
                return idx
        return None

