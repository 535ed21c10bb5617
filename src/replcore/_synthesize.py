"""Synthesize standalone unit sources from a fragment and the session context.

Every unit regenerates the whole visible state: all accumulated imports,
imports of every declared type from the session package, and a local for every
visible binding. Nothing is compiled incrementally.

A unit for anything but a type declaration looks like this::

    # Session unit generated by replcore (_replcore_<hex>).
    import math
    from _replcore_<hex>.Point import Point


    class Evaluation_<hex>:
        def initialize(self, context):
            self._context = context

        def run(self):
            x, = self._context.values('x')
            return (
    x + 1
            )

Expressions and right-hand sides are wrapped in parentheses and embedded
without re-indenting, so string literals spanning lines keep their content.
Function definitions and statements are re-indented into ``run``.
"""

from __future__ import annotations

import logging
import textwrap
from typing import TYPE_CHECKING

from ._fragments import (
    Binding,
    Expression,
    Fragment,
    FunctionDefinition,
    Import,
    Statement,
    TypedBinding,
    TypeDeclaration,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ._session import SessionContext

logger = logging.getLogger(__name__)

_BODY_INDENT = " " * 8


def _block(text: str) -> str:
    """Dedent user text and indent it into the body of ``run``."""
    return textwrap.indent(textwrap.dedent(text).strip("\n"), _BODY_INDENT)


def _parenthesized(text: str) -> str:
    return f"(\n{text.strip()}\n{_BODY_INDENT})"


def _header(
    context: SessionContext,
    package: str,
    type_names: Sequence[str] | None,
    extra_imports: tuple[str, ...] = (),
) -> list[str]:
    if type_names is None:
        type_names = [evaluation.unit_name for evaluation in context.classes()]
    lines = [f"# Session unit generated by replcore ({package})."]
    lines.extend(textwrap.dedent(source).strip() for source in (*context.imports(), *extra_imports))
    lines.extend(f"from {package}.{name} import {name}" for name in type_names)
    return lines


def _run_body(fragment: Fragment) -> list[str]:  # noqa: PLR0911
    match fragment:
        case Expression(source=source):
            return [f"{_BODY_INDENT}return {_parenthesized(source)}"]
        case Binding(value=value):
            return [f"{_BODY_INDENT}return {_parenthesized(value)}"]
        case TypedBinding(name=name, declared_type=declared_type, value=value):
            return [
                f"{_BODY_INDENT}{name}: {declared_type} = {_parenthesized(value)}",
                f"{_BODY_INDENT}return {name}",
            ]
        case FunctionDefinition(source=source, name=name):
            return [_block(source), f"{_BODY_INDENT}return {name}"]
        case Statement(source=source):
            return [_block(source)]
        case Import():
            return [f"{_BODY_INDENT}return None"]
        case TypeDeclaration():
            msg = "Type declarations have no executable body"
            raise TypeError(msg)


def _unit_class(context: SessionContext, unit_name: str, fragment: Fragment) -> list[str]:
    lines = [
        f"class {unit_name}:",
        "    def initialize(self, context):",
        "        self._context = context",
        "",
        "    def run(self):",
    ]
    keys = list(context.visible_results())
    if keys:
        # Every value is read before any name is bound, so a binding named self is safe.
        targets = ", ".join(keys) + ("," if len(keys) == 1 else "")
        arguments = ", ".join(repr(key) for key in keys)
        lines.append(f"{_BODY_INDENT}{targets} = self._context.values({arguments})")
    lines.extend(_run_body(fragment))
    return lines


def synthesize_unit(
    context: SessionContext,
    unit_name: str,
    fragment: Fragment,
    *,
    package: str,
    type_names: Sequence[str] | None = None,
) -> str:
    """Produce the complete source of a unit evaluating ``fragment``.

    Args:
        context: The current session context; its imports, types and bindings are
            all made visible to the unit.
        unit_name: Name of the unit class, or the type name for type declarations.
        fragment: The fragment to evaluate.
        package: Session package that declared types are imported from.
        type_names: Types to import from the session package. Defaults to the
            types declared in ``context``; the evaluator passes every type still
            loaded, which outlives a cleared context.

    Returns:
        Module source text. For a type declaration it holds the declaration
        itself at module level and no unit class.

    """
    match fragment:
        case TypeDeclaration(source=source):
            lines = [*_header(context, package, type_names), "", "", textwrap.dedent(source).strip("\n")]
        case Import(source=source):
            header = _header(context, package, type_names, (source,))
            lines = [*header, "", "", *_unit_class(context, unit_name, fragment)]
        case _:
            lines = [*_header(context, package, type_names), "", "", *_unit_class(context, unit_name, fragment)]

    source_text = "\n".join(lines) + "\n"
    logger.debug("Synthesized %s:\n%s", unit_name, source_text)
    return source_text
