"""Tests for unit source synthesis."""

import pytest

from replcore import (
    Binding,
    Evaluation,
    Expression,
    FunctionDefinition,
    Import,
    Result,
    SessionContext,
    Statement,
    TypedBinding,
    TypeDeclaration,
    synthesize_unit,
)

PACKAGE = "_replcore_test"


@pytest.fixture
def context() -> SessionContext:
    """A context with an import, a type and two bindings."""
    evaluations = [
        Evaluation("E1", "", Import("import math")),
        Evaluation("Point", "", TypeDeclaration("class Point:\n    pass", "Point")),
        Evaluation("E2", "", Binding("x = 5", "x", "5"), Result("x", 5)),
        Evaluation("E3", "", Expression("x + 1"), Result("res0", 6)),
    ]
    context = SessionContext.empty()
    for evaluation in evaluations:
        context = context.add_evaluation(evaluation)
    return context


def _run_lines(source: str) -> list[str]:
    lines = source.splitlines()
    return lines[lines.index("    def run(self):") + 1 :]


class TestHeader:
    """Tests for the module-level part of a unit."""

    def test_accumulated_imports_and_types(self, context: SessionContext) -> None:
        source = synthesize_unit(context, "Evaluation_1", Expression("x"), package=PACKAGE)
        assert "import math" in source.splitlines()
        assert f"from {PACKAGE}.Point import Point" in source.splitlines()
        assert "class Point:" not in source

    def test_explicit_type_names_replace_declared_types(self) -> None:
        source = synthesize_unit(
            SessionContext.empty(),
            "Evaluation_1",
            Expression("Point"),
            package=PACKAGE,
            type_names=("Point",),
        )
        assert f"from {PACKAGE}.Point import Point" in source.splitlines()

    def test_new_import_is_included(self, context: SessionContext) -> None:
        source = synthesize_unit(context, "Evaluation_1", Import("from os import path"), package=PACKAGE)
        lines = source.splitlines()
        assert lines.index("import math") < lines.index("from os import path")
        assert _run_lines(source)[-1] == "        return None"

    def test_unit_class_implements_capability(self, context: SessionContext) -> None:
        source = synthesize_unit(context, "Evaluation_1", Expression("x"), package=PACKAGE)
        assert "class Evaluation_1:" in source
        assert "    def initialize(self, context):" in source
        assert "    def run(self):" in source


class TestRunBody:
    """Tests for the body of the generated ``run`` method."""

    def test_visible_bindings_are_read_first(self, context: SessionContext) -> None:
        run = _run_lines(synthesize_unit(context, "Evaluation_1", Expression("x + res0"), package=PACKAGE))
        assert run[0] == "        x, res0 = self._context.values('x', 'res0')"

    def test_single_binding_is_unpacked(self) -> None:
        context = SessionContext.empty().add_evaluation(
            Evaluation("E1", "", Binding("x = 5", "x", "5"), Result("x", 5)),
        )
        run = _run_lines(synthesize_unit(context, "U", Expression("x"), package=PACKAGE))
        assert run[0] == "        x, = self._context.values('x')"

    def test_binding_named_self_is_read_last(self) -> None:
        context = SessionContext.empty()
        for key, value in [("self", 1), ("y", 2)]:
            context = context.add_evaluation(
                Evaluation(key, "", Binding(f"{key} = {value}", key, str(value)), Result(key, value)),
            )
        source = synthesize_unit(context, "U", Expression("self + y"), package=PACKAGE)
        namespace: dict = {}
        exec(compile(source, "<unit>", "exec"), namespace)  # noqa: S102
        unit = namespace["U"]()
        unit.initialize(context)
        assert unit.run() == 3

    def test_expression_is_returned(self) -> None:
        source = synthesize_unit(SessionContext.empty(), "Evaluation_1", Expression("1 + 2"), package=PACKAGE)
        assert _run_lines(source) == ["        return (", "1 + 2", "        )"]

    def test_binding_returns_value(self) -> None:
        source = synthesize_unit(SessionContext.empty(), "U", Binding("y = 2 * 3", "y", "2 * 3"), package=PACKAGE)
        assert _run_lines(source) == ["        return (", "2 * 3", "        )"]

    def test_typed_binding_keeps_annotation(self) -> None:
        fragment = TypedBinding("y: int = 3", "y", "int", "3")
        source = synthesize_unit(SessionContext.empty(), "U", fragment, package=PACKAGE)
        assert _run_lines(source) == ["        y: int = (", "3", "        )", "        return y"]

    def test_function_definition_is_indented(self) -> None:
        fragment = FunctionDefinition("def double(v):\n    return v * 2", "double")
        source = synthesize_unit(SessionContext.empty(), "U", fragment, package=PACKAGE)
        assert _run_lines(source) == [
            "        def double(v):",
            "            return v * 2",
            "        return double",
        ]

    def test_statement_is_indented(self) -> None:
        source = synthesize_unit(SessionContext.empty(), "U", Statement("for i in range(3):\n    pass"), package=PACKAGE)
        assert _run_lines(source) == ["        for i in range(3):", "            pass"]

    @pytest.mark.parametrize(
        "fragment",
        [
            Expression("x * 2"),
            Binding("y = x", "y", "x"),
            TypedBinding("y: int = x", "y", "int", "x"),
            FunctionDefinition("def f():\n    return x", "f"),
            Statement("for i in range(x):\n    print(i)"),
            Import("import os"),
        ],
    )
    def test_every_unit_compiles(self, context: SessionContext, fragment) -> None:  # noqa: ANN001
        source = synthesize_unit(context, "Evaluation_1", fragment, package=PACKAGE)
        compile(source, "<unit>", "exec")


class TestTypeDeclaration:
    """Tests for type declaration units."""

    def test_declaration_at_module_level(self, context: SessionContext) -> None:
        fragment = TypeDeclaration("class Circle(Point):\n    radius = 1.0", "Circle")
        source = synthesize_unit(context, "Circle", fragment, package=PACKAGE)
        lines = source.splitlines()
        assert "import math" in lines
        assert f"from {PACKAGE}.Point import Point" in lines
        assert lines[-2:] == ["class Circle(Point):", "    radius = 1.0"]
        assert "def run(self):" not in source

    def test_bindings_are_not_read(self, context: SessionContext) -> None:
        fragment = TypeDeclaration("class Circle:\n    pass", "Circle")
        source = synthesize_unit(context, "Circle", fragment, package=PACKAGE)
        assert "self._context.value" not in source


class TestDeterminism:
    """Synthesis regenerates the same source for the same inputs."""

    def test_same_inputs_same_source(self, context: SessionContext) -> None:
        first = synthesize_unit(context, "Evaluation_1", Expression("x"), package=PACKAGE)
        second = synthesize_unit(context, "Evaluation_1", Expression("x"), package=PACKAGE)
        assert first == second
