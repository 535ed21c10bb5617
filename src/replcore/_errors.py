"""Errors raised while evaluating fragments.

Every error that can end an evaluation derives from `ReplError`. The evaluator
returns them to the caller instead of letting them escape, and none of them
alter the session context.
"""


class ReplError(Exception):
    """Base class for evaluation errors."""


class RedefinitionError(ReplError):
    """A type declaration names a type that is already loaded in the session."""

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(f"Redefining types is not supported: '{type_name}' is already loaded")


class CompilationError(ReplError):
    """Synthesized unit source failed to compile.

    Attributes:
        unit_name: Name of the unit that was being compiled.
        status: Non-zero status of the compilation.
        diagnostics: Full diagnostic text reported by the compiler.
        source: The synthesized source that was rejected.

    """

    def __init__(self, unit_name: str, status: int, diagnostics: str, source: str) -> None:
        self.unit_name = unit_name
        self.status = status
        self.diagnostics = diagnostics
        self.source = source
        super().__init__(diagnostics)


class UnitLoadError(ReplError):
    """A compiled unit could not be loaded, linked or verified."""

    def __init__(self, unit_name: str, reason: str) -> None:
        self.unit_name = unit_name
        self.reason = reason
        super().__init__(f"Failed to load unit '{unit_name}': {reason}")


class ExecutionError(ReplError):
    """A unit raised while being instantiated, initialized or run.

    The original exception is always attached as ``__cause__``.
    """

    def __init__(self, unit_name: str) -> None:
        self.unit_name = unit_name
        super().__init__(f"Unit '{unit_name}' raised during execution")


def unwrap_exception(exc: BaseException) -> BaseException:
    """Return the exception raised by user code, stripping execution wrappers."""
    while isinstance(exc, ExecutionError) and exc.__cause__ is not None:
        exc = exc.__cause__
    return exc
