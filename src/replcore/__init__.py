"""Incremental evaluator for Python fragments, the engine beneath a REPL."""

__all__ = [
    "Binding",
    "CompilationError",
    "CompiledUnit",
    "ConfigError",
    "Evaluation",
    "EvaluationOutcome",
    "Evaluator",
    "ExecutableUnit",
    "ExecutionError",
    "Expression",
    "Fragment",
    "FragmentKind",
    "FunctionDefinition",
    "Import",
    "ModuleGateway",
    "RedefinitionError",
    "ReplConfig",
    "ReplError",
    "Result",
    "SessionContext",
    "Statement",
    "TypeDeclaration",
    "TypedBinding",
    "UnitLoadError",
    "classify",
    "execute",
    "get_config",
    "load_config",
    "split_fragments",
    "synthesize_unit",
    "unwrap_exception",
]

from ._classify import classify
from ._config import ConfigError, ReplConfig, get_config, load_config
from ._errors import (
    CompilationError,
    ExecutionError,
    RedefinitionError,
    ReplError,
    UnitLoadError,
    unwrap_exception,
)
from ._evaluator import EvaluationOutcome, Evaluator
from ._executor import ExecutableUnit, execute
from ._fragments import (
    Binding,
    Expression,
    Fragment,
    FragmentKind,
    FunctionDefinition,
    Import,
    Statement,
    TypedBinding,
    TypeDeclaration,
)
from ._gateway import CompiledUnit, ModuleGateway
from ._session import Evaluation, Result, SessionContext
from ._split import split_fragments
from ._synthesize import synthesize_unit
