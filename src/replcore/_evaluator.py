"""The evaluator: classify, synthesize, compile, load, execute, record."""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Self

from ._classify import classify
from ._config import ReplConfig
from ._errors import CompilationError, RedefinitionError, ReplError, unwrap_exception
from ._executor import execute
from ._fragments import Fragment, Statement, TypeDeclaration, fragment_key
from ._gateway import ModuleGateway, random_identifier
from ._session import Evaluation, Result, SessionContext
from ._split import has_code
from ._synthesize import synthesize_unit

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EvaluationOutcome:
    """Outcome of evaluating one piece of input.

    Exactly one of ``evaluation`` and ``error`` is set.

    Attributes:
        evaluation: The recorded (or cached) evaluation on success.
        error: The failure on error. For failures raised by the fragment's own code
            this is the original exception, not a wrapper.
        cached: True if the evaluation was answered from history without running anything.

    """

    evaluation: Evaluation | None = None
    error: BaseException | None = None
    cached: bool = False

    @property
    def success(self) -> bool:
        """Check if the input was evaluated without errors."""
        return self.error is None

    @property
    def result(self) -> Result | None:
        return self.evaluation.result if self.evaluation is not None else None

    def unwrap(self) -> Evaluation:
        """Get the evaluation, raising the error if there is one."""
        if self.error is not None:
            raise self.error
        assert self.evaluation is not None  # noqa: S101
        return self.evaluation


class Evaluator:
    """Evaluate Python fragments one at a time against an accumulating session.

    The evaluator holds exactly one current `SessionContext` and replaces it
    only after an evaluation has fully succeeded. It owns a temporary output
    directory and a `ModuleGateway`; call `close` (or use it as a context
    manager) to release both.

    Example:
        >>> with Evaluator() as evaluator:
        ...     evaluator.evaluate("x = 5").unwrap().result
        ...     evaluator.evaluate("x + 1").unwrap().result
        Result(key='x', value=5)
        Result(key='res0', value=6)

    """

    def __init__(self, config: ReplConfig | None = None) -> None:
        self.config = config if config is not None else ReplConfig()
        self.output_directory = Path(tempfile.mkdtemp(prefix=self.config.temp_prefix))
        self._gateway = ModuleGateway(self.output_directory, lookup_paths=self.config.lookup_paths)
        self._context = SessionContext.empty(result_prefix=self.config.result_prefix)
        self._closed = False

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def gateway(self) -> ModuleGateway:
        return self._gateway

    def evaluate(self, text: str) -> EvaluationOutcome:
        """Evaluate one piece of input.

        Input identical to an earlier input that produced a result is answered
        from history. Otherwise the input is classified and evaluated; if it fails
        to compile, it is retried once as a statement, and if that fails as well
        the first failure is reported.

        Args:
            text: Raw fragment text.

        Returns:
            The outcome; failures are returned, never raised.

        Raises:
            RuntimeError: If the evaluator has been closed.

        """
        if self._closed:
            msg = "Evaluator is closed"
            raise RuntimeError(msg)

        cached = self._context.evaluation_for_result(text)
        if cached is not None:
            logger.debug("Reusing evaluation %s for %r", cached.unit_name, text)
            return EvaluationOutcome(evaluation=cached, cached=True)

        if not has_code(text):
            return EvaluationOutcome(error=ReplError("Nothing to evaluate"))

        fragment = classify(text)
        try:
            evaluation = self._evaluate(fragment)
        except CompilationError as first_error:
            if isinstance(fragment, TypeDeclaration):
                return EvaluationOutcome(error=first_error)
            logger.debug("Retrying %r as a statement", text)
            try:
                evaluation = self._evaluate(Statement(source=text))
            except Exception as retry_error:  # noqa: BLE001
                logger.debug("Statement retry failed too: %r", unwrap_exception(retry_error))
                return EvaluationOutcome(error=first_error)
        except Exception as e:  # noqa: BLE001
            return EvaluationOutcome(error=unwrap_exception(e))

        self._context = self._context.add_evaluation(evaluation)
        return EvaluationOutcome(evaluation=evaluation)

    def last_evaluation(self) -> Evaluation | None:
        return self._context.last_evaluation

    def results(self) -> list[Result]:
        return list(self._context.results())

    def classes(self) -> list[Evaluation]:
        return list(self._context.classes())

    def clear(self) -> None:
        """Forget the session history.

        Types already loaded stay loaded: later fragments can still use them,
        and declaring one of them again fails with `RedefinitionError`.
        """
        self._context = SessionContext.empty(result_prefix=self.config.result_prefix)
        self._gateway.purge()
        logger.debug("Cleared session")

    def add_lookup_path(self, path: Path | str) -> None:
        self._gateway.add_lookup_path(path)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._gateway.close()

    def _evaluate(self, fragment: Fragment) -> Evaluation:
        match fragment:
            case TypeDeclaration():
                return self._declare_type(fragment)
            case _:
                return self._evaluate_unit(fragment)

    def _declare_type(self, fragment: TypeDeclaration) -> Evaluation:
        type_name = fragment.type_name
        if self._gateway.is_loaded(type_name):
            raise RedefinitionError(type_name)

        source = synthesize_unit(
            self._context,
            type_name,
            fragment,
            package=self._gateway.package,
            type_names=self._gateway.loaded_types,
        )
        try:
            compiled = self._gateway.compile(type_name, source)
            with self._gateway.activated():
                self._gateway.load_module(compiled, register=True)
        except BaseException:
            self._gateway.discard(type_name)
            raise

        logger.debug("Declared type %s", type_name)
        return Evaluation(unit_name=type_name, source=source, fragment=fragment)

    def _evaluate_unit(self, fragment: Fragment) -> Evaluation:
        unit_name = random_identifier(self.config.unit_prefix)
        source = synthesize_unit(
            self._context,
            unit_name,
            fragment,
            package=self._gateway.package,
            type_names=self._gateway.loaded_types,
        )

        with self._gateway.transient(unit_name):
            compiled = self._gateway.compile(unit_name, source)
            with self._gateway.activated():
                unit_class = self._gateway.load(compiled)
                value = execute(unit_class, self._context)

        result = self._result_for(fragment, value)
        if result is not None:
            logger.debug("%s produced %s = %r", unit_name, result.key, result.value)
        return Evaluation(unit_name=unit_name, source=source, fragment=fragment, result=result)

    def _result_for(self, fragment: Fragment, value: Any) -> Result | None:
        key = fragment_key(fragment)
        if key is not None:
            return Result(key=key, value=value)
        if value is None:
            return None
        return Result(key=self._context.next_result_key(), value=value)
