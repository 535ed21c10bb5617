"""Session state: results, evaluations and the immutable session context."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from ._fragments import Fragment, Import, TypeDeclaration, fragment_key

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Result:
    """A named value produced by an evaluation.

    Attributes:
        key: The bound name for bindings, or an auto-generated key such as ``res0``.
        value: The runtime value.

    """

    key: str
    value: Any


@dataclass(frozen=True, slots=True, eq=False)
class Evaluation:
    """The permanent record of one successfully processed fragment.

    Two evaluations are the same evaluation exactly when their unit names match.

    Attributes:
        unit_name: Generated unit name, or the declared type name for type declarations.
        source: The full synthesized source that was compiled.
        fragment: The fragment that was evaluated.
        result: The produced result, if any.

    """

    unit_name: str
    source: str
    fragment: Fragment
    result: Result | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Evaluation):
            return NotImplemented
        return self.unit_name == other.unit_name

    def __hash__(self) -> int:
        return hash(self.unit_name)


@dataclass(frozen=True, slots=True)
class SessionContext:
    """Immutable snapshot of everything a session has evaluated so far.

    Every mutation returns a new context; the evaluator swaps the current one
    only after an evaluation has fully succeeded.

    Attributes:
        evaluations: Past evaluations in evaluation order.
        result_counter: Number of auto-generated result keys consumed.
        result_prefix: Prefix for auto-generated result keys.

    """

    evaluations: tuple[Evaluation, ...] = field(default_factory=tuple)
    result_counter: int = 0
    result_prefix: str = "res"

    @classmethod
    def empty(cls, result_prefix: str = "res") -> SessionContext:
        return cls(result_prefix=result_prefix)

    @property
    def last_evaluation(self) -> Evaluation | None:
        return self.evaluations[-1] if self.evaluations else None

    @property
    def type_names(self) -> frozenset[str]:
        """Names of every type declared in this context."""
        return frozenset(evaluation.unit_name for evaluation in self.classes())

    def results(self) -> tuple[Result, ...]:
        """All results in evaluation order, including shadowed ones."""
        return tuple(evaluation.result for evaluation in self.evaluations if evaluation.result is not None)

    def visible_results(self) -> Mapping[str, Result]:
        """The latest result for each key, ordered by first appearance of the key."""
        visible: dict[str, Result] = {}
        for result in self.results():
            visible[result.key] = result
        return visible

    def value(self, key: str) -> Any:
        """Get the visible value bound to a key.

        Raises:
            KeyError: If no result with this key is visible.

        """
        return self.visible_results()[key].value

    def values(self, *keys: str) -> tuple[Any, ...]:
        """Get the visible values bound to several keys, in the order given.

        Synthesized units read all earlier bindings with one call.

        Raises:
            KeyError: If any of the keys is not visible.

        """
        visible = self.visible_results()
        return tuple(visible[key].value for key in keys)

    def imports(self) -> tuple[str, ...]:
        return tuple(
            evaluation.fragment.source for evaluation in self.evaluations if isinstance(evaluation.fragment, Import)
        )

    def classes(self) -> tuple[Evaluation, ...]:
        return tuple(evaluation for evaluation in self.evaluations if isinstance(evaluation.fragment, TypeDeclaration))

    def evaluation_for_result(self, source: str) -> Evaluation | None:
        """Find the latest evaluation of exactly this text that produced a result."""
        for evaluation in reversed(self.evaluations):
            if evaluation.result is not None and evaluation.fragment.source == source:
                return evaluation
        return None

    def next_result_key(self) -> str:
        """Generate the next auto key, skipping keys that are already visible."""
        visible = self.visible_results()
        counter = self.result_counter
        while (key := f"{self.result_prefix}{counter}") in visible:
            counter += 1
        return key

    def add_evaluation(self, evaluation: Evaluation) -> SessionContext:
        """Return a new context with the evaluation appended."""
        uses_generated_key = evaluation.result is not None and fragment_key(evaluation.fragment) is None
        logger.debug("Recording evaluation %s (%d in history)", evaluation.unit_name, len(self.evaluations) + 1)
        return replace(
            self,
            evaluations=(*self.evaluations, evaluation),
            result_counter=self.result_counter + 1 if uses_generated_key else self.result_counter,
        )
