"""Run loaded units against the session context."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ._errors import ExecutionError

if TYPE_CHECKING:
    from ._session import SessionContext

logger = logging.getLogger(__name__)


@runtime_checkable
class ExecutableUnit(Protocol):
    """The capability every synthesized unit class implements."""

    def initialize(self, context: SessionContext) -> None: ...

    def run(self) -> Any: ...


def execute(unit_class: type[ExecutableUnit], context: SessionContext) -> Any:
    """Instantiate a unit once, initialize it with the context and run it.

    Failures from any of the three steps are raised the same way, as an
    `ExecutionError` whose cause is the original exception. `SystemExit`
    raised by unit code counts as a failure of the unit.

    Args:
        unit_class: The class returned by the gateway's ``load``.
        context: The session context the unit reads earlier bindings from.

    Returns:
        The value returned by ``run``, possibly None.

    Raises:
        ExecutionError: If instantiation, initialization or the run fails.

    """
    name = unit_class.__name__
    logger.debug("Executing %s", name)
    try:
        unit = unit_class()
        unit.initialize(context)
        value = unit.run()
    except (Exception, SystemExit) as e:
        logger.debug("Unit %s raised %s", name, type(e).__name__)
        raise ExecutionError(name) from e

    logger.debug("Unit %s returned %r", name, value)
    return value
