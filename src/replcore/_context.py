"""Context variables for replcore.

This module holds the gateway whose units are currently being loaded or run.
It is kept separate to avoid circular imports between the gateway and its
import finder.
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ._gateway import ModuleGateway

# Imports made by unit code resolve against this gateway's lookup paths.
# Set only for the duration of a load or an execution.
_active_gateway_var: ContextVar[ModuleGateway | None] = ContextVar("active_gateway", default=None)


def get_active_gateway() -> ModuleGateway | None:
    """Get the gateway active in the current context, or None outside any unit."""
    return _active_gateway_var.get()


def set_active_gateway(gateway: ModuleGateway | None) -> object:
    """Set the active gateway.

    Returns a token that can be used to reset the value.
    """
    return _active_gateway_var.set(gateway)


def reset_active_gateway(token: object) -> None:
    """Reset the active gateway using a token from set_active_gateway."""
    _active_gateway_var.reset(token)  # type: ignore[arg-type]
