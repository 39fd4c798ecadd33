"""
Local invoker - the default function invocation collaborator.

Functions are registered under an identifier and a qualifier (version or
alias). A ``$LATEST`` target that was never registered falls back to
importing the identifier as a dotted path (``package.module.func``).
"""
from __future__ import annotations

import inspect
import logging
from importlib import import_module
from typing import Any, Callable, Dict, Optional, Tuple

from ..request import DEFAULT_QUALIFIER, InvocationTarget
from .base import InvocationResult

logger = logging.getLogger(__name__)


class LocalInvoker:
    """Invoke registered Python callables with the request body."""

    def __init__(self, functions: Optional[Dict[str, Callable[[Any], Any]]] = None):
        self._functions: Dict[Tuple[str, str], Callable[[Any], Any]] = {}
        for identifier, func in (functions or {}).items():
            self.register(identifier, func)

    def register(
        self,
        identifier: str,
        func: Callable[[Any], Any],
        qualifier: str = DEFAULT_QUALIFIER,
    ) -> "LocalInvoker":
        """Register ``func`` under ``identifier:qualifier``."""
        self._functions[(identifier, qualifier or DEFAULT_QUALIFIER)] = func
        return self

    def resolve(self, target: InvocationTarget) -> Callable[[Any], Any]:
        """
        Find the callable for a target.

        Raises:
            LookupError: if nothing is registered and the path cannot be imported
        """
        func = self._functions.get((target.function, target.qualifier))
        if func is not None:
            return func
        if target.qualifier == DEFAULT_QUALIFIER:
            return _import_function(target.function)
        raise LookupError(f"Function not found: {target.url}")

    async def invoke(self, target: InvocationTarget, body: Any) -> InvocationResult:
        try:
            func = self.resolve(target)
            result = func(body)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.warning(f"Invocation of {target.url} failed: {type(e).__name__}: {e}")
            return InvocationResult(error=f"{type(e).__name__}: {e}")
        return InvocationResult(result=result)


def _import_function(path: str) -> Callable[[Any], Any]:
    """Import a function from a dotted path."""
    parts = path.rsplit(".", 1)
    if len(parts) != 2:
        raise LookupError(f"Function not found: {path}")

    module_path, func_name = parts
    try:
        module = import_module(module_path)
        func = getattr(module, func_name)
    except (ImportError, AttributeError) as e:
        raise LookupError(f"Could not import '{path}': {e}") from e
    if not callable(func):
        raise LookupError(f"'{path}' is not callable")
    return func


__all__ = ["LocalInvoker"]
