"""Typer application whose commands may be coroutine functions."""

import asyncio
import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any

from typer import Typer


class AsyncTyper(Typer):
    """Runs coroutine commands to completion with `asyncio.run`; plain functions register unchanged."""

    def command(self, *args: Any, **kwargs: Any) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        register = super().command(*args, **kwargs)

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            if not inspect.iscoroutinefunction(func):
                register(func)
                return func

            @wraps(func)
            def run(*call_args: Any, **call_kwargs: Any) -> Any:
                return asyncio.run(func(*call_args, **call_kwargs))

            register(run)
            # The coroutine stays directly awaitable from tests and other commands.
            return func

        return decorator
