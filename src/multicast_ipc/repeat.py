"""Sequential async loop primitives.

``repeat_while`` is the control-flow primitive the filtered wait is built
from; ``repeat_for`` is a counted loop on top of it.  Iterations never
overlap: each action is awaited to completion before the condition is
checked again.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")


__all__ = ["repeat_for", "repeat_while"]


async def repeat_while(
    condition: Callable[[T], bool],
    action: Callable[[T], Awaitable[T] | T],
    last_value: T,
) -> T:
    """Run *action* while *condition* holds, threading its result through.

    Parameters
    ----------
    condition : Callable[[T], bool]
        Receives the last value; return ``True`` to keep looping.
    action : Callable[[T], Awaitable[T] | T]
        Loop body.  Receives the last value and returns (or resolves to) the
        next one.
    last_value : T
        Seed passed to the first ``condition`` call.

    Returns
    -------
    T
        The value for which *condition* first returned false.

    Raises
    ------
    Exception
        Whatever *condition* or *action* raises; the loop stops at once.

    Examples
    --------
    >>> async def double(n: int) -> int:
    ...     return n * 2
    >>> await repeat_while(lambda n: n < 100, double, 3)
    192
    """
    while condition(last_value):
        result = action(last_value)
        if inspect.isawaitable(result):
            result = await result
        last_value = result
    return last_value


async def repeat_for(count: int, fn: Callable[[], Any]) -> int:
    """Call *fn* sequentially ``max(count, 0)`` times.

    Results of *fn* are awaited when awaitable and then discarded.

    Returns
    -------
    int
        Always ``0``.

    Examples
    --------
    >>> await repeat_for(3, lambda: session.broadcast("ping"))
    0
    """

    async def step(remaining: int) -> int:
        result = fn()
        if inspect.isawaitable(result):
            await result
        return remaining - 1

    return await repeat_while(lambda remaining: remaining > 0, step, max(count, 0))
