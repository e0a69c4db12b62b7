"""
Guarded Decorator
=================
Decorator for routing an async function through a ResilientInvoker.
"""

from functools import wraps
from typing import Callable, TypeVar, Awaitable, Union

from .invoker import ResilientInvoker

T = TypeVar("T")


def guarded(
    invoker: ResilientInvoker,
    name: str,
    cost: Union[int, Callable[..., int]] = 0,
):
    """
    Decorator to run an async function under a dependency's policy.

    ``cost`` may be a callable receiving the function's arguments, for
    token estimates that depend on the prompt.

    Example:
        @guarded(invoker, "llm-provider", cost=lambda prompt, **kw: len(prompt) // 4 + 4096)
        async def write_pitch(prompt: str):
            return await llm.complete(prompt)
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            call_cost = cost(*args, **kwargs) if callable(cost) else cost
            return await invoker.run_guarded(
                name,
                call_cost,
                lambda: func(*args, **kwargs),
            )
        return wrapper
    return decorator
