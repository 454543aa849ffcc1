"""Request-scoped typed state.

Provides:
- ``State``: values stored by their type, one per type.
- ``state_var``: The current ``State`` for this task/thread.

Extractors put their results into a ``State``; handlers borrow them back
by type. The middleware sets ``state_var`` for the duration of each
request; accessing it outside one raises ``LookupError``.

Thread safety:
    ``ContextVar`` is task-local under asyncio and thread-local under
    free-threading. A ``State`` belongs to a single request and is never
    shared, so no locks are needed.
"""

from contextvars import ContextVar
from typing import Any


class State:
    """Values keyed by their type.

    Usage::

        state = State()
        state.put(SearchParams(q="hello"))

        params = state.borrow(SearchParams)
    """

    __slots__ = ("_data",)

    def __init__(self) -> None:
        self._data: dict[type, Any] = {}

    def put(self, value: object) -> None:
        """Store *value*, replacing any earlier value of the same type."""
        self._data[type(value)] = value

    def has(self, cls: type) -> bool:
        return cls in self._data

    def borrow[T](self, cls: type[T]) -> T:
        """Return the stored *cls* value.

        Raises ``LookupError`` if none was stored.
        """
        try:
            return self._data[cls]
        except KeyError:
            msg = f"No {cls.__qualname__} stored in the current state"
            raise LookupError(msg) from None

    def try_borrow[T](self, cls: type[T]) -> T | None:
        return self._data.get(cls)

    def take[T](self, cls: type[T]) -> T:
        """Remove and return the stored *cls* value.

        Raises ``LookupError`` if none was stored.
        """
        try:
            return self._data.pop(cls)
        except KeyError:
            msg = f"No {cls.__qualname__} stored in the current state"
            raise LookupError(msg) from None

    def try_take[T](self, cls: type[T]) -> T | None:
        return self._data.pop(cls, None)

    def __repr__(self) -> str:
        names = ", ".join(cls.__qualname__ for cls in self._data)
        return f"<State [{names}]>"


# -- Request context --

state_var: ContextVar[State] = ContextVar("quail_state")
"""The current request's state. Set by ``QueryStringMiddleware``."""


def get_state() -> State:
    """Return the current request's state.

    Raises ``LookupError`` if called outside a request context.
    """
    return state_var.get()
