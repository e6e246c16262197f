"""
Result pattern for the caller-facing session API.

Session methods return a Result instead of raising, so a caller can render
an empty or unavailable state with `unwrap_or` and decide about retries.
"""

from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type


class Result(Generic[T, E]):
    """
    A Result type that represents either success (Ok) or failure (Err).
    """

    def __init__(
        self, value: Optional[T] = None, error: Optional[E] = None, is_ok: bool = True
    ):
        """Use Ok() or Err() class methods instead."""
        self._value = value
        self._error = error
        self._is_ok = is_ok

    @classmethod
    def Ok(cls, value: T) -> "Result[T, E]":
        """Create a successful Result."""
        return cls(value=value, is_ok=True)

    @classmethod
    def Err(cls, error: E) -> "Result[T, E]":
        """Create a failed Result."""
        return cls(error=error, is_ok=False)

    def is_ok(self) -> bool:
        return self._is_ok

    def is_err(self) -> bool:
        return not self._is_ok

    def unwrap(self) -> T:
        """
        Get the success value, raising an exception if this is an error.

        Raises:
            ValueError: If this Result represents an error
        """
        if self._is_ok:
            return self._value
        raise ValueError(f"Called unwrap() on an Err Result: {self._error}")

    def unwrap_or(self, default: T) -> T:
        """Get the success value or `default` if this is an error."""
        return self._value if self._is_ok else default

    def unwrap_err(self) -> E:
        """
        Get the error value, raising an exception if this is success.

        Raises:
            ValueError: If this Result represents success
        """
        if not self._is_ok:
            return self._error
        raise ValueError(f"Called unwrap_err() on an Ok Result: {self._value}")

    def map(self, func: Callable[[T], Any]) -> "Result[Any, E]":
        """
        Apply a function to the success value if Ok, otherwise return the error.

        Exceptions raised by `func` become the error of the returned Result.
        """
        if self._is_ok:
            try:
                return Result.Ok(func(self._value))
            except Exception as e:
                return Result.Err(e)
        return Result.Err(self._error)

    def map_err(self, func: Callable[[E], Any]) -> "Result[T, Any]":
        if not self._is_ok:
            return Result.Err(func(self._error))
        return Result.Ok(self._value)

    def and_then(self, func: Callable[[T], "Result[Any, E]"]) -> "Result[Any, E]":
        """Chain operations that return Results."""
        if self._is_ok:
            return func(self._value)
        return Result.Err(self._error)

    def __str__(self) -> str:
        if self._is_ok:
            return f"Ok({self._value})"
        return f"Err({self._error})"

    def __repr__(self) -> str:
        return self.__str__()

    def __eq__(self, other) -> bool:
        if not isinstance(other, Result):
            return False
        return (
            self._is_ok == other._is_ok
            and self._value == other._value
            and self._error == other._error
        )


async def safe_await(
    func: Callable[..., Awaitable[T]],
    *args,
    catch: tuple = (Exception,),
    **kwargs,
) -> Result[T, Exception]:
    """
    Await a coroutine function and wrap its outcome in a Result.

    Only exceptions listed in `catch` are converted; anything else propagates.
    """
    try:
        return Result.Ok(await func(*args, **kwargs))
    except catch as e:
        return Result.Err(e)

