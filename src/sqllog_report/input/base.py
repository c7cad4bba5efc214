from typing import Protocol, Self, runtime_checkable


@runtime_checkable
class LineInput(Protocol):
    """Protocol for async sources of raw log lines."""

    def __aiter__(self) -> Self:
        ...

    async def __anext__(self) -> str:
        ...
