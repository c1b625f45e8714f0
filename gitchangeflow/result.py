"""Tagged success/failure values returned across the provider boundary."""
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .errors import AppError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: AppError

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
