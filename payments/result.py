"""
Success-or-error return values for PayPal operations.

Callers check ``ok`` before reading ``value`` or ``error``::

    result = await service.create_order(request)
    if not result.ok:
        return error_response(result.error)
    order = result.value
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from payments.errors import PayPalError

T = TypeVar("T")
E = TypeVar("E", bound=PayPalError)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[PayPalError]]
