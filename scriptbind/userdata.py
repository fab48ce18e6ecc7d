"""UserData: borrow-checked handle for a native value inside the runtime."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator

from .errors import BorrowConflict

if TYPE_CHECKING:
    from .registration import RegistrationObject


class UserData:
    """A native value plus the registration that tells the runtime how to use it.

    Any number of shared borrows, or exactly one exclusive borrow, may be
    active at a time. Borrows are context managers and are released on
    every exit path.
    """

    def __init__(self, value: Any, registration: RegistrationObject):
        self._value = value
        self.registration = registration
        self._lock = threading.Lock()
        self._shared = 0
        self._exclusive = False

    @property
    def type_name(self) -> str:
        return self.registration.type_name

    def holds(self, value: Any) -> bool:
        return self._value is value

    def is_instance(self, cls: type) -> bool:
        return isinstance(self._value, cls)

    @property
    def is_borrowed_mut(self) -> bool:
        return self._exclusive

    @contextmanager
    def borrow(self) -> Iterator[Any]:
        with self._lock:
            if self._exclusive:
                raise BorrowConflict(self.type_name, "value is mutably borrowed")
            self._shared += 1
        try:
            yield self._value
        finally:
            with self._lock:
                self._shared -= 1

    @contextmanager
    def borrow_mut(self) -> Iterator[Any]:
        with self._lock:
            if self._exclusive or self._shared:
                raise BorrowConflict(self.type_name, "value is already borrowed")
            self._exclusive = True
        try:
            yield self._value
        finally:
            with self._lock:
                self._exclusive = False

    def share(self) -> Any:
        """Return the value once no exclusive borrow is active."""
        with self._lock:
            if self._exclusive:
                raise BorrowConflict(self.type_name, "value is mutably borrowed")
            return self._value

    def __repr__(self) -> str:
        return f"<userdata {self.type_name}: {self._value!r}>"
