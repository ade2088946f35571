"""Zeroizable byte container used for every piece of secret material."""

from __future__ import annotations

import ctypes
import hmac
from typing import Callable, Optional, Union

BytesLike = Union[bytes, bytearray, memoryview]
Wipe = Callable[[bytearray], None]


def memset_wipe(buf: bytearray) -> None:
    """Overwrite ``buf`` in place with zeros through ctypes.

    Used when no engine-provided cleanse primitive is attached. Writing
    through the buffer's address rather than slice assignment keeps the
    bytearray's storage where it is.
    """
    if not buf:
        return
    arr = (ctypes.c_char * len(buf)).from_buffer(buf)
    ctypes.memset(ctypes.addressof(arr), 0, len(buf))
    del arr


class SecureBuffer:
    """Owns a private ``bytearray`` and erases it on :meth:`zeroize`.

    Reads after zeroization only ever see zero bytes. ``raw`` exposes the
    writable storage so sessions can let the engine fill it in place; it is
    not meant for callers outside the package.
    """

    __slots__ = ("_data", "_wipe", "_zeroized")

    def __init__(self, data: BytesLike = b"", *, wipe: Optional[Wipe] = None) -> None:
        self._data = bytearray(data)
        self._wipe: Wipe = wipe or memset_wipe
        self._zeroized = False

    @classmethod
    def allocate(cls, size: int, *, wipe: Optional[Wipe] = None) -> "SecureBuffer":
        if size < 0:
            raise ValueError("size must be non-negative")
        return cls(bytearray(size), wipe=wipe)

    @property
    def raw(self) -> bytearray:
        return self._data

    @property
    def is_zeroized(self) -> bool:
        return self._zeroized

    def zeroize(self) -> None:
        if self._zeroized:
            return
        if self._data:
            self._wipe(self._data)
            # The cleanse primitive is trusted, but a wipe that left data
            # behind must not go unnoticed.
            if any(self._data):
                memset_wipe(self._data)
        self._zeroized = True

    def export(self) -> bytes:
        return bytes(self._data)

    def view(self) -> memoryview:
        return memoryview(self._data).toreadonly()

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return len(self._data) > 0

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecureBuffer):
            other = other._data
        if not isinstance(other, (bytes, bytearray, memoryview)):
            return NotImplemented
        return hmac.compare_digest(bytes(self._data), bytes(other))

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        state = "zeroized" if self._zeroized else "live"
        return f"SecureBuffer(len={len(self._data)}, {state})"
