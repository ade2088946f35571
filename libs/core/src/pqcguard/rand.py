"""Access to the engine's entropy source.

liboqs keeps exactly one active generator per process. Switching to a
built-in generator or installing a host callable affects every later
entropy-consuming call on every thread, including key generation in
unrelated sessions, so installation should happen before concurrent work
starts. The lock below only serializes installers against each other.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from . import runtime
from .errors import NilGenerator, UnknownRandomAlgorithm
from .interfaces import OQS_SUCCESS, NativeEngine, RandomGenerator

log = logging.getLogger(__name__)

SYSTEM = "system"
OPENSSL = "OpenSSL"
CUSTOM = "custom"

_INSTALL_LOCK = threading.Lock()
_active_source = SYSTEM


class RandomSource:
    def __init__(self, engine: Optional[NativeEngine] = None) -> None:
        self._engine = engine

    @property
    def engine(self) -> NativeEngine:
        return self._engine if self._engine is not None else runtime.get_engine()

    @property
    def active_source(self) -> str:
        return _active_source

    def bytes(self, count: int) -> bytes:
        if count < 0:
            raise ValueError("count must be non-negative")
        if count == 0:
            return b""
        buf = bytearray(count)
        self.engine.randombytes(buf, count)
        return bytes(buf)

    def fill_in_place(self, buffer: bytearray, count: int) -> int:
        """Fill ``min(count, len(buffer))`` leading bytes of ``buffer``; return that number."""
        if count < 0:
            raise ValueError("count must be non-negative")
        count = min(count, len(buffer))
        if count:
            self.engine.randombytes(buffer, count)
        return count

    def switch_algorithm(self, name: str) -> None:
        global _active_source
        engine = self.engine
        with _INSTALL_LOCK:
            if engine.randombytes_switch_algorithm(name) != OQS_SUCCESS:
                raise UnknownRandomAlgorithm(name)
            _active_source = name
        log.debug("random source switched to %s", name)

    def install_custom_source(self, generator: Optional[RandomGenerator]) -> None:
        """Route all engine entropy through ``generator(buffer, count)``.

        The callable must write exactly ``count`` bytes into ``buffer``. A new
        installation silently replaces the previous one.
        """
        global _active_source
        if generator is None or not callable(generator):
            raise NilGenerator()
        engine = self.engine
        with _INSTALL_LOCK:
            engine.randombytes_custom_algorithm(generator)
            _active_source = CUSTOM
        log.debug("custom random source installed: %r", generator)


_default = RandomSource()


def random_bytes(count: int) -> bytes:
    return _default.bytes(count)


def random_bytes_in_place(buffer: bytearray, count: int) -> int:
    return _default.fill_in_place(buffer, count)


def random_bytes_switch_algorithm(name: str) -> None:
    _default.switch_algorithm(name)


def random_bytes_custom_algorithm(generator: Optional[RandomGenerator]) -> None:
    _default.install_custom_source(generator)
