"""Process-wide engine and registry.

The default engine is the ctypes liboqs binding from ``pqcguard_native``,
loaded on first use. ``configure`` swaps in another engine before any session
is created (embedding, tests); it is not safe to call while sessions are live.
"""

from __future__ import annotations

import importlib
import logging
import os
import threading
import weakref
from typing import Optional

from .errors import NativeLibraryError
from .interfaces import NativeEngine
from .registry import AlgorithmRegistry

log = logging.getLogger(__name__)

_LOCK = threading.RLock()
_ENGINE: Optional[NativeEngine] = None
_REGISTRY: Optional[AlgorithmRegistry] = None
_ENGINE_REGISTRIES: "weakref.WeakKeyDictionary[NativeEngine, AlgorithmRegistry]" = weakref.WeakKeyDictionary()


def _load_default_engine() -> NativeEngine:
    try:
        native = importlib.import_module("pqcguard_native")
    except ImportError as exc:
        raise NativeLibraryError(f"pqcguard_native is not importable: {exc}") from exc
    engine = native.LiboqsEngine()
    rand_alg = os.getenv("PQCGUARD_RAND_ALGORITHM")
    if rand_alg:
        from .rand import RandomSource

        RandomSource(engine).switch_algorithm(rand_alg)
        log.debug("random source switched to %s from environment", rand_alg)
    return engine


def get_engine() -> NativeEngine:
    global _ENGINE
    with _LOCK:
        if _ENGINE is None:
            _ENGINE = _load_default_engine()
            log.debug("loaded native engine (liboqs %s)", _ENGINE.version())
        return _ENGINE


def get_registry() -> AlgorithmRegistry:
    global _REGISTRY
    with _LOCK:
        if _REGISTRY is None:
            _REGISTRY = AlgorithmRegistry.from_engine(get_engine())
        return _REGISTRY


def _reset_active_source() -> None:
    from . import rand

    rand._active_source = rand.SYSTEM


def configure(engine: Optional[NativeEngine]) -> None:
    """Install ``engine`` as the process-wide engine and rebuild the registry.

    Passing ``None`` drops the current engine so the default one is loaded
    again on next use. The reported random source goes back to ``"system"``.
    """
    global _ENGINE, _REGISTRY
    with _LOCK:
        _ENGINE = engine
        _REGISTRY = AlgorithmRegistry.from_engine(engine) if engine is not None else None
        _reset_active_source()


def registry_for(engine: NativeEngine) -> AlgorithmRegistry:
    """Registry matching ``engine``: the shared one, or a catalog cached per engine."""
    with _LOCK:
        if engine is _ENGINE:
            return get_registry()
        try:
            registry = _ENGINE_REGISTRIES.get(engine)
        except TypeError:
            # unhashable or not weak-referenceable: no caching
            return AlgorithmRegistry.from_engine(engine)
        if registry is None:
            registry = AlgorithmRegistry.from_engine(engine)
            _ENGINE_REGISTRIES[engine] = registry
        return registry


def liboqs_version() -> str:
    return get_engine().version()
