from __future__ import annotations

import warnings

from pqcguard.errors import NativeLibraryError

from .engine import LiboqsEngine

_warned = False


def is_available() -> bool:
    """True when liboqs can be loaded; warns once otherwise."""
    global _warned
    from . import _core

    try:
        _core.lib()
    except NativeLibraryError as exc:
        if not _warned:
            warnings.warn(f"pqcguard_native disabled: {exc}")
            _warned = True
        return False
    return True


__all__ = ["LiboqsEngine", "is_available"]
