from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Iterator, Optional, Tuple, Union

from pqcguard.errors import NativeLibraryError, RandomGeneratorFailed

log = logging.getLogger(__name__)


_c_uint8_p = ctypes.POINTER(ctypes.c_uint8)
_c_size_t = ctypes.c_size_t
_c_char_p = ctypes.c_char_p
_c_void_p = ctypes.c_void_p
_oqs_status = ctypes.c_int

RAND_ALGORITHM_PTR = ctypes.CFUNCTYPE(None, _c_uint8_p, _c_size_t)


# Only the leading metadata fields are declared: handles are always allocated
# by liboqs and read through a pointer, so the trailing function pointers are
# never touched from Python.
class OQS_KEM(ctypes.Structure):
    _fields_ = [
        ("method_name", _c_char_p),
        ("alg_version", _c_char_p),
        ("claimed_nist_level", ctypes.c_uint8),
        ("ind_cca", ctypes.c_bool),
        ("length_public_key", _c_size_t),
        ("length_secret_key", _c_size_t),
        ("length_ciphertext", _c_size_t),
        ("length_shared_secret", _c_size_t),
    ]


class OQS_SIG(ctypes.Structure):
    # liboqs >= 0.13 layout
    _fields_ = [
        ("method_name", _c_char_p),
        ("alg_version", _c_char_p),
        ("claimed_nist_level", ctypes.c_uint8),
        ("euf_cma", ctypes.c_bool),
        ("suf_cma", ctypes.c_bool),
        ("sig_with_ctx_support", ctypes.c_bool),
        ("length_public_key", _c_size_t),
        ("length_secret_key", _c_size_t),
        ("length_signature", _c_size_t),
    ]


class OQS_SIG_LEGACY(ctypes.Structure):
    # liboqs 0.10 - 0.12 layout, before the SUF-CMA flag
    _fields_ = [
        ("method_name", _c_char_p),
        ("alg_version", _c_char_p),
        ("claimed_nist_level", ctypes.c_uint8),
        ("euf_cma", ctypes.c_bool),
        ("sig_with_ctx_support", ctypes.c_bool),
        ("length_public_key", _c_size_t),
        ("length_secret_key", _c_size_t),
        ("length_signature", _c_size_t),
    ]


def _default_candidates() -> Iterator[Union[Path, str]]:
    env = os.getenv("PQCGUARD_LIBOQS")
    if env:
        yield Path(env)
    search_dirs: list[Path] = []
    env_dir = os.getenv("PQCGUARD_LIBOQS_DIR")
    if env_dir:
        search_dirs.append(Path(env_dir))
    # Default install prefix used by liboqs-python's bootstrap.
    home_prefix = Path.home() / "_oqs"
    search_dirs.extend([home_prefix / "lib", home_prefix / "lib64", home_prefix / "bin"])
    names = ["liboqs.so", "liboqs.dylib", "oqs.dll", "liboqs.dll"]
    for directory in search_dirs:
        for name in names:
            yield directory / name
    found = ctypes.util.find_library("oqs")
    if found:
        yield found


def _load_library() -> ctypes.CDLL:
    for candidate in _default_candidates():
        if isinstance(candidate, Path) and not candidate.is_file():
            continue
        try:
            lib = ctypes.CDLL(str(candidate))
        except OSError as exc:
            log.debug("could not load %s: %s", candidate, exc)
            continue
        log.debug("loaded liboqs from %s", candidate)
        return lib
    raise NativeLibraryError(
        "Unable to locate the liboqs shared library. "
        "Build liboqs with -DBUILD_SHARED_LIBS=ON or point PQCGUARD_LIBOQS to the compiled binary."
    )


def _declare(lib: ctypes.CDLL) -> None:
    try:
        lib.OQS_init.argtypes = []
        lib.OQS_init.restype = None
        lib.OQS_version.argtypes = []
        lib.OQS_version.restype = _c_char_p

        lib.OQS_MEM_cleanse.argtypes = [_c_void_p, _c_size_t]
        lib.OQS_MEM_cleanse.restype = None

        for family in ("KEM", "SIG"):
            count = getattr(lib, f"OQS_{family}_alg_count")
            count.argtypes = []
            count.restype = ctypes.c_int
            ident = getattr(lib, f"OQS_{family}_alg_identifier")
            ident.argtypes = [_c_size_t]
            ident.restype = _c_char_p
            enabled = getattr(lib, f"OQS_{family}_alg_is_enabled")
            enabled.argtypes = [_c_char_p]
            enabled.restype = ctypes.c_int
            new = getattr(lib, f"OQS_{family}_new")
            new.argtypes = [_c_char_p]
            new.restype = _c_void_p
            free = getattr(lib, f"OQS_{family}_free")
            free.argtypes = [_c_void_p]
            free.restype = None
            keypair = getattr(lib, f"OQS_{family}_keypair")
            keypair.argtypes = [_c_void_p, _c_uint8_p, _c_uint8_p]
            keypair.restype = _oqs_status

        lib.OQS_KEM_encaps.argtypes = [_c_void_p, _c_uint8_p, _c_uint8_p, _c_uint8_p]
        lib.OQS_KEM_encaps.restype = _oqs_status
        lib.OQS_KEM_decaps.argtypes = [_c_void_p, _c_uint8_p, _c_uint8_p, _c_uint8_p]
        lib.OQS_KEM_decaps.restype = _oqs_status

        lib.OQS_SIG_sign.argtypes = [
            _c_void_p, _c_uint8_p, ctypes.POINTER(_c_size_t), _c_uint8_p, _c_size_t, _c_uint8_p,
        ]
        lib.OQS_SIG_sign.restype = _oqs_status
        lib.OQS_SIG_verify.argtypes = [
            _c_void_p, _c_uint8_p, _c_size_t, _c_uint8_p, _c_size_t, _c_uint8_p,
        ]
        lib.OQS_SIG_verify.restype = _oqs_status

        lib.OQS_randombytes.argtypes = [_c_uint8_p, _c_size_t]
        lib.OQS_randombytes.restype = None
        lib.OQS_randombytes_switch_algorithm.argtypes = [_c_char_p]
        lib.OQS_randombytes_switch_algorithm.restype = _oqs_status
        lib.OQS_randombytes_custom_algorithm.argtypes = [RAND_ALGORITHM_PTR]
        lib.OQS_randombytes_custom_algorithm.restype = None
    except AttributeError as exc:
        raise NativeLibraryError(f"liboqs is missing an expected symbol: {exc}") from exc

    # Context-string entry points only exist from liboqs 0.12 on.
    if hasattr(lib, "OQS_SIG_sign_with_ctx_str"):
        lib.OQS_SIG_sign_with_ctx_str.argtypes = [
            _c_void_p, _c_uint8_p, ctypes.POINTER(_c_size_t), _c_uint8_p, _c_size_t,
            _c_uint8_p, _c_size_t, _c_uint8_p,
        ]
        lib.OQS_SIG_sign_with_ctx_str.restype = _oqs_status
        lib.OQS_SIG_verify_with_ctx_str.argtypes = [
            _c_void_p, _c_uint8_p, _c_size_t, _c_uint8_p, _c_size_t,
            _c_uint8_p, _c_size_t, _c_uint8_p,
        ]
        lib.OQS_SIG_verify_with_ctx_str.restype = _oqs_status


_LIB: Optional[ctypes.CDLL] = None
_LIB_LOCK = threading.Lock()


def lib() -> ctypes.CDLL:
    """Load, declare and initialize liboqs once per process."""
    global _LIB
    with _LIB_LOCK:
        if _LIB is None:
            loaded = _load_library()
            _declare(loaded)
            loaded.OQS_init()
            _LIB = loaded
        return _LIB


def parse_version(version: str) -> Tuple[int, ...]:
    parts: list[int] = []
    for piece in version.split("-")[0].split("."):
        if not piece.isdigit():
            break
        parts.append(int(piece))
    return tuple(parts)


def sig_struct_for(version: str) -> type:
    return OQS_SIG if parse_version(version) >= (0, 13) else OQS_SIG_LEGACY


def encode_name(name: str) -> Optional[bytes]:
    try:
        return name.encode("ascii")
    except UnicodeEncodeError:
        return None


def writable(buf: bytearray) -> Optional[ctypes.Array]:
    """View ``buf`` as a uint8 array without copying so liboqs writes in place."""
    if not buf:
        return None
    return (ctypes.c_uint8 * len(buf)).from_buffer(buf)


def readonly(data: bytes) -> Optional[ctypes.Array]:
    if not data:
        return None
    return (ctypes.c_uint8 * len(data)).from_buffer_copy(data)


# ---------------- RNG callback bridge ----------------

# Indirection cell: the single trampoline below always forwards to whichever
# host callable is installed here.
_rand_callback: Optional[Callable[[bytearray, int], None]] = None
_pending = threading.local()


def _rand_trampoline(random_array, bytes_to_read) -> None:
    count = int(bytes_to_read)
    if count == 0:
        return
    callback = _rand_callback
    result = bytearray(count)
    try:
        if callback is None:
            raise RandomGeneratorFailed("no custom random generator is installed")
        callback(result, count)
        if len(result) != count:
            raise RandomGeneratorFailed(
                f"custom random generator produced {len(result)} bytes, expected {count}"
            )
        src = (ctypes.c_char * count).from_buffer(result)
        ctypes.memmove(random_array, src, count)
        del src
    except Exception as exc:
        # Exceptions cannot cross the C boundary: leave no stale bytes behind
        # and hand the error to the Python caller of the native function.
        ctypes.memset(random_array, 0, count)
        if getattr(_pending, "error", None) is None:
            _pending.error = exc
        log.error("custom random generator failed: %s", exc)
    finally:
        result[:] = bytes(len(result))


_RAND_TRAMPOLINE = RAND_ALGORITHM_PTR(_rand_trampoline)


def set_rand_callback(callback: Optional[Callable[[bytearray, int], None]]) -> None:
    global _rand_callback
    _rand_callback = callback


def get_rand_callback() -> Optional[Callable[[bytearray, int], None]]:
    return _rand_callback


def clear_pending_error() -> None:
    _pending.error = None


def raise_pending_error() -> None:
    """Re-raise a failure recorded by the trampoline during the last native call."""
    exc = getattr(_pending, "error", None)
    if exc is None:
        return
    _pending.error = None
    if isinstance(exc, RandomGeneratorFailed):
        raise exc
    raise RandomGeneratorFailed(f"custom random generator raised {type(exc).__name__}: {exc}") from exc
