from __future__ import annotations

import ctypes
import logging
from typing import Any, Callable, Optional, Tuple

from pqcguard.details import KeyEncapsulationDetails, SignatureDetails
from pqcguard.interfaces import OQS_ERROR, RandomGenerator

from . import _core
from ._core import encode_name, readonly, writable

log = logging.getLogger(__name__)


def _decode(value: Optional[bytes]) -> str:
    return value.decode("ascii", errors="replace") if value else ""


class LiboqsEngine:
    """``NativeEngine`` implementation calling liboqs through ctypes.

    Buffers handed in by the sessions are mapped onto ctypes arrays without
    copying, so key material is written by liboqs straight into the
    session's ``SecureBuffer``. No argument checking happens here; that is
    the sessions' job.
    """

    def __init__(self, library: Optional[ctypes.CDLL] = None) -> None:
        self._lib = library if library is not None else _core.lib()
        self._version = _decode(self._lib.OQS_version())
        self._sig_struct = _core.sig_struct_for(self._version)
        self._has_ctx_str = hasattr(self._lib, "OQS_SIG_sign_with_ctx_str")

    def __repr__(self) -> str:
        return f"LiboqsEngine(version={self._version!r})"

    def version(self) -> str:
        return self._version

    def _entropy_call(self, fn: Callable[..., Any], *args: Any) -> Any:
        # Anything that may pull entropy can run the custom RNG trampoline.
        _core.clear_pending_error()
        rv = fn(*args)
        _core.raise_pending_error()
        return rv

    # ---------------- catalog ----------------

    def _identifier(self, fn: Callable[[int], Optional[bytes]], count: int, index: int) -> Optional[str]:
        if index < 0 or index >= count:
            return None
        raw = fn(index)
        return raw.decode("ascii") if raw is not None else None

    def _is_enabled(self, fn: Callable[[bytes], int], name: str) -> bool:
        encoded = encode_name(name)
        if encoded is None:
            return False
        return bool(fn(encoded))

    def kem_alg_count(self) -> int:
        return int(self._lib.OQS_KEM_alg_count())

    def kem_alg_identifier(self, index: int) -> Optional[str]:
        return self._identifier(self._lib.OQS_KEM_alg_identifier, self.kem_alg_count(), index)

    def kem_alg_is_enabled(self, name: str) -> bool:
        return self._is_enabled(self._lib.OQS_KEM_alg_is_enabled, name)

    def sig_alg_count(self) -> int:
        return int(self._lib.OQS_SIG_alg_count())

    def sig_alg_identifier(self, index: int) -> Optional[str]:
        return self._identifier(self._lib.OQS_SIG_alg_identifier, self.sig_alg_count(), index)

    def sig_alg_is_enabled(self, name: str) -> bool:
        return self._is_enabled(self._lib.OQS_SIG_alg_is_enabled, name)

    # ---------------- KEM ----------------

    def kem_new(self, name: str) -> Optional[int]:
        encoded = encode_name(name)
        if encoded is None:
            return None
        return self._lib.OQS_KEM_new(encoded)

    def kem_details(self, handle: int) -> KeyEncapsulationDetails:
        kem = ctypes.cast(handle, ctypes.POINTER(_core.OQS_KEM)).contents
        return KeyEncapsulationDetails(
            name=_decode(kem.method_name),
            version=_decode(kem.alg_version),
            claimed_nist_level=int(kem.claimed_nist_level),
            is_ind_cca=bool(kem.ind_cca),
            length_public_key=int(kem.length_public_key),
            length_secret_key=int(kem.length_secret_key),
            length_ciphertext=int(kem.length_ciphertext),
            length_shared_secret=int(kem.length_shared_secret),
        )

    def kem_keypair(self, handle: int, public_key: bytearray, secret_key: bytearray) -> int:
        pk, sk = writable(public_key), writable(secret_key)
        rv = self._entropy_call(self._lib.OQS_KEM_keypair, handle, pk, sk)
        del pk, sk
        return rv

    def kem_encaps(self, handle: int, ciphertext: bytearray, shared_secret: bytearray, public_key: bytes) -> int:
        ct, ss, pk = writable(ciphertext), writable(shared_secret), readonly(public_key)
        rv = self._entropy_call(self._lib.OQS_KEM_encaps, handle, ct, ss, pk)
        del ct, ss, pk
        return rv

    def kem_decaps(self, handle: int, shared_secret: bytearray, ciphertext: bytes, secret_key: bytearray) -> int:
        ss, ct, sk = writable(shared_secret), readonly(ciphertext), writable(secret_key)
        rv = self._lib.OQS_KEM_decaps(handle, ss, ct, sk)
        del ss, ct, sk
        return rv

    def kem_free(self, handle: int) -> None:
        self._lib.OQS_KEM_free(handle)

    # ---------------- signatures ----------------

    def sig_new(self, name: str) -> Optional[int]:
        encoded = encode_name(name)
        if encoded is None:
            return None
        return self._lib.OQS_SIG_new(encoded)

    def sig_details(self, handle: int) -> SignatureDetails:
        sig = ctypes.cast(handle, ctypes.POINTER(self._sig_struct)).contents
        return SignatureDetails(
            name=_decode(sig.method_name),
            version=_decode(sig.alg_version),
            claimed_nist_level=int(sig.claimed_nist_level),
            is_euf_cma=bool(sig.euf_cma),
            is_suf_cma=bool(getattr(sig, "suf_cma", False)),
            sig_with_ctx_support=self._has_ctx_str and bool(sig.sig_with_ctx_support),
            length_public_key=int(sig.length_public_key),
            length_secret_key=int(sig.length_secret_key),
            max_length_signature=int(sig.length_signature),
        )

    def sig_keypair(self, handle: int, public_key: bytearray, secret_key: bytearray) -> int:
        pk, sk = writable(public_key), writable(secret_key)
        rv = self._entropy_call(self._lib.OQS_SIG_keypair, handle, pk, sk)
        del pk, sk
        return rv

    def sig_sign(self, handle: int, signature: bytearray, message: bytes, secret_key: bytearray) -> Tuple[int, int]:
        sig_len = ctypes.c_size_t(0)
        out, msg, sk = writable(signature), readonly(message), writable(secret_key)
        rv = self._entropy_call(
            self._lib.OQS_SIG_sign, handle, out, ctypes.byref(sig_len), msg, len(message), sk
        )
        del out, msg, sk
        return rv, int(sig_len.value)

    def sig_sign_with_ctx_str(
        self, handle: int, signature: bytearray, message: bytes, context: bytes, secret_key: bytearray
    ) -> Tuple[int, int]:
        if not self._has_ctx_str:
            return OQS_ERROR, 0
        sig_len = ctypes.c_size_t(0)
        out, msg, ctx, sk = writable(signature), readonly(message), readonly(context), writable(secret_key)
        rv = self._entropy_call(
            self._lib.OQS_SIG_sign_with_ctx_str,
            handle, out, ctypes.byref(sig_len), msg, len(message), ctx, len(context), sk,
        )
        del out, msg, ctx, sk
        return rv, int(sig_len.value)

    def sig_verify(self, handle: int, message: bytes, signature: bytes, public_key: bytes) -> int:
        return self._lib.OQS_SIG_verify(
            handle, readonly(message), len(message), readonly(signature), len(signature), readonly(public_key)
        )

    def sig_verify_with_ctx_str(
        self, handle: int, message: bytes, signature: bytes, context: bytes, public_key: bytes
    ) -> int:
        if not self._has_ctx_str:
            return OQS_ERROR
        return self._lib.OQS_SIG_verify_with_ctx_str(
            handle,
            readonly(message), len(message),
            readonly(signature), len(signature),
            readonly(context), len(context),
            readonly(public_key),
        )

    def sig_free(self, handle: int) -> None:
        self._lib.OQS_SIG_free(handle)

    # ---------------- memory and entropy ----------------

    def mem_cleanse(self, buffer: bytearray) -> None:
        if not buffer:
            return
        arr = (ctypes.c_char * len(buffer)).from_buffer(buffer)
        self._lib.OQS_MEM_cleanse(ctypes.addressof(arr), len(buffer))
        del arr

    def randombytes(self, buffer: bytearray, count: int) -> None:
        count = min(count, len(buffer))
        if count <= 0:
            return
        arr = writable(buffer)
        self._entropy_call(self._lib.OQS_randombytes, arr, count)
        del arr

    def randombytes_switch_algorithm(self, name: str) -> int:
        encoded = encode_name(name)
        if encoded is None:
            return OQS_ERROR
        rv = self._lib.OQS_randombytes_switch_algorithm(encoded)
        if rv == 0:
            _core.set_rand_callback(None)
        return rv

    def randombytes_custom_algorithm(self, generator: RandomGenerator) -> None:
        _core.set_rand_callback(generator)
        self._lib.OQS_randombytes_custom_algorithm(_core._RAND_TRAMPOLINE)
        log.debug("registered RNG trampoline with liboqs")
