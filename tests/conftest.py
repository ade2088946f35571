from __future__ import annotations

import hashlib
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
for rel in ("libs/core/src", "libs/adapters/native/src", "apps/cli/src"):
    candidate = str(ROOT / rel)
    if candidate not in sys.path:
        sys.path.insert(0, candidate)

from pqcguard import rand, runtime  # noqa: E402
from pqcguard.details import KeyEncapsulationDetails, SignatureDetails  # noqa: E402
from pqcguard.interfaces import OQS_ERROR, OQS_SUCCESS  # noqa: E402


def _shake(label: bytes, *parts: bytes, length: int) -> bytes:
    h = hashlib.shake_256(label)
    for part in parts:
        h.update(len(part).to_bytes(4, "big"))
        h.update(part)
    return h.digest(length)


KEM_CATALOG: Dict[str, Tuple[bool, KeyEncapsulationDetails]] = {
    "FakeKEM-512": (
        True,
        KeyEncapsulationDetails("FakeKEM-512", "1.0", 1, True, 48, 40, 24, 32),
    ),
    "FakeKEM-1024": (
        True,
        KeyEncapsulationDetails("FakeKEM-1024", "1.0", 5, True, 64, 56, 40, 32),
    ),
    "FakeKEM-Disabled": (
        False,
        KeyEncapsulationDetails("FakeKEM-Disabled", "0.1", 1, False, 16, 16, 16, 16),
    ),
}

SIG_CATALOG: Dict[str, Tuple[bool, SignatureDetails]] = {
    "FakeSig-Ctx": (
        True,
        SignatureDetails("FakeSig-Ctx", "1.0", 3, True, True, 32, 48, 64, is_suf_cma=True),
    ),
    "FakeSig-NoCtx": (
        True,
        SignatureDetails("FakeSig-NoCtx", "1.0", 1, True, False, 24, 32, 64),
    ),
    "FakeSig-Disabled": (
        False,
        SignatureDetails("FakeSig-Disabled", "0.1", 1, False, False, 16, 16, 16),
    ),
}


@dataclass(eq=False)
class FakeHandle:
    name: str
    family: str
    freed: bool = False


@dataclass(eq=False)
class FakeEngine:
    """Deterministic stand-in for liboqs.

    The "algorithms" are hash constructions with liboqs-shaped buffers and
    status codes; they are only good for exercising the wrapper. ``fail``
    holds operation names that should report a native failure, after
    scribbling into their output buffers.
    """

    fail: set = field(default_factory=set)
    chunk_size: int = 16
    reported_sig_len: Optional[int] = None
    freed: List[FakeHandle] = field(default_factory=list)
    live: List[FakeHandle] = field(default_factory=list)
    cleanse_calls: int = 0
    native_calls: List[str] = field(default_factory=list)
    rand_algorithm: str = "system"
    generator: Optional[Callable[[bytearray, int], None]] = None
    last_secret_buffer: Optional[bytearray] = None

    def version(self) -> str:
        return "0.0.0-fake"

    # catalog
    def kem_alg_count(self) -> int:
        return len(KEM_CATALOG)

    def kem_alg_identifier(self, index: int) -> Optional[str]:
        names = list(KEM_CATALOG)
        return names[index] if 0 <= index < len(names) else None

    def kem_alg_is_enabled(self, name: str) -> bool:
        return name in KEM_CATALOG and KEM_CATALOG[name][0]

    def sig_alg_count(self) -> int:
        return len(SIG_CATALOG)

    def sig_alg_identifier(self, index: int) -> Optional[str]:
        names = list(SIG_CATALOG)
        return names[index] if 0 <= index < len(names) else None

    def sig_alg_is_enabled(self, name: str) -> bool:
        return name in SIG_CATALOG and SIG_CATALOG[name][0]

    # handles
    def _new(self, name: str, family: str) -> Optional[FakeHandle]:
        catalog = KEM_CATALOG if family == "kem" else SIG_CATALOG
        if name not in catalog or not catalog[name][0]:
            return None
        handle = FakeHandle(name, family)
        self.live.append(handle)
        return handle

    def _free(self, handle: FakeHandle) -> None:
        assert not handle.freed, "handle released twice"
        handle.freed = True
        self.live.remove(handle)
        self.freed.append(handle)

    def _failing(self, op: str, *buffers: bytearray) -> bool:
        self.native_calls.append(op)
        if op not in self.fail:
            return False
        for buf in buffers:
            buf[:] = b"\xee" * len(buf)
        return True

    def kem_new(self, name: str) -> Optional[FakeHandle]:
        return self._new(name, "kem")

    def kem_details(self, handle: FakeHandle) -> KeyEncapsulationDetails:
        return KEM_CATALOG[handle.name][1]

    def kem_keypair(self, handle, public_key: bytearray, secret_key: bytearray) -> int:
        self.last_secret_buffer = secret_key
        if self._failing("kem_keypair", public_key, secret_key):
            return OQS_ERROR
        self.randombytes(secret_key, len(secret_key))
        public_key[:] = _shake(b"pk", bytes(secret_key), length=len(public_key))
        return OQS_SUCCESS

    def kem_encaps(self, handle, ciphertext: bytearray, shared_secret: bytearray, public_key: bytes) -> int:
        self.last_secret_buffer = shared_secret
        if self._failing("kem_encaps", ciphertext, shared_secret):
            return OQS_ERROR
        self.randombytes(ciphertext, len(ciphertext))
        shared_secret[:] = _shake(b"ss", public_key, bytes(ciphertext), length=len(shared_secret))
        return OQS_SUCCESS

    def kem_decaps(self, handle, shared_secret: bytearray, ciphertext: bytes, secret_key: bytearray) -> int:
        self.last_secret_buffer = shared_secret
        if self._failing("kem_decaps", shared_secret):
            return OQS_ERROR
        details = KEM_CATALOG[handle.name][1]
        public_key = _shake(b"pk", bytes(secret_key), length=details.length_public_key)
        shared_secret[:] = _shake(b"ss", public_key, ciphertext, length=len(shared_secret))
        return OQS_SUCCESS

    def kem_free(self, handle: FakeHandle) -> None:
        self._free(handle)

    def sig_new(self, name: str) -> Optional[FakeHandle]:
        return self._new(name, "sig")

    def sig_details(self, handle: FakeHandle) -> SignatureDetails:
        return SIG_CATALOG[handle.name][1]

    def sig_keypair(self, handle, public_key: bytearray, secret_key: bytearray) -> int:
        self.last_secret_buffer = secret_key
        if self._failing("sig_keypair", public_key, secret_key):
            return OQS_ERROR
        self.randombytes(secret_key, len(secret_key))
        public_key[:] = _shake(b"pk", bytes(secret_key), length=len(public_key))
        return OQS_SUCCESS

    @staticmethod
    def _signature(public_key: bytes, message: bytes, context: bytes) -> bytes:
        tag = _shake(b"sig", public_key, context, message, length=32)
        return tag + _shake(b"pad", tag, length=len(message) % 16)

    def _sign(self, op, handle, signature, message, context, secret_key) -> Tuple[int, int]:
        if self._failing(op, signature):
            return OQS_ERROR, 0
        details = SIG_CATALOG[handle.name][1]
        public_key = _shake(b"pk", bytes(secret_key), length=details.length_public_key)
        sig = self._signature(public_key, message, context)
        signature[: len(sig)] = sig
        length = len(sig) if self.reported_sig_len is None else self.reported_sig_len
        return OQS_SUCCESS, length

    def sig_sign(self, handle, signature: bytearray, message: bytes, secret_key: bytearray) -> Tuple[int, int]:
        return self._sign("sig_sign", handle, signature, message, b"", secret_key)

    def sig_sign_with_ctx_str(self, handle, signature, message, context, secret_key) -> Tuple[int, int]:
        return self._sign("sig_sign_with_ctx_str", handle, signature, message, context, secret_key)

    def sig_verify(self, handle, message: bytes, signature: bytes, public_key: bytes) -> int:
        return self.sig_verify_with_ctx_str(handle, message, signature, b"", public_key)

    def sig_verify_with_ctx_str(self, handle, message, signature, context, public_key) -> int:
        self.native_calls.append("sig_verify")
        ok = signature == self._signature(public_key, message, context)
        return OQS_SUCCESS if ok else OQS_ERROR

    def sig_free(self, handle: FakeHandle) -> None:
        self._free(handle)

    # memory and entropy
    def mem_cleanse(self, buffer: bytearray) -> None:
        self.cleanse_calls += 1
        buffer[:] = bytes(len(buffer))

    def randombytes(self, buffer: bytearray, count: int) -> None:
        # Fill in fixed-size chunks the way a DRBG refills its output block.
        count = min(count, len(buffer))
        offset = 0
        while offset < count:
            n = min(self.chunk_size, count - offset)
            if self.generator is not None:
                chunk = bytearray(n)
                self.generator(chunk, n)
                assert len(chunk) == n
            else:
                chunk = bytearray(os.urandom(n))
            buffer[offset:offset + n] = chunk
            offset += n

    def randombytes_switch_algorithm(self, name: str) -> int:
        if name not in ("system", "OpenSSL"):
            return OQS_ERROR
        self.rand_algorithm = name
        self.generator = None
        return OQS_SUCCESS

    def randombytes_custom_algorithm(self, generator) -> None:
        self.rand_algorithm = "custom"
        self.generator = generator


@pytest.fixture
def fake_engine(monkeypatch: pytest.MonkeyPatch):
    engine = FakeEngine()
    runtime.configure(engine)
    monkeypatch.setattr(rand, "_active_source", rand.SYSTEM)
    try:
        yield engine
    finally:
        runtime.configure(None)
