"""Contract of the native engine behind the sessions.

The sessions, registry and random source talk only to this Protocol, never to
liboqs directly. ``pqcguard_native.LiboqsEngine`` is the production
implementation; tests plug in a pure-Python double.

Conventions mirror liboqs: status ``0`` means success; output buffers are
caller-allocated ``bytearray`` objects of exactly the declared length and are
written in place; handles are opaque.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, Tuple

from .details import KeyEncapsulationDetails, SignatureDetails

OQS_SUCCESS = 0
OQS_ERROR = -1

RandomGenerator = Callable[[bytearray, int], None]


class NativeEngine(Protocol):
    """Synchronous, unchecked access to a liboqs-compatible engine.

    The registry built for an engine is cached through a weak reference. An
    engine that is unhashable or cannot be weakly referenced still works, but
    its catalog is rebuilt on every session init.
    """

    def version(self) -> str: ...

    # Catalog
    def kem_alg_count(self) -> int: ...
    def kem_alg_identifier(self, index: int) -> Optional[str]: ...
    def kem_alg_is_enabled(self, name: str) -> bool: ...
    def sig_alg_count(self) -> int: ...
    def sig_alg_identifier(self, index: int) -> Optional[str]: ...
    def sig_alg_is_enabled(self, name: str) -> bool: ...

    # KEM instances
    def kem_new(self, name: str) -> Any: ...
    def kem_details(self, handle: Any) -> KeyEncapsulationDetails: ...
    def kem_keypair(self, handle: Any, public_key: bytearray, secret_key: bytearray) -> int: ...
    def kem_encaps(self, handle: Any, ciphertext: bytearray, shared_secret: bytearray, public_key: bytes) -> int: ...
    def kem_decaps(self, handle: Any, shared_secret: bytearray, ciphertext: bytes, secret_key: bytearray) -> int: ...
    def kem_free(self, handle: Any) -> None: ...

    # Signature instances
    def sig_new(self, name: str) -> Any: ...
    def sig_details(self, handle: Any) -> SignatureDetails: ...
    def sig_keypair(self, handle: Any, public_key: bytearray, secret_key: bytearray) -> int: ...
    def sig_sign(self, handle: Any, signature: bytearray, message: bytes, secret_key: bytearray) -> Tuple[int, int]: ...
    def sig_sign_with_ctx_str(
        self, handle: Any, signature: bytearray, message: bytes, context: bytes, secret_key: bytearray
    ) -> Tuple[int, int]: ...
    def sig_verify(self, handle: Any, message: bytes, signature: bytes, public_key: bytes) -> int: ...
    def sig_verify_with_ctx_str(
        self, handle: Any, message: bytes, signature: bytes, context: bytes, public_key: bytes
    ) -> int: ...
    def sig_free(self, handle: Any) -> None: ...

    # Memory and entropy
    def mem_cleanse(self, buffer: bytearray) -> None: ...
    def randombytes(self, buffer: bytearray, count: int) -> None: ...
    def randombytes_switch_algorithm(self, name: str) -> int: ...
    def randombytes_custom_algorithm(self, generator: RandomGenerator) -> None: ...
