from __future__ import annotations

import logging
from typing import Any, Tuple

from ._session import SessionState, _Session
from .details import KeyEncapsulationDetails
from .errors import (
    DecapsulationFailed,
    EncapsulationFailed,
    InvalidCiphertextLength,
    InvalidPublicKeyLength,
)
from .interfaces import OQS_SUCCESS, NativeEngine
from .registry import Family
from .secure_buffer import BytesLike, SecureBuffer

log = logging.getLogger(__name__)

__all__ = ["KeyEncapsulationSession", "SessionState"]


class KeyEncapsulationSession(_Session[KeyEncapsulationDetails]):
    """Stateful KEM bound to one liboqs algorithm instance.

    Typical use::

        with KeyEncapsulationSession("ML-KEM-768") as server, \
                KeyEncapsulationSession("ML-KEM-768") as client:
            public_key = server.generate_keypair()
            ciphertext, secret = client.encap_secret(public_key)
            assert server.decap_secret(ciphertext) == secret
    """

    family = Family.KEM
    _label = "Key encapsulation mechanism"

    def _native_new(self, engine: NativeEngine, alg_name: str) -> Any:
        return engine.kem_new(alg_name)

    def _native_details(self, engine: NativeEngine, handle: Any) -> KeyEncapsulationDetails:
        return engine.kem_details(handle)

    def _native_keypair(self, handle: Any, public_key: bytearray, secret_key: bytearray) -> int:
        return self._engine.kem_keypair(handle, public_key, secret_key)

    def _native_free(self, engine: NativeEngine, handle: Any) -> None:
        engine.kem_free(handle)

    def _secret_key_length(self) -> int:
        return self.details.length_secret_key

    def _public_key_length(self) -> int:
        return self.details.length_public_key

    def encap_secret(self, public_key: BytesLike) -> Tuple[bytes, bytes]:
        """Encapsulate a fresh secret for ``public_key``.

        Returns ``(ciphertext, shared_secret)``. Needs no secret key, so any
        initialized session can encapsulate.
        """
        handle = self._require_handle()
        details = self.details
        public_key = bytes(public_key)
        if len(public_key) != details.length_public_key:
            raise InvalidPublicKeyLength(len(public_key), details.length_public_key)

        ciphertext = bytearray(details.length_ciphertext)
        shared_secret = SecureBuffer.allocate(details.length_shared_secret, wipe=self._engine.mem_cleanse)
        try:
            rv = self._engine.kem_encaps(handle, ciphertext, shared_secret.raw, public_key)
            if rv != OQS_SUCCESS:
                log.warning("%s: native encapsulation failed (status=%s)", details.name, rv)
                raise EncapsulationFailed("can not encapsulate secret")
            return bytes(ciphertext), shared_secret.export()
        finally:
            shared_secret.zeroize()

    def decap_secret(self, ciphertext: BytesLike) -> bytes:
        """Recover the shared secret from ``ciphertext`` with the custodied key."""
        handle = self._require_handle()
        details = self.details
        ciphertext = bytes(ciphertext)
        if len(ciphertext) != details.length_ciphertext:
            raise InvalidCiphertextLength(len(ciphertext), details.length_ciphertext)
        secret_key = self._require_secret_key()

        shared_secret = SecureBuffer.allocate(details.length_shared_secret, wipe=self._engine.mem_cleanse)
        try:
            rv = self._engine.kem_decaps(handle, shared_secret.raw, ciphertext, secret_key.raw)
            if rv != OQS_SUCCESS:
                log.warning("%s: native decapsulation failed (status=%s)", details.name, rv)
                raise DecapsulationFailed("can not decapsulate secret")
            return shared_secret.export()
        finally:
            shared_secret.zeroize()
