from __future__ import annotations

import logging
from typing import Any, Optional

from ._session import SessionState, _Session
from .details import SignatureDetails
from .errors import (
    ContextNotSupported,
    InvalidPublicKeyLength,
    InvalidSecretKeyLength,
    InvalidSignatureLength,
    SigningFailed,
)
from .interfaces import OQS_SUCCESS, NativeEngine
from .registry import Family
from .secure_buffer import BytesLike, SecureBuffer

log = logging.getLogger(__name__)

__all__ = ["SignatureSession", "SessionState"]


class SignatureSession(_Session[SignatureDetails]):
    """Stateful signature scheme bound to one liboqs algorithm instance.

    Verification never raises for a bad signature: a rejected signature is
    reported as ``False``. Exceptions are reserved for inputs the engine must
    not see (wrong lengths, unsupported context strings) and for sessions that
    are not initialized.
    """

    family = Family.SIG
    _label = "Signature mechanism"

    def _native_new(self, engine: NativeEngine, alg_name: str) -> Any:
        return engine.sig_new(alg_name)

    def _native_details(self, engine: NativeEngine, handle: Any) -> SignatureDetails:
        return engine.sig_details(handle)

    def _native_keypair(self, handle: Any, public_key: bytearray, secret_key: bytearray) -> int:
        return self._engine.sig_keypair(handle, public_key, secret_key)

    def _native_free(self, engine: NativeEngine, handle: Any) -> None:
        engine.sig_free(handle)

    def _secret_key_length(self) -> int:
        return self.details.length_secret_key

    def _public_key_length(self) -> int:
        return self.details.length_public_key

    def import_secret_key(self, secret_key: BytesLike) -> None:
        """Take custody of a secret key produced elsewhere, replacing any current one."""
        self._require_handle()
        expected = self.details.length_secret_key
        if len(secret_key) != expected:
            raise InvalidSecretKeyLength(len(secret_key), expected)
        self._replace_secret_key(SecureBuffer(secret_key, wipe=self._engine.mem_cleanse))
        self._state = SessionState.KEY_IMPORTED

    def _check_context(self, context: bytes) -> None:
        if context and not self.details.sig_with_ctx_support:
            raise ContextNotSupported(self.details.name)

    def _finish_signature(self, rv: int, signature: bytearray, length: int) -> bytes:
        details = self.details
        if rv != OQS_SUCCESS:
            log.warning("%s: native signing failed (status=%s)", details.name, rv)
            raise SigningFailed("can not sign message")
        if length < 0 or length > details.max_length_signature:
            raise SigningFailed(
                f"engine reported signature length {length}, "
                f"maximum is {details.max_length_signature}"
            )
        return bytes(signature[:length])

    def sign(self, message: BytesLike) -> bytes:
        handle = self._require_handle()
        secret_key = self._require_secret_key()
        signature = bytearray(self.details.max_length_signature)
        rv, length = self._engine.sig_sign(handle, signature, bytes(message), secret_key.raw)
        return self._finish_signature(rv, signature, length)

    def sign_with_ctx_str(self, message: BytesLike, context: Optional[BytesLike]) -> bytes:
        """Sign ``message`` bound to ``context``; an empty context is a plain :meth:`sign`."""
        handle = self._require_handle()
        context = bytes(context or b"")
        self._check_context(context)
        if not context:
            return self.sign(message)
        secret_key = self._require_secret_key()
        signature = bytearray(self.details.max_length_signature)
        rv, length = self._engine.sig_sign_with_ctx_str(
            handle, signature, bytes(message), context, secret_key.raw
        )
        return self._finish_signature(rv, signature, length)

    def _check_verify_inputs(self, signature: bytes, public_key: bytes) -> None:
        details = self.details
        if len(public_key) != details.length_public_key:
            raise InvalidPublicKeyLength(len(public_key), details.length_public_key)
        if len(signature) > details.max_length_signature:
            raise InvalidSignatureLength(len(signature), details.max_length_signature)

    def verify(self, message: BytesLike, signature: BytesLike, public_key: BytesLike) -> bool:
        handle = self._require_handle()
        signature, public_key = bytes(signature), bytes(public_key)
        self._check_verify_inputs(signature, public_key)
        rv = self._engine.sig_verify(handle, bytes(message), signature, public_key)
        return rv == OQS_SUCCESS

    def verify_with_ctx_str(
        self,
        message: BytesLike,
        signature: BytesLike,
        context: Optional[BytesLike],
        public_key: BytesLike,
    ) -> bool:
        handle = self._require_handle()
        context = bytes(context or b"")
        self._check_context(context)
        if not context:
            return self.verify(message, signature, public_key)
        signature, public_key = bytes(signature), bytes(public_key)
        self._check_verify_inputs(signature, public_key)
        rv = self._engine.sig_verify_with_ctx_str(handle, bytes(message), signature, context, public_key)
        return rv == OQS_SUCCESS
