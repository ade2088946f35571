"""Lifecycle shared by the KEM and signature sessions.

A session exclusively owns one native algorithm handle and at most one
secret key held in a :class:`SecureBuffer`. ``clean`` wipes the key and
releases the handle exactly once; the session can then be initialized again.
Sessions are not thread-safe.
"""

from __future__ import annotations

import enum
import logging
import warnings
from typing import Any, Generic, Optional, TypeVar

from . import runtime
from .errors import (
    AlgorithmNotEnabled,
    AlgorithmNotSupported,
    KeyPairGenerationFailed,
    MissingOrInvalidSecretKey,
    SessionNotInitialized,
)
from .interfaces import OQS_SUCCESS, NativeEngine
from .registry import Family
from .secure_buffer import BytesLike, SecureBuffer

log = logging.getLogger(__name__)

DetailsT = TypeVar("DetailsT")


class SessionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    KEY_PAIR_GENERATED = "key-pair-generated"
    KEY_IMPORTED = "key-imported"
    CLEANED = "cleaned"


class _Session(Generic[DetailsT]):
    family: Family
    _label = "session"

    def __init__(
        self,
        alg_name: Optional[str] = None,
        secret_key: Optional[BytesLike] = None,
        *,
        engine: Optional[NativeEngine] = None,
    ) -> None:
        self._engine = engine
        # Unpinned sessions follow runtime.configure() across re-init.
        self._engine_pinned = engine is not None
        self._handle: Any = None
        self._secret_key: Optional[SecureBuffer] = None
        self._details: Optional[DetailsT] = None
        self._state = SessionState.UNINITIALIZED
        if alg_name is not None:
            self.init(alg_name, secret_key)

    # ---------------- native hooks ----------------

    def _native_new(self, engine: NativeEngine, alg_name: str) -> Any:
        raise NotImplementedError

    def _native_details(self, engine: NativeEngine, handle: Any) -> DetailsT:
        raise NotImplementedError

    def _native_keypair(self, handle: Any, public_key: bytearray, secret_key: bytearray) -> int:
        raise NotImplementedError

    def _native_free(self, engine: NativeEngine, handle: Any) -> None:
        raise NotImplementedError

    def _secret_key_length(self) -> int:
        raise NotImplementedError

    def _public_key_length(self) -> int:
        raise NotImplementedError

    # ---------------- lifecycle ----------------

    def init(self, alg_name: str, secret_key: Optional[BytesLike] = None):
        """Bind the session to ``alg_name``.

        A supplied ``secret_key`` is taken into custody as-is; its length is
        checked by the operations that need it. If the session is already
        bound, it is cleaned first.
        """
        if self._handle is not None:
            self.clean()
        engine = self._engine if self._engine_pinned else runtime.get_engine()
        registry = runtime.registry_for(engine)
        if not registry.is_enabled(alg_name, self.family):
            if registry.is_supported(alg_name, self.family):
                raise AlgorithmNotEnabled(alg_name, self.family.label)
            raise AlgorithmNotSupported(alg_name, self.family.label)

        handle = self._native_new(engine, alg_name)
        if handle is None:
            raise AlgorithmNotEnabled(alg_name, self.family.label)
        try:
            details = self._native_details(engine, handle)
        except BaseException:
            self._native_free(engine, handle)
            raise

        self._engine = engine
        self._handle = handle
        self._details = details
        if secret_key is not None:
            self._secret_key = SecureBuffer(secret_key, wipe=engine.mem_cleanse)
            self._state = SessionState.KEY_IMPORTED
        else:
            self._secret_key = None
            self._state = SessionState.INITIALIZED
        log.debug("%s: acquired %s handle", alg_name, self.family.value)
        return self

    def clean(self) -> None:
        """Zeroize the secret key, release the handle and reset the session."""
        secret_key, self._secret_key = self._secret_key, None
        handle, self._handle = self._handle, None
        was_bound = handle is not None or self._state is not SessionState.UNINITIALIZED
        try:
            if secret_key is not None:
                secret_key.zeroize()
        finally:
            if handle is not None:
                self._native_free(self._engine, handle)
                log.debug("released %s handle", self.family.value)
            self._details = None
            self._state = SessionState.CLEANED if was_bound else SessionState.UNINITIALIZED

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.clean()

    def __del__(self) -> None:
        if getattr(self, "_handle", None) is not None:
            warnings.warn(
                f"{type(self).__name__} was garbage collected without clean()",
                ResourceWarning,
                stacklevel=2,
            )
            self.clean()

    # ---------------- introspection ----------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def details(self) -> DetailsT:
        self._require_handle()
        assert self._details is not None
        return self._details

    @property
    def algorithm(self) -> Optional[str]:
        return getattr(self._details, "name", None)

    @property
    def has_secret_key(self) -> bool:
        return self._secret_key is not None and not self._secret_key.is_zeroized

    def __str__(self) -> str:
        return f"{self._label}: {self.algorithm}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(algorithm={self.algorithm!r}, state={self._state.value})"

    # ---------------- key custody ----------------

    def generate_keypair(self) -> bytes:
        """Generate a key pair, keep the secret key and return the public key."""
        handle = self._require_handle()
        public_key = bytearray(self._public_key_length())
        secret_key = SecureBuffer.allocate(self._secret_key_length(), wipe=self._engine.mem_cleanse)
        try:
            rv = self._native_keypair(handle, public_key, secret_key.raw)
        except BaseException:
            secret_key.zeroize()
            public_key[:] = bytes(len(public_key))
            raise
        if rv != OQS_SUCCESS:
            secret_key.zeroize()
            public_key[:] = bytes(len(public_key))
            log.warning("%s: native key pair generation failed (status=%s)", self.algorithm, rv)
            raise KeyPairGenerationFailed("can not generate keypair")
        self._replace_secret_key(secret_key)
        self._state = SessionState.KEY_PAIR_GENERATED
        return bytes(public_key)

    def export_secret_key(self) -> Optional[bytes]:
        """Return a copy of the custodied secret key, or None if there is none."""
        self._require_handle()
        if self._secret_key is None:
            return None
        return self._secret_key.export()

    def _replace_secret_key(self, secret_key: SecureBuffer) -> None:
        previous, self._secret_key = self._secret_key, secret_key
        if previous is not None:
            previous.zeroize()

    def _require_handle(self) -> Any:
        if self._handle is None:
            raise SessionNotInitialized(
                f"{type(self).__name__} is not initialized, call init() first"
            )
        return self._handle

    def _require_secret_key(self) -> SecureBuffer:
        key = self._secret_key
        if key is None or key.is_zeroized or len(key) != self._secret_key_length():
            raise MissingOrInvalidSecretKey()
        return key
