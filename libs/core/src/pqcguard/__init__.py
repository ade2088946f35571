from .details import KeyEncapsulationDetails, SignatureDetails
from .errors import (
    AlgorithmNotEnabled,
    AlgorithmNotSupported,
    ContextNotSupported,
    DecapsulationFailed,
    EncapsulationFailed,
    InvalidAlgorithmIndex,
    InvalidCiphertextLength,
    InvalidLengthError,
    InvalidPublicKeyLength,
    InvalidSecretKeyLength,
    InvalidSignatureLength,
    KeyPairGenerationFailed,
    MissingOrInvalidSecretKey,
    NativeLibraryError,
    NativeOperationError,
    NilGenerator,
    PQCError,
    RandomGeneratorFailed,
    RandomSourceError,
    SessionNotInitialized,
    SigningFailed,
    UnknownRandomAlgorithm,
)
from .interfaces import NativeEngine
from .kem import KeyEncapsulationSession
from .rand import (
    RandomSource,
    random_bytes,
    random_bytes_custom_algorithm,
    random_bytes_in_place,
    random_bytes_switch_algorithm,
)
from .registry import AlgorithmIdentity, AlgorithmRegistry, Family
from .runtime import configure, get_engine, get_registry, liboqs_version
from .secure_buffer import SecureBuffer
from ._session import SessionState
from .sig import SignatureSession

__all__ = [
    "AlgorithmIdentity",
    "AlgorithmNotEnabled",
    "AlgorithmNotSupported",
    "AlgorithmRegistry",
    "ContextNotSupported",
    "DecapsulationFailed",
    "EncapsulationFailed",
    "Family",
    "InvalidAlgorithmIndex",
    "InvalidCiphertextLength",
    "InvalidLengthError",
    "InvalidPublicKeyLength",
    "InvalidSecretKeyLength",
    "InvalidSignatureLength",
    "KeyEncapsulationDetails",
    "KeyEncapsulationSession",
    "KeyPairGenerationFailed",
    "MissingOrInvalidSecretKey",
    "NativeEngine",
    "NativeLibraryError",
    "NativeOperationError",
    "NilGenerator",
    "PQCError",
    "RandomGeneratorFailed",
    "RandomSource",
    "RandomSourceError",
    "SecureBuffer",
    "SessionNotInitialized",
    "SessionState",
    "SignatureDetails",
    "SignatureSession",
    "SigningFailed",
    "UnknownRandomAlgorithm",
    "configure",
    "get_engine",
    "get_registry",
    "liboqs_version",
    "random_bytes",
    "random_bytes_custom_algorithm",
    "random_bytes_in_place",
    "random_bytes_switch_algorithm",
]
