"""Exception hierarchy shared by the core package and the native adapter.

Every failure raised by pqcguard derives from :class:`PQCError`. Input-shape
problems also derive from ``ValueError`` so callers that only care about bad
arguments can catch them without importing this module.
"""

from __future__ import annotations


class PQCError(RuntimeError):
    pass


class NativeLibraryError(PQCError):
    """liboqs could not be located or does not expose the expected symbols."""


class SessionNotInitialized(PQCError):
    pass


# ---------------- Algorithm selection ----------------

class AlgorithmError(PQCError):
    def __init__(self, alg_name: str, message: str) -> None:
        super().__init__(message)
        self.alg_name = alg_name


class AlgorithmNotSupported(AlgorithmError):
    def __init__(self, alg_name: str, family: str = "algorithm") -> None:
        super().__init__(alg_name, f'"{alg_name}" {family} is not supported by OQS')


class AlgorithmNotEnabled(AlgorithmError):
    def __init__(self, alg_name: str, family: str = "algorithm") -> None:
        super().__init__(alg_name, f'"{alg_name}" {family} is not enabled by OQS')


class InvalidAlgorithmIndex(PQCError, IndexError):
    def __init__(self, index: int, count: int) -> None:
        super().__init__(f"algorithm ID {index} out of range [0, {count})")
        self.index = index
        self.count = count


# ---------------- Input shape ----------------

class InvalidLengthError(PQCError, ValueError):
    what = "input"

    def __init__(self, actual: int, expected: int) -> None:
        super().__init__(f"incorrect {self.what} length: got {actual}, expected {expected}")
        self.actual = actual
        self.expected = expected


class InvalidPublicKeyLength(InvalidLengthError):
    what = "public key"


class InvalidSecretKeyLength(InvalidLengthError):
    what = "secret key"


class InvalidCiphertextLength(InvalidLengthError):
    what = "ciphertext"


class InvalidSignatureLength(InvalidLengthError):
    what = "signature"

    def __init__(self, actual: int, expected: int) -> None:
        PQCError.__init__(
            self, f"incorrect signature size: got {actual}, maximum is {expected}"
        )
        self.actual = actual
        self.expected = expected


class MissingOrInvalidSecretKey(PQCError):
    def __init__(self) -> None:
        super().__init__(
            "missing or incorrect secret key, make sure you specify one in "
            "init() or run generate_keypair()"
        )


class ContextNotSupported(PQCError):
    def __init__(self, alg_name: str) -> None:
        super().__init__(f'"{alg_name}" does not support context strings')
        self.alg_name = alg_name


# ---------------- Native failures ----------------

class NativeOperationError(PQCError):
    pass


class KeyPairGenerationFailed(NativeOperationError):
    pass


class EncapsulationFailed(NativeOperationError):
    pass


class DecapsulationFailed(NativeOperationError):
    pass


class SigningFailed(NativeOperationError):
    pass


# ---------------- Randomness ----------------

class RandomSourceError(PQCError):
    pass


class UnknownRandomAlgorithm(RandomSourceError):
    def __init__(self, alg_name: str) -> None:
        super().__init__(f'can not switch to "{alg_name}" algorithm')
        self.alg_name = alg_name


class NilGenerator(RandomSourceError, TypeError):
    def __init__(self) -> None:
        super().__init__("the RNG algorithm callback can not be None")


class RandomGeneratorFailed(RandomSourceError):
    """The host-supplied generator raised or produced the wrong number of bytes."""
