"""Per-instance algorithm metadata snapshotted from liboqs at session init.

The byte lengths are load-bearing: liboqs performs no bounds checking, so
every buffer exchanged with an algorithm instance is sized from these values.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class KeyEncapsulationDetails:
    name: str
    version: str
    claimed_nist_level: int
    is_ind_cca: bool
    length_public_key: int
    length_secret_key: int
    length_ciphertext: int
    length_shared_secret: int

    def __str__(self) -> str:
        return (
            f"Name: {self.name}\n"
            f"Version: {self.version}\n"
            f"Claimed NIST level: {self.claimed_nist_level}\n"
            f"Is IND_CCA: {self.is_ind_cca}\n"
            f"Length public key (bytes): {self.length_public_key}\n"
            f"Length secret key (bytes): {self.length_secret_key}\n"
            f"Length ciphertext (bytes): {self.length_ciphertext}\n"
            f"Length shared secret (bytes): {self.length_shared_secret}"
        )


@dataclass(frozen=True)
class SignatureDetails:
    name: str
    version: str
    claimed_nist_level: int
    is_euf_cma: bool
    sig_with_ctx_support: bool
    length_public_key: int
    length_secret_key: int
    max_length_signature: int
    # Only reported by liboqs >= 0.13; False on older builds.
    is_suf_cma: bool = False

    def __str__(self) -> str:
        return (
            f"Name: {self.name}\n"
            f"Version: {self.version}\n"
            f"Claimed NIST level: {self.claimed_nist_level}\n"
            f"Is EUF_CMA: {self.is_euf_cma}\n"
            f"Is SUF_CMA: {self.is_suf_cma}\n"
            f"Supports context string: {self.sig_with_ctx_support}\n"
            f"Length public key (bytes): {self.length_public_key}\n"
            f"Length secret key (bytes): {self.length_secret_key}\n"
            f"Maximum length signature (bytes): {self.max_length_signature}"
        )
