"""Catalog of the algorithm identifiers compiled into the engine.

Built once from the engine's static catalog and read-only afterwards. The
process-wide instance lives in :mod:`pqcguard.runtime`.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .errors import InvalidAlgorithmIndex
from .interfaces import NativeEngine

log = logging.getLogger(__name__)


class Family(str, enum.Enum):
    KEM = "kem"
    SIG = "sig"

    @property
    def label(self) -> str:
        return "KEM" if self is Family.KEM else "signature mechanism"


@dataclass(frozen=True)
class AlgorithmIdentity:
    name: str
    index: int
    enabled: bool
    family: Family


class AlgorithmRegistry:
    def __init__(self, identities: Dict[Family, Tuple[AlgorithmIdentity, ...]]) -> None:
        self._identities = {family: tuple(identities.get(family, ())) for family in Family}
        self._by_name: Dict[Family, Dict[str, AlgorithmIdentity]] = {
            family: {ident.name: ident for ident in idents}
            for family, idents in self._identities.items()
        }

    @classmethod
    def from_engine(cls, engine: NativeEngine) -> "AlgorithmRegistry":
        queries = {
            Family.KEM: (engine.kem_alg_count, engine.kem_alg_identifier, engine.kem_alg_is_enabled),
            Family.SIG: (engine.sig_alg_count, engine.sig_alg_identifier, engine.sig_alg_is_enabled),
        }
        identities: Dict[Family, Tuple[AlgorithmIdentity, ...]] = {}
        for family, (count_fn, name_fn, enabled_fn) in queries.items():
            count = int(count_fn())
            found: list[AlgorithmIdentity] = []
            for index in range(count):
                name = name_fn(index)
                if name is None:
                    raise InvalidAlgorithmIndex(index, count)
                found.append(AlgorithmIdentity(name, index, bool(enabled_fn(name)), family))
            identities[family] = tuple(found)
            log.debug(
                "%s catalog: %d supported, %d enabled",
                family.value,
                len(found),
                sum(1 for ident in found if ident.enabled),
            )
        return cls(identities)

    def supported_identifiers(self, family: Family) -> Tuple[str, ...]:
        return tuple(ident.name for ident in self._identities[Family(family)])

    def enabled_identifiers(self, family: Family) -> Tuple[str, ...]:
        return tuple(ident.name for ident in self._identities[Family(family)] if ident.enabled)

    def identity(self, name: str, family: Family) -> Optional[AlgorithmIdentity]:
        return self._by_name[Family(family)].get(name)

    def is_supported(self, name: str, family: Optional[Family] = None) -> bool:
        families = Family if family is None else (Family(family),)
        return any(name in self._by_name[fam] for fam in families)

    def is_enabled(self, name: str, family: Optional[Family] = None) -> bool:
        families = Family if family is None else (Family(family),)
        for fam in families:
            ident = self._by_name[fam].get(name)
            if ident is not None and ident.enabled:
                return True
        return False

    def count(self, family: Family) -> int:
        return len(self._identities[Family(family)])

    def algorithm_name(self, family: Family, index: int) -> str:
        idents = self._identities[Family(family)]
        if index < 0 or index >= len(idents):
            raise InvalidAlgorithmIndex(index, len(idents))
        return idents[index].name

    # liboqs-style shorthands

    def supported_kems(self) -> Tuple[str, ...]:
        return self.supported_identifiers(Family.KEM)

    def enabled_kems(self) -> Tuple[str, ...]:
        return self.enabled_identifiers(Family.KEM)

    def supported_sigs(self) -> Tuple[str, ...]:
        return self.supported_identifiers(Family.SIG)

    def enabled_sigs(self) -> Tuple[str, ...]:
        return self.enabled_identifiers(Family.SIG)

    def max_number_kems(self) -> int:
        return self.count(Family.KEM)

    def max_number_sigs(self) -> int:
        return self.count(Family.SIG)

    def kem_name(self, index: int) -> str:
        return self.algorithm_name(Family.KEM, index)

    def sig_name(self, index: int) -> str:
        return self.algorithm_name(Family.SIG, index)

    def __repr__(self) -> str:
        return (
            f"AlgorithmRegistry(kems={self.count(Family.KEM)}, "
            f"sigs={self.count(Family.SIG)})"
        )
