"""Code-mapping tables.

A CodeTable translates codes from one source vocabulary into SNOMED CT. The
tables are built once at startup and shared read-only by every request.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union

from trial_lookup.domain.research_study import AJCC_SYSTEM, RXNORM_SYSTEM, SNOMED_SYSTEM


@dataclass(frozen=True)
class CodeTable:
    """Read-only mapping from source codes to SNOMED CT codes.

    Attributes:
        name: Human-readable table name (used in logs)
        mappings: source code -> SNOMED CT code
        source_systems: System URIs the table applies to. Codings without a
            system always match; an empty set matches any system.
    """

    name: str
    mappings: Mapping[str, str] = field(default_factory=dict)
    source_systems: frozenset = frozenset()
    target_system: str = SNOMED_SYSTEM

    def __post_init__(self):
        object.__setattr__(self, "mappings", MappingProxyType(dict(self.mappings)))
        object.__setattr__(self, "source_systems", frozenset(self.source_systems))

    @classmethod
    def from_mapping(
        cls,
        mappings: Mapping[str, str],
        name: str = "custom",
        source_systems: Iterable[str] = (),
    ) -> "CodeTable":
        return cls(name=name, mappings=mappings, source_systems=frozenset(source_systems))

    def lookup(self, system: Optional[str], code: Optional[str]) -> Optional[str]:
        """Return the target code for ``(system, code)``, or None on a miss."""
        if not isinstance(code, str):
            return None
        if system and self.source_systems and system not in self.source_systems:
            return None
        return self.mappings.get(code)

    def __len__(self) -> int:
        return len(self.mappings)


@dataclass(frozen=True)
class CodeTableGroup:
    """Several code tables consulted in order, each keeping its own systems.

    A coding is translated by the first table that accepts its
    ``(system, code)`` pair, so a code is only ever read against the
    vocabulary it was loaded for.
    """

    name: str
    tables: tuple = ()
    target_system: str = SNOMED_SYSTEM

    def __post_init__(self):
        object.__setattr__(self, "tables", tuple(self.tables))

    def lookup(self, system: Optional[str], code: Optional[str]) -> Optional[str]:
        for table in self.tables:
            target = table.lookup(system, code)
            if target is not None:
                return target
        return None

    def __len__(self) -> int:
        return sum(len(table) for table in self.tables)


CodeLookup = Union[CodeTable, CodeTableGroup]


@dataclass(frozen=True)
class CodeTables:
    """The full set of tables the lookup needs.

    Attributes:
        medication: RxNorm -> SNOMED CT, applied to MedicationStatement codings
        staging: staging SNOMED CT and AJCC tables, applied to Condition stage summaries
    """

    medication: CodeLookup
    staging: CodeLookup

    @classmethod
    def empty(cls) -> "CodeTables":
        return cls(
            medication=CodeTable(name="rxnorm", source_systems=frozenset({RXNORM_SYSTEM})),
            staging=CodeTableGroup(
                name="staging",
                tables=(
                    CodeTable(name="stage-snomed", source_systems=frozenset({SNOMED_SYSTEM})),
                    CodeTable(name="stage-ajcc", source_systems=frozenset({AJCC_SYSTEM})),
                ),
            ),
        )
