#!/usr/bin/env python

"""Allele objects for observed base calls and genotype candidates.

Observed alleles are created by the pileup reader, one per base call
per position, and are owned by the list of alleles for that position.
The list is dropped when the position has been called, so no object
recycling is needed. Candidate alleles are made once by the Caller and
form the fixed universe {R, A, T, G, C} that genotypes are built from.

Identity of an allele is its (kind, sequence). Quality and sample_id
are observational metadata and do not take part in equality.
"""

from enum import Enum
from typing import Optional
from bayescall.core.exceptions import MalformedAlleleError

# quality assigned to synthetic genotype-candidate alleles
CANDIDATE_QUALITY = 1.0


class AlleleType(str, Enum):
    """The kinds of allele an observation can represent."""
    REFERENCE = "reference"
    SNP = "snp"
    INSERTION = "insertion"
    DELETION = "deletion"
    AMBIGUOUS = "ambiguous"

    @classmethod
    def parse(cls, kind) -> "AlleleType":
        """Return an AlleleType from an AlleleType or its str value."""
        try:
            return cls(kind)
        except ValueError:
            raise MalformedAlleleError(f"unrecognized allele kind: {kind!r}") from None


class Allele:
    """An observed base call or a synthetic genotype-candidate allele.

    Parameters
    ----------
    kind: AlleleType or str
        One of 'reference', 'snp', 'insertion', 'deletion', 'ambiguous'.
    sequence: str
        The alternate base(s). Always empty for reference alleles.
    quality: float
        Phred scaled base quality of the observation.
    sample_id: str or None
        Name of the sample the read belongs to. None for candidates.
    """
    __slots__ = ("kind", "sequence", "quality", "sample_id")

    def __init__(
        self,
        kind,
        sequence: str = "",
        quality: float = CANDIDATE_QUALITY,
        sample_id: Optional[str] = None,
    ):
        kind = AlleleType.parse(kind)
        if not isinstance(sequence, str):
            raise MalformedAlleleError(f"allele sequence must be a str, not {sequence!r}")
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "sequence", "" if kind == AlleleType.REFERENCE else sequence.upper())
        object.__setattr__(self, "quality", float(quality))
        object.__setattr__(self, "sample_id", sample_id)

    def __setattr__(self, name, value):
        raise AttributeError(f"Allele is immutable, cannot set '{name}'")

    def __eq__(self, other):
        if not isinstance(other, Allele):
            return NotImplemented
        return (self.kind, self.sequence) == (other.kind, other.sequence)

    def __hash__(self):
        return hash((self.kind, self.sequence))

    def __repr__(self):
        if self.sample_id is None:
            return f"Allele({self.kind.value}, {self.sequence!r})"
        return (
            f"Allele({self.kind.value}, {self.sequence!r}, "
            f"q={self.quality:g}, sample={self.sample_id!r})"
        )

    @property
    def symbol(self) -> str:
        """Short label used in genotype names, 'R' for the reference."""
        if self.kind == AlleleType.REFERENCE:
            return "R"
        return self.sequence

    @property
    def is_callable(self) -> bool:
        """True if the core models this kind (reference or SNV)."""
        return self.kind in (AlleleType.REFERENCE, AlleleType.SNP)


def genotype_allele(kind, sequence: str = "") -> Allele:
    """Return a candidate allele with the placeholder quality."""
    return Allele(kind, sequence, CANDIDATE_QUALITY)


def observed_allele(kind, sequence: str, quality: float, sample_id: str) -> Allele:
    """Return an allele for one base call in one read of a sample."""
    if not sample_id:
        raise MalformedAlleleError("observed allele is missing a sample_id")
    return Allele(kind, sequence, quality, sample_id)
