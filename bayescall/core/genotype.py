#!/usr/bin/env python

"""Genotypes as unordered multisets of candidate alleles."""

from typing import Sequence, List, Tuple
from collections import Counter
from bayescall.core.allele import Allele, AlleleType, genotype_allele
from bayescall.core.multichoose import multichoose


class Genotype:
    """An unordered multiset of `ploidy` candidate alleles.

    Two genotypes are equal if they hold the same alleles the same
    number of times, regardless of order. The alleles are stored in
    the order they were given, which for genotypes made by
    `build_genotypes` is the order of the candidate universe.
    """
    __slots__ = ("alleles", "_key")

    def __init__(self, alleles: Sequence[Allele]):
        self.alleles: Tuple[Allele, ...] = tuple(alleles)
        self._key = frozenset(Counter(self.alleles).items())

    @property
    def ploidy(self) -> int:
        return len(self.alleles)

    @property
    def label(self) -> str:
        """Human readable name, e.g., 'R/A' or 'T/T'."""
        return "/".join(i.symbol for i in self.alleles)

    @property
    def is_homozygous(self) -> bool:
        return len(set(self.alleles)) == 1

    @property
    def is_reference(self) -> bool:
        """True if every allele is the reference allele."""
        return all(i.kind == AlleleType.REFERENCE for i in self.alleles)

    def count(self, allele: Allele) -> int:
        """Number of copies of allele in this genotype."""
        return sum(1 for i in self.alleles if i == allele)

    def __eq__(self, other):
        if not isinstance(other, Genotype):
            return NotImplemented
        return self._key == other._key

    def __hash__(self):
        return hash(self._key)

    def __repr__(self):
        return f"Genotype({self.label})"

    def __str__(self):
        return self.label


def candidate_alleles(bases: Sequence[str] = ("A", "T", "G", "C")) -> List[Allele]:
    """Return the candidate universe: the reference plus one SNV per base."""
    alleles = [genotype_allele(AlleleType.REFERENCE)]
    alleles.extend(genotype_allele(AlleleType.SNP, base) for base in bases)
    return alleles


def build_genotypes(ploidy: int, candidates: Sequence[Allele]) -> List[Genotype]:
    """Return every genotype of size ploidy over the candidate alleles."""
    return [Genotype(i) for i in multichoose(ploidy, candidates)]
