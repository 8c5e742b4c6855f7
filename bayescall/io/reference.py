#!/usr/bin/env python

"""Reference base lookup from an indexed FASTA file."""

from pathlib import Path
import pysam
from loguru import logger
from bayescall.core.exceptions import BayesCallError

logger = logger.bind(name="bayescall")


class ReferenceReader:
    """Fetch reference bases by target name and 0-based position.

    A .fai index is created with pysam/samtools if one does not exist.
    The sequence of the last fetched target is cached since positions
    are visited in order along a target.
    """
    def __init__(self, reference: Path):
        self.path = Path(reference)
        if not self.path.exists():
            raise BayesCallError(f"reference file not found: {self.path}")
        try:
            if not Path(str(self.path) + ".fai").exists():
                logger.info(f"indexing {self.path.name} with pysam/samtools")
                pysam.faidx(str(self.path))
            self.fasta = pysam.FastaFile(str(self.path))
        except (OSError, ValueError, pysam.SamtoolsError) as inst:
            raise BayesCallError(f"cannot read reference {self.path}: {inst}") from inst
        self._name = None
        self._seq = ""

    @property
    def references(self):
        return self.fasta.references

    def sequence(self, name: str) -> str:
        """Return the full uppercase sequence of a target."""
        if name != self._name:
            if name not in self.fasta.references:
                raise BayesCallError(f"target {name} is not in reference {self.path.name}")
            self._seq = self.fasta.fetch(name).upper()
            self._name = name
        return self._seq

    def base(self, name: str, position: int) -> str:
        """Return the uppercase reference base at a 0-based position."""
        seq = self.sequence(name)
        if not 0 <= position < len(seq):
            raise BayesCallError(f"position {name}:{position} is outside the reference")
        return seq[position]

    def close(self):
        self.fasta.close()
