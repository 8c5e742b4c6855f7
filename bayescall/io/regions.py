#!/usr/bin/env python

"""Target regions to call genotypes in.

Targets use 0-based half-open coordinates, like BED files and pysam.
"""

from typing import List, NamedTuple
from pathlib import Path
import pandas as pd
import pysam
from loguru import logger
from bayescall.core.exceptions import BayesCallError

logger = logger.bind(name="bayescall")


class Target(NamedTuple):
    """A reference interval [start, end)."""
    name: str
    start: int
    end: int

    def __len__(self):
        return self.end - self.start


def load_targets(bed_file: Path) -> List[Target]:
    """Parse the first three columns of a BED file into Targets.

    Comment, 'track' and 'browser' lines are skipped.
    """
    bed_file = Path(bed_file)
    if not bed_file.exists():
        raise BayesCallError(f"targets file not found: {bed_file}")
    try:
        bed = pd.read_csv(
            bed_file,
            sep="\t",
            header=None,
            usecols=[0, 1, 2],
            names=["name", "start", "end"],
            dtype={"name": str},
            comment="#",
        )
    except pd.errors.EmptyDataError:
        raise BayesCallError(f"targets file is empty: {bed_file}") from None
    except ValueError as inst:
        raise BayesCallError(f"targets file {bed_file} is not BED formatted: {inst}") from inst

    bed = bed[~bed["name"].str.startswith(("track", "browser"))]
    try:
        bed = bed.astype({"start": int, "end": int})
    except ValueError as inst:
        raise BayesCallError(f"targets file {bed_file} has bad coordinates: {inst}") from inst

    targets = []
    for row in bed.itertuples(index=False):
        if row.start < 0 or row.end < row.start:
            raise BayesCallError(f"bad target interval: {row.name}:{row.start}-{row.end}")
        targets.append(Target(row.name, row.start, row.end))
    logger.info(f"loaded {len(targets)} targets from {bed_file.name}")
    return targets


def targets_from_reference(reference: Path) -> List[Target]:
    """Return one Target spanning each sequence of a FASTA file."""
    try:
        with pysam.FastaFile(str(reference)) as fasta:
            targets = [
                Target(name, 0, length)
                for name, length in zip(fasta.references, fasta.lengths)
            ]
    except (OSError, ValueError) as inst:
        raise BayesCallError(f"cannot read reference {reference}: {inst}") from inst
    logger.info(f"targeting all {len(targets)} reference sequences")
    return targets
