#!/usr/bin/env python

"""Read observed alleles at each position of the targets from BAM files.

registration of base calls
--------------------------
- reads that are unmapped, secondary, supplementary, duplicates or
  failed QC are skipped, as are reads below min_mapping_quality.
- deletions, reference skips and bases followed by an indel are
  skipped; indels are not modeled.
- base calls below min_base_quality and 'N' calls are skipped.
- orphan reads (paired reads not in a proper pair) are kept, and the
  two mates of an overlapping pair each contribute their base call at
  full quality; pysam's pileup would otherwise drop orphans and
  down-weight overlaps.
- a base equal to the reference base is a reference allele, any other
  base is an SNV allele with that base as its sequence.

The sample of a read is the SM field of its read group (RG tag), or
the name of the BAM file (without suffix) if it has no read group.
An empty SM falls back to the read group ID, and an empty file stem
(e.g., ".a.bam") to the full file name. A base call whose sample is
still missing is rejected with a warning.
"""

from typing import List, Tuple, Iterator, Optional, Dict, Sequence
from pathlib import Path
import pysam
from loguru import logger
from bayescall.core.allele import Allele, AlleleType, observed_allele
from bayescall.core.exceptions import BayesCallError, MalformedAlleleError
from bayescall.io.reference import ReferenceReader
from bayescall.io.regions import Target, load_targets, targets_from_reference
from bayescall.schema.params_schema import Params

logger = logger.bind(name="bayescall")
Position = Tuple[str, int, List[Allele]]
MAX_PILEUP_DEPTH = 1_000_000


class AlleleReader:
    """Pull-style source of the observed alleles at each target position.

    Every position of every target is returned in order by
    `get_next_position()`, including uncovered positions for which
    the list of alleles is empty. Returns None when exhausted.

    Parameters
    ----------
    params: Params
        alignment_files and reference_sequence are required, targets
        is optional (default is every reference sequence).
    targets: Sequence[Target] or None
        Overrides the targets file in params.
    """
    def __init__(self, params: Params, targets: Optional[Sequence[Target]] = None):
        self.params = params
        if not params.alignment_files:
            raise BayesCallError("no alignment files were entered")
        if not params.reference_sequence:
            raise BayesCallError("no reference sequence was entered")

        self.reference = ReferenceReader(params.reference_sequence)
        """: Reference base lookup."""
        self.bams: List[pysam.AlignmentFile] = []
        """: Open alignment files."""
        self.read_groups: List[Dict[str, str]] = []
        """: Map of read group ID to sample name for each BAM."""
        self.default_samples: List[str] = []
        """: Sample name used for reads without a read group, per BAM."""
        for path in params.alignment_files:
            self._open_bam(Path(path))

        self.samples: List[str] = sorted(set().union(*[
            set(rgroups.values()) if rgroups else {default}
            for rgroups, default in zip(self.read_groups, self.default_samples)
        ]))
        """: Every sample name found in the alignment headers."""

        if targets is not None:
            self.targets = list(targets)
        elif params.targets:
            self.targets = load_targets(params.targets)
        else:
            self.targets = targets_from_reference(params.reference_sequence)
        self.counters = {"calls": 0, "filtered": 0}
        self._positions = self._iter_positions()
        logger.info(
            f"reading {len(self.bams)} alignment files "
            f"with {len(self.samples)} samples: {self.samples}")

    def _open_bam(self, path: Path) -> None:
        """Open a BAM, indexing it if needed, and parse its read groups."""
        if not path.exists():
            raise BayesCallError(f"alignment file not found: {path}")
        try:
            if not (Path(str(path) + ".bai").exists() or path.with_suffix(".bai").exists()):
                logger.info(f"indexing {path.name} with pysam/samtools")
                pysam.index(str(path))
            bam = pysam.AlignmentFile(str(path), "rb")
        except (OSError, ValueError, pysam.SamtoolsError) as inst:
            raise BayesCallError(f"cannot read alignment file {path}: {inst}") from inst

        header = bam.header.to_dict()
        rgroups = {i["ID"]: i.get("SM") or i["ID"] for i in header.get("RG", [])}
        self.bams.append(bam)
        self.read_groups.append(rgroups)
        self.default_samples.append(path.name.split(".")[0] or path.name)

    def _sample_of(self, bidx: int, read: pysam.AlignedSegment) -> str:
        if read.has_tag("RG"):
            rgid = read.get_tag("RG")
            return self.read_groups[bidx].get(rgid, rgid)
        return self.default_samples[bidx]

    def _iter_columns(self, bidx: int, target: Target, end: int) -> Iterator[Tuple[int, List[Allele]]]:
        """Yield (position, alleles) for covered columns in one BAM."""
        bam = self.bams[bidx]
        if target.name not in bam.references:
            return
        try:
            columns = bam.pileup(
                target.name,
                target.start,
                end,
                truncate=True,
                stepper="nofilter",
                min_base_quality=self.params.min_base_quality,
                min_mapping_quality=self.params.min_mapping_quality,
                max_depth=MAX_PILEUP_DEPTH,
                ignore_orphans=False,
                ignore_overlaps=False,
            )
            for column in columns:
                pos = column.reference_pos
                refbase = self.reference.base(target.name, pos)
                alleles = []
                for pread in column.pileups:
                    allele = self._register(bidx, pread, refbase)
                    if allele is None:
                        self.counters["filtered"] += 1
                    else:
                        alleles.append(allele)
                self.counters["calls"] += len(alleles)
                yield pos, alleles
        except (OSError, ValueError) as inst:
            raise BayesCallError(
                f"failed reading {target.name} from {bam.filename.decode()}: {inst}") from inst

    def _register(self, bidx: int, pread: pysam.PileupRead, refbase: str) -> Optional[Allele]:
        """Return the Allele for one read at a column, or None to skip it."""
        read = pread.alignment
        if (
            read.is_unmapped
            or read.is_secondary
            or read.is_supplementary
            or read.is_duplicate
            or read.is_qcfail
        ):
            return None
        if read.mapping_quality < self.params.min_mapping_quality:
            return None
        if pread.is_del or pread.is_refskip or pread.indel:
            return None
        qpos = pread.query_position
        if qpos is None or read.query_qualities is None:
            return None
        quality = read.query_qualities[qpos]
        if quality < self.params.min_base_quality:
            return None
        base = read.query_sequence[qpos].upper()
        if base not in "ACGT":
            return None
        sample = self._sample_of(bidx, read)
        try:
            if base == refbase:
                return observed_allele(AlleleType.REFERENCE, "", quality, sample)
            return observed_allele(AlleleType.SNP, base, quality, sample)
        except MalformedAlleleError as inst:
            logger.warning(f"rejected base call in read {read.query_name}: {inst}")
            return None

    def _iter_positions(self) -> Iterator[Position]:
        """Yield (target, position, alleles) for every target position."""
        for target in self.targets:
            reflen = len(self.reference.sequence(target.name))
            end = min(target.end, reflen)
            if end < target.end:
                logger.warning(
                    f"target {target.name}:{target.start}-{target.end} "
                    f"extends past the reference end ({reflen}), truncated")
            logger.debug(f"calling target {target.name}:{target.start}-{end}")

            # merge the covered columns of each BAM by position
            columns = [self._iter_columns(i, target, end) for i in range(len(self.bams))]
            heads = [next(i, None) for i in columns]
            for pos in range(target.start, end):
                alleles = []
                for idx, column in enumerate(columns):
                    if heads[idx] is not None and heads[idx][0] == pos:
                        alleles.extend(heads[idx][1])
                        heads[idx] = next(column, None)
                yield target.name, pos, alleles

    def get_next_position(self) -> Optional[Position]:
        """Return the next (target, position, alleles) or None at the end."""
        return next(self._positions, None)

    def __iter__(self) -> Iterator[Position]:
        while 1:
            item = self.get_next_position()
            if item is None:
                break
            yield item

    def close(self):
        for bam in self.bams:
            bam.close()
        self.reference.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
