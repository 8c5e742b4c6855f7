#!/usr/bin/env python

"""Genotype caller that runs inference position by position.

The caller pulls (target, position, alleles) from a reader, groups
the alleles by sample, computes the data likelihood of every genotype
in the universe for each sample, turns these into posteriors and
writes one JSON line of Phred scaled genotype confidences.

Examples
--------
>>> params = Params(
>>>     alignment_files=["a.bam", "b.bam"],
>>>     reference_sequence="ref.fa",
>>>     targets="targets.bed",
>>> )
>>> with AlleleReader(params) as reader:
>>>     Caller(params, reader).run(sys.stdout)
"""

from typing import Optional, Iterable, Iterator, Dict, List, TextIO, Tuple, Protocol
import sys
from loguru import logger
from bayescall.core.allele import Allele
from bayescall.core.genotype import candidate_alleles, build_genotypes
from bayescall.core.grouping import group_alleles_by_sample
from bayescall.core.likelihood import GenotypeLikelihoods
from bayescall.core.posterior import (
    GenotypeProbability,
    posteriors_from_log_likelihoods,
    uniform_probabilities,
    joint_posteriors,
)
from bayescall.core.reporting import sample_result
from bayescall.core.exceptions import DegenerateDistributionError
from bayescall.schema.params_schema import Params
from bayescall.schema.result_schema import PositionResult

logger = logger.bind(name="bayescall")


class PositionSource(Protocol):
    """Anything that serves positions, e.g., io.pileup.AlleleReader."""
    def get_next_position(self) -> Optional[Tuple[str, int, List[Allele]]]:
        ...


class Caller:
    """Bayesian genotype caller over a stream of positions.

    Parameters
    ----------
    params: Params
        Run parameters; ploidy and candidate_bases define the genotype
        universe which is built once here and never modified.
    reader: PositionSource or None
        Object with a `get_next_position()` method returning a tuple
        of (target_name, position, alleles) or None when exhausted.
        Not needed to call single positions with `call_position`.
    """
    def __init__(self, params: Optional[Params] = None, reader: Optional[PositionSource] = None):
        self.params = params if params is not None else Params()
        """: Run parameters."""
        self.reader = reader
        """: Source of observed alleles per position."""
        self.candidates: List[Allele] = candidate_alleles(self.params.candidate_bases)
        """: The candidate allele universe {R, A, T, G, C}."""
        self.genotypes = build_genotypes(self.params.ploidy, self.candidates)
        """: The genotype universe shared by all samples and positions."""
        self.likelihoods = GenotypeLikelihoods(self.genotypes)
        """: Likelihood calculator bound to the genotype universe."""
        self.counters = {
            "positions": 0,
            "skipped": 0,
            "reported": 0,
            "degenerate": 0,
        }
        """: Run summary counts."""
        logger.debug(
            f"genotype universe: {len(self.genotypes)} genotypes of ploidy "
            f"{self.params.ploidy} over {[i.symbol for i in self.candidates]}")

    def sample_posteriors(
        self,
        groups: Dict[str, List[Allele]],
    ) -> Tuple[Dict[str, List[GenotypeProbability]], Optional[float]]:
        """Return normalized genotype posteriors for each sample.

        The second item is the probability that the position varies
        across samples in joint mode, or None otherwise (and when the
        joint distribution is degenerate).
        """
        loglikes = {
            name: self.likelihoods.log_likelihoods(alleles)
            for name, alleles in groups.items()
        }

        if self.params.joint_prior and loglikes:
            try:
                marginals, pvariant = joint_posteriors(
                    loglikes,
                    self.genotypes,
                    theta=self.params.theta,
                    dominant_genotypes=self.params.dominant_genotypes,
                    max_deviating_samples=self.params.max_deviating_samples,
                )
                logger.debug(f"P(variant) = {pvariant:.6g}")
                return marginals, pvariant
            except DegenerateDistributionError as inst:
                self.counters["degenerate"] += 1
                logger.warning(f"{inst}; using single-sample posteriors")

        # straight genotyping: each sample self-normalized
        posteriors = {}
        for name, logl in loglikes.items():
            try:
                posteriors[name] = posteriors_from_log_likelihoods(self.genotypes, logl)
            except DegenerateDistributionError as inst:
                self.counters["degenerate"] += 1
                logger.warning(f"sample {name}: {inst}; using uniform distribution")
                posteriors[name] = uniform_probabilities(self.genotypes)
        return posteriors, None

    def call_position(
        self,
        target: str,
        position: int,
        alleles: List[Allele],
        samples: Optional[Iterable[str]] = None,
    ) -> Optional[PositionResult]:
        """Return the result for one position or None if it is skipped.

        Parameters
        ----------
        target: str
            Name of the reference sequence.
        position: int
            0-based position on the target.
        alleles: List[Allele]
            Every observed allele at the position, from all samples.
        samples: Iterable[str] or None
            Samples to report even if they have no coverage here. They
            receive a uniform distribution and coverage 0.
        """
        self.counters["positions"] += 1

        # skips 0-coverage positions
        if not alleles:
            self.counters["skipped"] += 1
            return None

        groups = group_alleles_by_sample(alleles, samples)
        if not any(groups.values()):
            self.counters["skipped"] += 1
            logger.debug(f"{target}:{position} skipped, no usable alleles")
            return None

        posteriors, pvariant = self.sample_posteriors(groups)
        outpos = position + 1 if self.params.one_based else position
        result = PositionResult(sequence=target, position=str(outpos), p_variant=pvariant)
        for name, probs in posteriors.items():
            result.samples[name] = sample_result(
                probs, len(groups[name]), self.params.max_phred_score)
        self.counters["reported"] += 1
        return result

    def iter_results(self) -> Iterator[PositionResult]:
        """Yield a result for each covered position from the reader."""
        if self.reader is None:
            raise ValueError("Caller has no reader to pull positions from")
        samples = None
        if self.params.report_all_samples:
            samples = getattr(self.reader, "samples", None)

        while 1:
            item = self.reader.get_next_position()
            if item is None:
                break
            target, position, alleles = item
            result = self.call_position(target, position, alleles, samples)
            if result is not None:
                yield result

    def run(self, outfile: Optional[TextIO] = None) -> None:
        """Stream one JSON line per covered position to outfile."""
        outfile = outfile if outfile is not None else sys.stdout
        logger.info("calling genotypes")
        for result in self.iter_results():
            outfile.write(result.to_json_line())
            outfile.flush()
        logger.info(
            f"processed {self.counters['positions']} positions: "
            f"{self.counters['reported']} reported, "
            f"{self.counters['skipped']} skipped (no coverage)")
        if self.counters["degenerate"]:
            logger.warning(
                f"{self.counters['degenerate']} degenerate distributions "
                "replaced by fallbacks")
