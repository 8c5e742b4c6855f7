#!/usr/bin/env python

"""Convert genotype posteriors to Phred scaled confidence scores.

The score of a genotype is -10 * log10(1 - posterior), i.e., the
Phred scaled probability that the genotype is wrong. A posterior of
exactly 1 has an error probability of 0 and would score infinity, so
it is reported as the capped `max_score` instead.
"""

from typing import Sequence, Dict
import math
from bayescall.core.posterior import GenotypeProbability
from bayescall.schema.result_schema import SampleResult

MAX_PHRED_SCORE = 200.0


def confidence_score(p_error: float, max_score: float = MAX_PHRED_SCORE) -> float:
    """Return -10 * log10(p_error), capped at max_score.

    Error probabilities at or below 0 (a posterior of 1, or slightly
    above it from rounding) return max_score.
    """
    if math.isnan(p_error):
        raise ValueError("error probability is NaN")
    if p_error <= 0:
        return float(max_score)
    score = -10. * math.log10(p_error)
    if score <= 0:
        return 0.
    return min(score, float(max_score))


def genotype_scores(
    probs: Sequence[GenotypeProbability],
    max_score: float = MAX_PHRED_SCORE,
) -> Dict[str, float]:
    """Return {genotype label: score} in the order of probs."""
    return {
        i.genotype.label: confidence_score(1. - i.probability, max_score)
        for i in probs
    }


def sample_result(
    probs: Sequence[GenotypeProbability],
    coverage: int,
    max_score: float = MAX_PHRED_SCORE,
) -> SampleResult:
    """Return the reported result for one sample."""
    return SampleResult(coverage=coverage, genotypes=genotype_scores(probs, max_score))


def best_genotype(probs: Sequence[GenotypeProbability]) -> GenotypeProbability:
    """Return the most probable genotype, the first one in case of ties."""
    return max(probs, key=lambda x: x.probability)
