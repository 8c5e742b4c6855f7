#!/usr/bin/env python

"""Genotype posteriors from data likelihoods.

Default mode
------------
Each sample's genotype likelihoods are self-normalized into a
posterior, with no prior. This is the straight single-sample
genotyping used by the caller unless `joint_prior` is set.

Joint mode
----------
The samples at a position are genotyped together:

1. each sample's genotypes are ranked by data likelihood.
2. the dominant genotype combinations are enumerated: every sample
   at its best genotype, plus each combination in which at most
   `max_deviating_samples` samples take one of their next best
   `dominant_genotypes - 1` genotypes.
3. the data likelihood of a combination is the product of the
   sample likelihoods of its genotypes.
4. the prior of a combination is the probability that the site
   varies (theta * a_n) or not (1 - theta * a_n), times the
   Hardy-Weinberg probability of each sample's genotype under the
   allele frequencies pooled across the combination.
5. combination posteriors are normalized, the probability of a
   variant is summed over combinations that carry a non-reference
   allele, and each sample's marginal posterior is the sum over the
   combinations holding each of its genotypes.
"""

from typing import Sequence, List, Dict, Tuple, NamedTuple, Optional
from itertools import combinations, product
import math
import numpy as np
from scipy.special import logsumexp, gammaln
from loguru import logger
from bayescall.core.genotype import Genotype
from bayescall.core.exceptions import DegenerateDistributionError

logger = logger.bind(name="bayescall")


class GenotypeProbability(NamedTuple):
    """A genotype paired with its probability mass."""
    genotype: Genotype
    probability: float


def normalize_genotype_probabilities(probs: List[GenotypeProbability]) -> None:
    """Rescale probabilities in place so that they sum to 1.

    The order of the list, and therefore the ranking of genotypes, is
    unchanged. Raises DegenerateDistributionError if the total mass
    is zero (or not finite) so no division by zero takes place.
    """
    values = [i.probability for i in probs]
    if any(math.isnan(i) or i < 0 for i in values):
        raise DegenerateDistributionError(
            "genotype probabilities must be non-negative numbers")
    total = math.fsum(values)
    if not total > 0 or math.isinf(total):
        raise DegenerateDistributionError(
            f"cannot normalize genotype probabilities with total {total}")
    for idx, item in enumerate(probs):
        probs[idx] = item._replace(probability=item.probability / total)


def uniform_probabilities(genotypes: Sequence[Genotype]) -> List[GenotypeProbability]:
    """Return an equal probability for every genotype."""
    prob = 1. / len(genotypes)
    return [GenotypeProbability(i, prob) for i in genotypes]


def posteriors_from_log_likelihoods(
    genotypes: Sequence[Genotype],
    log_likelihoods: np.ndarray,
    log_priors: Optional[np.ndarray] = None,
) -> List[GenotypeProbability]:
    """Return normalized posteriors from log likelihoods (and priors).

    The shift to linear space happens after subtracting the log of
    the total so the largest terms do not underflow.
    """
    logpost = np.asarray(log_likelihoods, dtype=np.float64)
    if log_priors is not None:
        logpost = logpost + np.asarray(log_priors, dtype=np.float64)
    if np.isnan(logpost).any() or not np.isfinite(logpost).any():
        raise DegenerateDistributionError(
            "all genotype likelihoods are zero")
    linear = np.exp(logpost - logsumexp(logpost))
    probs = [GenotypeProbability(g, float(p)) for g, p in zip(genotypes, linear)]
    normalize_genotype_probabilities(probs)
    return probs


###########################################################################
# joint multi-sample mode
###########################################################################


def watterson_an(nchroms: int) -> float:
    """Return a_n = sum_{i=1}^{n-1} 1/i for n sampled chromosomes."""
    return float(np.sum(1. / np.arange(1, nchroms))) if nchroms > 1 else 0.


def dominant_combinations(
    sample_log_likelihoods: Sequence[np.ndarray],
    dominant_genotypes: int = 2,
    max_deviating_samples: int = 1,
) -> List[Tuple[int, ...]]:
    """Return combinations of genotype indices, one per sample.

    The first combination holds each sample's most likely genotype.
    Ties are broken by genotype order.
    """
    ranked = [
        np.argsort(-np.asarray(i), kind="stable")[:max(1, dominant_genotypes)]
        for i in sample_log_likelihoods
    ]
    best = tuple(int(i[0]) for i in ranked)
    combos = [best]
    nsamples = len(ranked)
    for ndev in range(1, min(max_deviating_samples, nsamples) + 1):
        for deviants in combinations(range(nsamples), ndev):
            options = [ranked[sidx][1:] for sidx in deviants]
            for choice in product(*options):
                combo = list(best)
                for sidx, gidx in zip(deviants, choice):
                    combo[sidx] = int(gidx)
                combos.append(tuple(combo))
    return combos


def combination_log_prior(
    combo: Sequence[int],
    geno_counts: np.ndarray,
    reference_col: Optional[int],
    theta: float,
) -> float:
    """Log prior of one genotype combination.

    Parameters
    ----------
    combo: Sequence[int]
        Genotype index for each sample.
    geno_counts: np.ndarray
        (ngenotypes, ncandidates) copies of each allele per genotype.
    reference_col: int or None
        Column of the reference allele in geno_counts.
    theta: float
        Population mutation rate used for the prior on variation.
    """
    counts = geno_counts[list(combo)]
    pooled = counts.sum(axis=0)
    nchroms = int(pooled.sum())

    # probability that the sampled chromosomes carry a variant
    pvar = min(theta * watterson_an(nchroms), 1.)
    nonref = pooled.copy()
    if reference_col is not None:
        nonref[reference_col] = 0
    is_variant = bool(nonref.sum())
    pclass = pvar if is_variant else 1. - pvar
    if pclass <= 0:
        return -np.inf
    logprior = np.log(pclass)

    # Hardy-Weinberg probability of each genotype given pooled freqs
    present = pooled > 0
    logfreqs = np.log(pooled[present] / nchroms)
    ploidy = counts[0].sum()
    for row in counts:
        logprior += gammaln(ploidy + 1) - np.sum(gammaln(row[present] + 1))
        logprior += np.sum(row[present] * logfreqs)
    return float(logprior)


def joint_posteriors(
    sample_log_likelihoods: Dict[str, np.ndarray],
    genotypes: Sequence[Genotype],
    theta: float = 0.001,
    dominant_genotypes: int = 2,
    max_deviating_samples: int = 1,
) -> Tuple[Dict[str, List[GenotypeProbability]], float]:
    """Return per-sample marginal posteriors and P(variant).

    Genotypes that do not occur in any dominant combination for a
    sample receive a posterior of 0.
    """
    names = list(sample_log_likelihoods)
    loglikes = [np.asarray(sample_log_likelihoods[i]) for i in names]

    # copies of each candidate allele in each genotype
    candidates = list(dict.fromkeys(a for g in genotypes for a in g.alleles))
    geno_counts = np.array(
        [[geno.count(a) for a in candidates] for geno in genotypes],
        dtype=np.int64,
    )
    reference_col = next(
        (idx for idx, allele in enumerate(candidates) if allele.symbol == "R"), None)

    combos = dominant_combinations(loglikes, dominant_genotypes, max_deviating_samples)
    logpost = np.array([
        sum(loglikes[sidx][gidx] for sidx, gidx in enumerate(combo))
        + combination_log_prior(combo, geno_counts, reference_col, theta)
        for combo in combos
    ])
    if np.isnan(logpost).any() or not np.isfinite(logpost).any():
        raise DegenerateDistributionError(
            "all dominant genotype combinations have zero posterior")
    posts = np.exp(logpost - logsumexp(logpost))
    posts /= posts.sum()
    logger.debug(f"evaluated {len(combos)} dominant genotype combinations")

    # probability of variation over all dominant combinations
    nonref = geno_counts.copy()
    if reference_col is not None:
        nonref[:, reference_col] = 0
    variant_genos = nonref.sum(axis=1) > 0
    pvariant = float(sum(
        post for combo, post in zip(combos, posts)
        if variant_genos[list(combo)].any()
    ))

    # marginal posteriors of each sample
    marginals = {}
    for sidx, name in enumerate(names):
        mass = np.zeros(len(genotypes))
        for combo, post in zip(combos, posts):
            mass[combo[sidx]] += post
        marginals[name] = [
            GenotypeProbability(g, float(p)) for g, p in zip(genotypes, mass)]
    return marginals, min(pvariant, 1.)
