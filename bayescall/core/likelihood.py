#!/usr/bin/env python

"""Data likelihoods P(observed calls | genotype) for one sample.

Each base call is an independent trial. A call with Phred quality q
has error probability e = 10^(-q/10). If the true base is allele a
the call reads a with probability 1 - e, and any one of the three
other bases with probability e / 3. A genotype carries `ploidy`
alleles and a read is equally likely to come from any of them, so
the probability of a call given the genotype is the mean over its
alleles. The likelihood of all calls is their product, which is
accumulated as a sum of logs to avoid underflow at high depth.
"""

from typing import Sequence, List, Dict
import numpy as np
import numba
from scipy.special import logsumexp
from bayescall.core.allele import Allele
from bayescall.core.genotype import Genotype

# bounds on the per-call error probability. Quality 0 gives 0.75
# which makes a call uninformative rather than impossible.
MIN_ERROR = np.finfo(np.float64).tiny
MAX_ERROR = 0.75


def phred_to_error(quality) -> np.ndarray:
    """Convert Phred qualities to clipped error probabilities."""
    quality = np.asarray(quality, dtype=np.float64)
    errors = np.power(10., -quality / 10.)
    return np.clip(errors, MIN_ERROR, MAX_ERROR)


@numba.jit(nopython=True)
def nb_call_log_probs(obs_idx, errors, ncands):
    "JIT'd function builds (ncalls, ncands) array of log P(call | allele)"
    out = np.empty((obs_idx.shape[0], ncands))
    for idx in range(obs_idx.shape[0]):
        err = errors[idx]
        hit = np.log(1. - err)
        miss = np.log(err / 3.)
        for cidx in range(ncands):
            if obs_idx[idx] == cidx:
                out[idx, cidx] = hit
            else:
                out[idx, cidx] = miss
    return out


class GenotypeLikelihoods:
    """Likelihood calculator for a fixed list of genotypes.

    The candidate alleles and the genotype-by-allele index array are
    built once and reused for every sample at every position.

    Parameters
    ----------
    genotypes: Sequence[Genotype]
        The genotype universe. All must have the same ploidy.
    """
    def __init__(self, genotypes: Sequence[Genotype]):
        self.genotypes: List[Genotype] = list(genotypes)
        """: Genotypes in output order."""
        if not self.genotypes:
            raise ValueError("at least one genotype is required")
        ploidies = {i.ploidy for i in self.genotypes}
        if len(ploidies) != 1:
            raise ValueError(f"genotypes have mixed ploidy: {sorted(ploidies)}")
        self.ploidy = ploidies.pop()
        """: Number of alleles in each genotype."""

        # unique alleles in the order they first occur in genotypes
        self.candidates: List[Allele] = list(dict.fromkeys(
            allele for geno in self.genotypes for allele in geno.alleles))
        """: The candidate universe of alleles."""
        self.index: Dict[Allele, int] = {j: i for i, j in enumerate(self.candidates)}
        """: Map of candidate allele to its column index."""
        self.geno_idx = np.array(
            [[self.index[a] for a in geno.alleles] for geno in self.genotypes],
            dtype=np.int64,
        )
        """: (ngenotypes, ploidy) array of candidate indices."""

    def call_log_probs(self, observed: Sequence[Allele]) -> np.ndarray:
        """Return (ncalls, ncandidates) array of log P(call | allele).

        A call of an allele outside the candidate universe mismatches
        every candidate.
        """
        obs_idx = np.array(
            [self.index.get(i, -1) for i in observed], dtype=np.int64)
        errors = phred_to_error([i.quality for i in observed])
        return nb_call_log_probs(obs_idx, errors, len(self.candidates))

    def log_likelihoods(self, observed: Sequence[Allele]) -> np.ndarray:
        """Return log P(observed | genotype) for every genotype.

        With no observed calls every genotype has log likelihood 0,
        i.e., a uniform likelihood carrying no information.
        """
        if not observed:
            return np.zeros(len(self.genotypes))
        calls = self.call_log_probs(observed)
        # (ncalls, ngenotypes, ploidy) -> mean over ploidy in linear space
        per_call = logsumexp(calls[:, self.geno_idx], axis=2) - np.log(self.ploidy)
        return per_call.sum(axis=0)


def genotype_log_likelihoods(genotypes: Sequence[Genotype], observed: Sequence[Allele]) -> np.ndarray:
    """Return log P(observed | genotype) for each genotype."""
    return GenotypeLikelihoods(genotypes).log_likelihoods(observed)


def likelihood(genotype: Genotype, observed: Sequence[Allele]) -> float:
    """Return the linear data likelihood P(observed | genotype).

    This can underflow to 0 for deep coverage. The caller works with
    `GenotypeLikelihoods.log_likelihoods` instead.
    """
    return float(np.exp(genotype_log_likelihoods([genotype], observed)[0]))
