#!/usr/bin/env python

"""Group the observed alleles at a position by sample.

Records that the likelihood engine cannot use are rejected one at a
time with a warning: alleles without a sample_id and alleles of a kind
other than reference or SNV (indels and ambiguous calls).
"""

from typing import Iterable, Dict, List, Optional
from loguru import logger
from bayescall.core.allele import Allele, AlleleType
from bayescall.core.exceptions import MalformedAlleleError

logger = logger.bind(name="bayescall")


def check_allele(allele: Allele) -> None:
    """Raise MalformedAlleleError if allele cannot be used for inference."""
    if not isinstance(allele, Allele):
        raise MalformedAlleleError(f"not an Allele: {allele!r}")
    if not allele.sample_id:
        raise MalformedAlleleError(f"{allele!r} is missing a sample_id")
    if not allele.is_callable:
        raise MalformedAlleleError(f"{allele!r} kind is not modeled")
    if allele.kind == AlleleType.SNP and len(allele.sequence) != 1:
        raise MalformedAlleleError(f"{allele!r} SNV must be a single base")


def group_alleles_by_sample(
    alleles: Iterable[Allele],
    samples: Optional[Iterable[str]] = None,
) -> Dict[str, List[Allele]]:
    """Return {sample_id: [alleles, ...]} sorted by sample_id.

    The order of alleles within a sample is the order they were
    observed. If `samples` is entered then each of those samples is
    included, with an empty list if it had no alleles here.
    """
    groups: Dict[str, List[Allele]] = {}
    if samples is not None:
        for name in samples:
            groups[name] = []

    nrejected = 0
    for allele in alleles:
        try:
            check_allele(allele)
        except MalformedAlleleError as inst:
            nrejected += 1
            logger.warning(f"rejected allele record: {inst}")
            continue
        groups.setdefault(allele.sample_id, []).append(allele)

    if nrejected:
        logger.debug(f"rejected {nrejected} allele records")
    return {name: groups[name] for name in sorted(groups)}
