#!/usr/bin/env python

"""Genotype probability inference engine.

Modules, leaves first:
1. allele: observed base calls and candidate alleles.
2. multichoose, genotype: the genotype universe.
3. grouping: alleles at a position split by sample.
4. likelihood: P(observed calls | genotype) in log space.
5. posterior: normalization, joint priors and marginals.
6. reporting: Phred scaled confidence scores.
7. caller: the position by position control loop.
"""
