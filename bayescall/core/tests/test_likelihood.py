#!/usr/bin/env python

"""Tests of data likelihoods.

- test_phred_to_error
- test_single_call_likelihoods
- test_no_calls_is_uniform
- test_matching_genotype_is_most_likely
- test_log_space_deep_coverage
"""

import unittest
import numpy as np
from bayescall.core.allele import observed_allele
from bayescall.core.genotype import candidate_alleles, build_genotypes
from bayescall.core.likelihood import (
    GenotypeLikelihoods, phred_to_error, likelihood, genotype_log_likelihoods, MAX_ERROR)


class TestLikelihood(unittest.TestCase):

    def setUp(self):
        self.genotypes = build_genotypes(2, candidate_alleles())
        self.model = GenotypeLikelihoods(self.genotypes)
        self.labels = [i.label for i in self.genotypes]

    def geno(self, label):
        return self.genotypes[self.labels.index(label)]

    def test_phred_to_error(self):
        errs = phred_to_error([10, 20, 30])
        np.testing.assert_allclose(errs, [0.1, 0.01, 0.001])
        self.assertEqual(phred_to_error([0])[0], MAX_ERROR)
        self.assertGreater(phred_to_error([1e6])[0], 0)

    def test_single_call_likelihoods(self):
        """Q20 reference call under R/R, R/A and A/A."""
        calls = [observed_allele("reference", "", 20, "s")]
        self.assertAlmostEqual(likelihood(self.geno("R/R"), calls), 0.99)
        self.assertAlmostEqual(likelihood(self.geno("R/A"), calls), (0.99 + 0.01 / 3) / 2)
        self.assertAlmostEqual(likelihood(self.geno("A/A"), calls), 0.01 / 3)

    def test_product_over_calls(self):
        calls = [
            observed_allele("reference", "", 20, "s"),
            observed_allele("snp", "A", 30, "s"),
        ]
        expected = 0.99 * (0.001 / 3)
        self.assertAlmostEqual(likelihood(self.geno("R/R"), calls), expected)

    def test_no_calls_is_uniform(self):
        logl = self.model.log_likelihoods([])
        self.assertEqual(logl.shape, (15,))
        self.assertTrue(np.all(logl == 0))

    def test_matching_genotype_is_most_likely(self):
        calls = (
            [observed_allele("snp", "T", 40, "s")] * 5
            + [observed_allele("snp", "G", 40, "s")] * 5
        )
        logl = self.model.log_likelihoods(calls)
        best = int(np.argmax(logl))
        self.assertEqual(self.labels[best], "T/G")
        self.assertEqual(np.sum(logl == logl.max()), 1)

    def test_uncandidate_base_mismatches_all(self):
        model = GenotypeLikelihoods(build_genotypes(2, candidate_alleles(["A"])))
        calls = [observed_allele("snp", "C", 30, "s")]
        logl = model.log_likelihoods(calls)
        np.testing.assert_allclose(logl, np.log(0.001 / 3))

    def test_log_space_deep_coverage(self):
        """Linear products would underflow at this depth."""
        calls = [observed_allele("reference", "", 30, "s")] * 5000
        logl = genotype_log_likelihoods(self.genotypes, calls)
        self.assertTrue(np.isfinite(logl).all())
        self.assertEqual(self.labels[int(np.argmax(logl))], "R/R")

    def test_mixed_ploidy_raises(self):
        with self.assertRaises(ValueError):
            GenotypeLikelihoods(
                build_genotypes(1, candidate_alleles()) + build_genotypes(2, candidate_alleles()))


if __name__ == "__main__":
    unittest.main()
