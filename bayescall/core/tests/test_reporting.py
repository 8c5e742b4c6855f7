#!/usr/bin/env python

"""Tests of Phred scaled confidence scores.

- test_phred_of_099
- test_posterior_one_is_capped
- test_posterior_zero_scores_zero
- test_genotype_scores_order
"""

import math
import unittest
from bayescall.core.genotype import candidate_alleles, build_genotypes
from bayescall.core.posterior import GenotypeProbability
from bayescall.core.reporting import (
    confidence_score, genotype_scores, sample_result, best_genotype, MAX_PHRED_SCORE)


class TestReporting(unittest.TestCase):

    def setUp(self):
        self.genotypes = build_genotypes(2, candidate_alleles())

    def test_phred_of_099(self):
        self.assertAlmostEqual(confidence_score(1 - 0.99), 20.0, delta=0.1)
        self.assertAlmostEqual(confidence_score(0.001), 30.0)

    def test_posterior_one_is_capped(self):
        score = confidence_score(1. - 1.)
        self.assertEqual(score, MAX_PHRED_SCORE)
        self.assertTrue(math.isfinite(score))
        self.assertEqual(confidence_score(0., max_score=99.), 99.)
        self.assertEqual(confidence_score(-1e-17), MAX_PHRED_SCORE)

    def test_tiny_error_is_capped(self):
        self.assertEqual(confidence_score(1e-300), MAX_PHRED_SCORE)

    def test_posterior_zero_scores_zero(self):
        score = confidence_score(1. - 0.)
        self.assertEqual(score, 0.)
        self.assertEqual(math.copysign(1., score), 1.)

    def test_nan_raises(self):
        with self.assertRaises(ValueError):
            confidence_score(float("nan"))

    def test_genotype_scores_order(self):
        probs = [GenotypeProbability(g, 0.) for g in self.genotypes]
        probs[0] = probs[0]._replace(probability=1.)
        scores = genotype_scores(probs)
        self.assertEqual(list(scores), [i.label for i in self.genotypes])
        self.assertEqual(scores["R/R"], MAX_PHRED_SCORE)
        self.assertEqual(scores["R/A"], 0.)

    def test_sample_result(self):
        probs = [GenotypeProbability(g, 1 / 15) for g in self.genotypes]
        result = sample_result(probs, coverage=0)
        self.assertEqual(result.coverage, 0)
        self.assertEqual(len(result.genotypes), 15)
        self.assertEqual(best_genotype(probs).genotype.label, "R/R")


if __name__ == "__main__":
    unittest.main()
