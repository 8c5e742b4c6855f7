#!/usr/bin/env python

"""Input collaborators: BAM pileups, reference bases and target regions.

These deliver the (target, position, alleles) stream consumed by the
Caller. Failures here are fatal and raise BayesCallError.
"""
