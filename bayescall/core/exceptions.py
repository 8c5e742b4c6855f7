#!/usr/bin/env python

"""Exceptions raised by bayescall."""


class BayesCallError(Exception):
    """Raise a custom exception that will report with traceback.

    This is used to catch and report errors from the input collaborators
    (alignments, reference, targets) which are fatal to a run, and is the
    base class of the per-record and per-sample errors below.
    """
    def __init__(self, *args, **kwargs):
        Exception.__init__(self, *args, **kwargs)


class MalformedAlleleError(BayesCallError):
    """An observed allele record that cannot be used for inference.

    Raised for an unrecognized allele kind or a missing sample id. It
    is caught when grouping alleles so only the record is dropped.
    """


class DegenerateDistributionError(BayesCallError):
    """All genotype likelihoods of a sample are zero."""
