#!/usr/bin/env python

"""API level classes for bayescall, a bayesian genotype caller.

Examples
--------
>>> import bayescall as bc
>>> params = bc.Params(
>>>     alignment_files=["a.bam", "b.bam"],
>>>     reference_sequence="ref.fa",
>>>     targets="targets.bed",
>>> )
>>> with bc.AlleleReader(params) as reader:
>>>     bc.Caller(params, reader).run()

>>> caller = bc.Caller()
>>> alleles = [bc.Allele("reference", "", 30, "a") for _ in range(3)]
>>> caller.call_position("chr1", 99, alleles).to_json_line()
"""

# bring nested functions to top for API access
from bayescall.core.logger_setup import set_log_level
from bayescall.core.exceptions import BayesCallError
from bayescall.core.allele import Allele, AlleleType, genotype_allele, observed_allele
from bayescall.core.multichoose import multichoose
from bayescall.core.genotype import Genotype, candidate_alleles, build_genotypes
from bayescall.core.caller import Caller
from bayescall.io.pileup import AlleleReader
from bayescall.schema import Params, load_params, PositionResult

__version__ = "0.1.0"
__author__ = "bayescall developers"

# configure the logger
set_log_level("INFO")
