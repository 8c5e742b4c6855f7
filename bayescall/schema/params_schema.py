#!/usr/bin/env python

"""Params schema for type checking and serialization.

Pydantic Models are similar to dataclases but they also include
*type validation*, meaning that if you try to set an attribute to
the wrong type it will raise an error. By using type validation the
params can be easily serialized to JSON and then reloaded as the
appropriate data types.

The ploidy and candidate bases were fixed in older versions of the
caller. They are params here but their defaults (2, "ATGC") give the
same genotype universe: R/R, R/A, ..., C/C (15 genotypes).
"""

# pylint: disable=no-self-argument, no-name-in-module

from pathlib import Path
from typing import List
from pydantic import BaseModel, Field, field_validator, model_validator
from loguru import logger
from bayescall.core.exceptions import BayesCallError

logger = logger.bind(name="bayescall")


class Params(BaseModel):
    """Parameters for a bayescall run."""
    # input collaborators
    alignment_files: List[Path] = Field(default_factory=list)
    reference_sequence: Path | None = None
    targets: Path | None = None
    # genotype universe
    ploidy: int = 2
    candidate_bases: List[str] = ["A", "T", "G", "C"]
    # base call filters
    min_base_quality: int = 0
    min_mapping_quality: int = 0
    # reporting
    max_phred_score: float = 200.0
    report_all_samples: bool = False
    one_based: bool = True
    # joint multi-sample genotyping (off by default)
    joint_prior: bool = False
    theta: float = 0.001
    dominant_genotypes: int = 2
    max_deviating_samples: int = 1

    class Config:
        """Enables type checking validation when using setattr in API."""
        validate_assignment = True

    def __str__(self):
        return self.model_dump_json(indent=2)

    ##################################################################
    # Below here, custom validator funcs in addition to type checking.
    ##################################################################

    @field_validator("alignment_files", mode="before")
    @classmethod
    def _alignments_validator(cls, value) -> List[str]:
        """Accept a single path and check that each path exists.

        Returns expanded path strings so that the same validator works
        in python and JSON mode, where Path fields only accept str.
        """
        if not value:
            return []
        if isinstance(value, (str, Path)):
            value = [value]
        paths = []
        for path in value:
            path = Path(path).expanduser().resolve()
            if not path.exists():
                raise ValueError(f"no alignment file matches: {path}")
            if path.is_dir():
                raise ValueError(f"alignment path is a directory: {path}")
            paths.append(str(path))
        return paths

    @field_validator("reference_sequence", "targets")
    @classmethod
    def _file_validator(cls, value: Path | None) -> Path | None:
        """Checks that file exists and expands path."""
        if value:
            value = value.expanduser().resolve()
            if not value.exists():
                raise ValueError(f"no files match the input string: {value}")
        return value

    @field_validator("reference_sequence")
    @classmethod
    def _reference_validator(cls, value: Path | None) -> Path | None:
        """Reference must be decompressed (or bgzipped and indexed)."""
        if value and value.suffix == ".gz":
            if not Path(str(value) + ".gzi").exists():
                raise ValueError(f"reference {value} must be decompressed.")
        return value

    @field_validator("ploidy")
    @classmethod
    def _ploidy_validator(cls, value: int) -> int:
        if value < 1:
            raise ValueError("ploidy must be >= 1")
        return value

    @field_validator("candidate_bases", mode="before")
    @classmethod
    def _bases_validator(cls, value) -> List[str]:
        """Bases are uppercase single letters from ACGT, no repeats."""
        if isinstance(value, str):
            value = list(value.replace(",", ""))
        bases = [str(i).upper() for i in value]
        for base in bases:
            if base not in "ACGT" or len(base) != 1:
                raise ValueError(f"candidate base must be one of ACGT, not {base!r}")
        if len(set(bases)) != len(bases):
            raise ValueError(f"candidate bases contain repeats: {bases}")
        return bases

    @field_validator("min_base_quality", "min_mapping_quality")
    @classmethod
    def _quality_validator(cls, value: int) -> int:
        if value < 0:
            raise ValueError("quality thresholds must be >= 0")
        return value

    @field_validator("max_phred_score")
    @classmethod
    def _max_phred_validator(cls, value: float) -> float:
        if not value > 0 or value == float("inf"):
            raise ValueError("max_phred_score must be a finite positive number")
        return value

    @field_validator("theta")
    @classmethod
    def _theta_validator(cls, value: float) -> float:
        if not 0 < value < 1:
            raise ValueError("theta must be between 0 and 1")
        return value

    @field_validator("dominant_genotypes")
    @classmethod
    def _dominant_validator(cls, value: int) -> int:
        if value < 1:
            raise ValueError("dominant_genotypes must be >= 1")
        return value

    @field_validator("max_deviating_samples")
    @classmethod
    def _deviating_validator(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max_deviating_samples must be >= 0")
        return value

    @model_validator(mode="after")
    def _joint_warning(self):
        if self.joint_prior and self.dominant_genotypes == 1:
            logger.warning(
                "joint_prior with dominant_genotypes=1 evaluates a single "
                "combination; posteriors will be 0 or 1.")
        return self


def load_params(json_file: Path) -> Params:
    """Return Params parsed from a JSON file."""
    json_file = Path(json_file)
    if not json_file.exists():
        raise BayesCallError(f"params file not found: {json_file}")
    try:
        return Params.model_validate_json(json_file.read_text())
    except ValueError as inst:
        raise BayesCallError(f"invalid params file {json_file}:\n{inst}") from inst


def save_params(params: Params, json_file: Path) -> None:
    """Write Params to a JSON file."""
    Path(json_file).write_text(params.model_dump_json(indent=2))
