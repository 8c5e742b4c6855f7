#!/usr/bin/env python

"""Serializable JSON schema for the genotypes called at a position.

One PositionResult is written per line of output:
---------------------------------------------------
{
    "sequence": "chr1",
    "position": "1042",
    "samples": {
        "a": {"coverage": 3, "genotypes": {"R/R": 31.2, "R/A": 0.002, ...}},
        ...
    }
}

In joint mode the line ends with "p_variant", the probability that
any sample carries a non-reference allele. It is left out otherwise.
"""

from typing import Dict, Optional
from pydantic import BaseModel, Field

__all__ = [
    "SampleResult",
    "PositionResult",
]


class SampleResult(BaseModel):
    """Phred scaled confidence for each genotype of one sample."""
    coverage: int = 0
    genotypes: Dict[str, float] = Field(default_factory=dict)


class PositionResult(BaseModel):
    """Genotype results of all samples at one position."""
    sequence: str
    position: str
    samples: Dict[str, SampleResult] = Field(default_factory=dict)
    p_variant: Optional[float] = None

    def to_json_line(self) -> str:
        """Return compact JSON terminated by a newline."""
        return self.model_dump_json(exclude_none=True) + "\n"
