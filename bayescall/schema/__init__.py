#!/usr/bin/env python

"""Pydantic schemas for params and results."""

from bayescall.schema.params_schema import Params, load_params, save_params
from bayescall.schema.result_schema import PositionResult, SampleResult
