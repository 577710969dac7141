"""Reporting utilities for backpropnet."""

from .artifacts import write_manifest
from .metrics import CsvSink, JsonlSink
from .plots import CurveSummary, ErrorCurve

__all__ = ["write_manifest", "CsvSink", "CurveSummary", "ErrorCurve", "JsonlSink"]
