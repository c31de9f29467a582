"""Harness dispatch, run-time estimation and executor adapters."""

from driver.execution.dispatcher import (
    HarnessInvocation,
    build_harness_args,
    build_invocation,
    dispatch,
)
from driver.execution.estimator import DurationEstimate, estimate_duration

__all__ = [
    "DurationEstimate",
    "HarnessInvocation",
    "build_harness_args",
    "build_invocation",
    "dispatch",
    "estimate_duration",
]
