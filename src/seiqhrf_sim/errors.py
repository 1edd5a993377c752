"""
Error taxonomy for the SEIQHRF simulation engine.

None of these errors are retried anywhere: every failure is deterministic
given the same inputs.
"""


class ConfigError(ValueError):
    """Malformed configuration, detected before any simulation starts."""


class InvalidStateError(RuntimeError):
    """Negative count or out-of-range probability discovered mid-run."""


class AggregationError(RuntimeError):
    """Replicate results that cannot be combined into one summary."""
