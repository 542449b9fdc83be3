"""Export generation and execution."""

from .generators import (
    ContractorCsvGenerator,
    InductionCsvGenerator,
    SignInCsvGenerator,
    build_generator_registry,
)
from .runner import ExportRunner, ExportRunResult, backoff_delay_ms

__all__ = [
    "ContractorCsvGenerator",
    "InductionCsvGenerator",
    "SignInCsvGenerator",
    "build_generator_registry",
    "ExportRunner",
    "ExportRunResult",
    "backoff_delay_ms",
]
