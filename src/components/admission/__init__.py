"""
Admission component - realtime connection admission guard.
"""

from .component import run, run_admit
from .models import (
    AdmissionConfig,
    AdmissionOutcome,
    AdmissionRecord,
    AdmitInput,
)

__all__ = [
    # Entry points
    "run",
    "run_admit",
    # Models
    "AdmissionConfig",
    "AdmissionOutcome",
    "AdmissionRecord",
    "AdmitInput",
]
