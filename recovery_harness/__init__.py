"""
Recovery Harness

Drives simulated client applications against a fault-tolerant component:
- Injects a fault per trial and classifies the recovery (automatic/manual/failed)
- Accumulates per-application statistics over bounded campaigns
- Single-flight campaign control via text commands or the HTTP API
"""

__version__ = "0.4.0"
__author__ = "Recovery Harness Team"

from recovery_harness.config import Settings, get_settings

__all__ = ["__version__", "Settings", "get_settings"]
