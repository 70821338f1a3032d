"""
FastAPI route modules for the recovery harness.
"""

from recovery_harness.api.harness_routes import router as harness_router

__all__ = ["harness_router"]
