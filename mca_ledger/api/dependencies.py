"""Dependency injection for FastAPI endpoints"""

from functools import lru_cache

from fastapi import Request

from mca_ledger.config import engine_config_from_settings, settings
from mca_ledger.pipeline import LoanPipeline


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


@lru_cache(maxsize=1)
def get_pipeline() -> LoanPipeline:
    """Provide the loan pipeline built from configured thresholds"""
    return LoanPipeline(engine_config_from_settings(settings))
