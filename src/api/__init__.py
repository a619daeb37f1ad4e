"""
API Package
Contains FastAPI routes and models
"""

from api.routes import router, state
from api.models import (
    BillOut,
    ExtractResponse,
    SplitResponse,
    HealthResponse
)

__all__ = [
    'router',
    'state',
    'BillOut',
    'ExtractResponse',
    'SplitResponse',
    'HealthResponse'
]
