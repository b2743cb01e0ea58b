"""
API Routes Package
"""
from . import (
    health,
    workflows,
    analytics,
)
