"""
Rate Limiting Module for Outreach Core
======================================
Sliding window limiter for request and token budgets of outbound calls.
"""

from .models import RateLimitConfig, RateLimitExceeded, RateLimitUsage
from .sliding_window import SlidingWindowRateLimiter

__all__ = [
    # Models
    "RateLimitConfig",
    "RateLimitExceeded",
    "RateLimitUsage",
    # Limiters
    "SlidingWindowRateLimiter",
]
