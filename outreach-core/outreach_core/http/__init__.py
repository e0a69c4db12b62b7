from .client import GuardedClient, parse_retry_after

__all__ = [
    "GuardedClient",
    "parse_retry_after",
]
