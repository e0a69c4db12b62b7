"""
Outreach Core - Resilient Invoker
=================================
Single entry point for calling unreliable third-party dependencies.

Usage:
    from outreach_core.invoker import build_default_invoker

    invoker = build_default_invoker()
    places = await invoker.run_guarded("places-api", 0, lambda: client.search(q))
"""

from .models import DependencyPolicy, GuardError
from .invoker import ResilientInvoker
from .decorators import guarded
from .factory import build_default_invoker, dependency_policies

__all__ = [
    "DependencyPolicy",
    "GuardError",
    "ResilientInvoker",
    "guarded",
    "build_default_invoker",
    "dependency_policies",
]
