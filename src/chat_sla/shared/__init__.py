"""
Shared Kernel Module
====================

Generic infrastructure used by every part of the engine.

DO NOT add SLA business logic to the shared kernel.
"""

__version__ = "1.0.0"
