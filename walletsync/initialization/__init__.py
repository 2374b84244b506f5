"""
Initialization Module.

- logging: Logger configuration
"""

__all__ = []
