"""
Top-level package for the Turf Platform API.

The moderation and check-in core lives in ``turf_platform_api.app``.
"""

__all__ = []
