"""
API package containing versioned routes.

A version subpackage exposes a top-level ``router`` that includes all
of its endpoint modules.  New versions are added as new subpackages
(e.g. ``v2``) with their own ``router``.
"""
