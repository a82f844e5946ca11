"""Vitrine — async client for the storefront backend.

The server-state layer of the jewelry/perfume storefront: per-resource
API slices over a tag-invalidated query cache, a shared response
notification middleware, and Socket.IO rooms that reconcile pushed
order/analytics updates into the cache.
"""

__version__ = "0.1.0"
