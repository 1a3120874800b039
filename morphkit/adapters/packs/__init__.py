"""
Pack resources: fetching, caching, integrity verification, decompression and
manifest handling.
"""

from .cache import PackCache
from .loader import PackLoader, PackRequest, parse_pack_url

__all__ = ["PackCache", "PackLoader", "PackRequest", "parse_pack_url"]
