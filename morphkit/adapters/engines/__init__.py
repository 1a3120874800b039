"""
Transducer Engine Adapters.

1. HfstNativeEngine: the production engine, a native HFST shim loaded with ctypes.
2. output_format: parsing of engine output lines into Analyse records.
"""

from .hfst_native import HfstNativeEngine, apply_two_phase, load_with_fallbacks

__all__ = [
    "HfstNativeEngine",
    "apply_two_phase",
    "load_with_fallbacks",
]
