"""Analysis engines served by the acrd daemon.

Key Components:
- AnalysisEngine: Contract every engine implements
- ParsedFileCache: Thread-safe cache of parsed sources with TTL eviction
- PythonEngine: Default engine for Python sources
- load_engine: Builds the engine named in the daemon configuration
"""

from .base import AnalysisEngine
from .cache import CacheEntry, ParsedFileCache
from .loader import load_engine

__all__ = [
    "AnalysisEngine",
    "CacheEntry",
    "ParsedFileCache",
    "load_engine",
]
