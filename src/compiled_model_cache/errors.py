# -*- coding: utf-8 -*-

"""
Exception types raised by the compiled model cache.

Copyright (c) 2026 Yuta Wakui
Licensed under the MIT License.
"""

# File: src/compiled_model_cache/errors.py
# Author: Yuta Wakui
# Date: 2026-10-19
# Description: Error taxonomy for cache, artifact store and runtime

from typing import Hashable


class ModelCacheError(Exception):
    """Base class for every error raised by this package."""


class KeyNotFoundError(ModelCacheError, KeyError):
    """
    Raised when a key is resolved that was never added to the cache.
    Add the key first, then retry.
    """

    def __init__(self, key: Hashable):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"No compiled model cached for key={self.key!r}"


class CompilationError(ModelCacheError):
    """Raised when a raw model cannot be found, read or compiled."""


class StorageError(ModelCacheError):
    """Raised when a compiled artifact cannot be published to the storage root."""


class LoadError(ModelCacheError):
    """Raised when a compiled artifact is missing, corrupt or incompatible."""


class PredictionError(ModelCacheError):
    """Raised when the runtime rejects an input or the forward pass fails."""
