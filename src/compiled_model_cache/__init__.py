"""
compiled_model_cache

Keyed cache of compiled, predict-capable models with a persistent artifact store
"""

from .errors import (
    ModelCacheError,
    KeyNotFoundError,
    CompilationError,
    StorageError,
    LoadError,
    PredictionError,
)
from .components.features import FeatureInput, FeatureOutput
from .components.runtime import ModelHandle, ModelRuntime, PredictionOptions, SklearnRuntime
from .components.artifact_store import CompiledArtifactStore, NamingStrategy, default_storage_root
from .components.compiled_model import CompiledModel
from .components.model_cache import KeyedModelCache
from .config import CacheConfig, load_config, load_cache_config, build_store, configure_logging

__all__ = [
    "ModelCacheError",
    "KeyNotFoundError",
    "CompilationError",
    "StorageError",
    "LoadError",
    "PredictionError",
    "FeatureInput",
    "FeatureOutput",
    "ModelHandle",
    "ModelRuntime",
    "PredictionOptions",
    "SklearnRuntime",
    "CompiledArtifactStore",
    "NamingStrategy",
    "default_storage_root",
    "CompiledModel",
    "KeyedModelCache",
    "CacheConfig",
    "load_config",
    "load_cache_config",
    "build_store",
    "configure_logging",
]
