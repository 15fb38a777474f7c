# -*- coding: utf-8 -*-

"""
Keyed cache of compiled models.
This module defines the KeyedModelCache class, which maps caller-supplied
hashable keys to CompiledModel instances and routes predictions through them.

Copyright (c) 2026 Yuta Wakui
Licensed under the MIT License.
"""

# File: src/compiled_model_cache/components/model_cache.py
# Author: Yuta Wakui
# Date: 2026-10-19
# Description: Keyed cache for compiled models

from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, Generic, Hashable, List, Mapping, Optional, Sequence, Type, TypeVar
import logging

from compiled_model_cache.components.artifact_store import CompiledArtifactStore, PathLike
from compiled_model_cache.components.compiled_model import CompiledModel, InputLike, Output
from compiled_model_cache.components.features import FeatureOutput
from compiled_model_cache.components.runtime import PredictionOptions, SklearnRuntime
from compiled_model_cache.errors import KeyNotFoundError

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


def _default_store() -> CompiledArtifactStore:
    return CompiledArtifactStore(SklearnRuntime())


@dataclass
class KeyedModelCache(Generic[K]):
    """
    In-memory cache of compiled models keyed by any hashable value.

    Entries live until they are overwritten or the cache is discarded; there
    is no eviction. Compiled artifacts persist in ``store`` across runs.
    """
    store: Optional[CompiledArtifactStore] = field(default_factory=_default_store)
    models: Dict[K, CompiledModel] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.store is None:
            self.store = _default_store()
        # own a private copy of the initial entries
        self.models = dict(self.models or {})

    @classmethod
    def from_models(
        cls,
        models: Mapping[K, PathLike],
        store: Optional[CompiledArtifactStore] = None,
    ) -> "KeyedModelCache[K]":
        """
        Build a cache and add a compiled model for every (key, raw path) pair.

        Fails fast: the first construction error propagates and the partially
        built cache is discarded.

        Parameters
        ----------
        models : Mapping[K, path]
            Keys mapped to raw model paths.
        store : CompiledArtifactStore, optional
            Artifact store; a scikit-learn store under the default root if omitted.

        Returns
        -------
        KeyedModelCache
        """
        cache: KeyedModelCache[K] = cls(store=store)
        for key, raw in models.items():
            cache.add(key, raw)
        return cache

    def add(self, key: K, raw: PathLike) -> CompiledModel:
        """
        Compile (or reuse) the model at ``raw`` and store it under ``key``,
        overwriting any previous entry. On failure the cache is unchanged.

        Parameters
        ----------
        key : K
            Cache key.
        raw : path
            Raw model path.

        Returns
        -------
        CompiledModel
            The stored model.

        Raises
        ------
        CompilationError, StorageError, LoadError
        """
        model = CompiledModel.from_raw(raw, self.store)
        self.set(key, model)
        return model

    def set(self, key: K, model: CompiledModel) -> None:
        """
        Store an already constructed model under ``key``.

        Parameters
        ----------
        key : K
            Cache key.
        model : CompiledModel
            Compiled model to store.
        """
        with self._lock:
            self.models[key] = model
            size = len(self.models)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("[ModelCache][STORE] key=%r source=%s size=%d", key, model.source, size)

    def get(self, key: K) -> Optional[CompiledModel]:
        """
        Retrieve a model from the cache.

        Returns
        -------
        CompiledModel or None
            Cached model if present, otherwise None.
        """
        with self._lock:
            model = self.models.get(key)
            size = len(self.models)

        if logger.isEnabledFor(logging.DEBUG):
            if model is None:
                logger.debug("[ModelCache][MISS] key=%r size=%d", key, size)
            else:
                logger.debug("[ModelCache][HIT] key=%r size=%d", key, size)

        return model

    def resolve(self, key: K) -> CompiledModel:
        """
        Return the model cached under ``key``.

        Raises
        ------
        KeyNotFoundError
            If nothing was added for ``key``.
        """
        model = self.get(key)
        if model is None:
            raise KeyNotFoundError(key)
        return model

    def predict(
        self,
        key: K,
        input: InputLike,
        options: Optional[PredictionOptions] = None,
        output_type: Type[Output] = FeatureOutput,
    ) -> Output:
        """
        Predict one input with the model cached under ``key``.

        Raises
        ------
        KeyNotFoundError
            If nothing was added for ``key``.
        PredictionError
            If the prediction fails.
        """
        return self.resolve(key).predict(input, options=options, output_type=output_type)

    def predict_batch(
        self,
        key: K,
        inputs: Sequence[InputLike],
        options: Optional[PredictionOptions] = None,
        output_type: Type[Output] = FeatureOutput,
    ) -> List[Output]:
        """Predict a batch of inputs, in order, with the model cached under ``key``."""
        return self.resolve(key).predict_batch(inputs, options=options, output_type=output_type)

    def keys(self) -> List[K]:
        with self._lock:
            return list(self.models)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self.models

    def __len__(self) -> int:
        with self._lock:
            return len(self.models)
