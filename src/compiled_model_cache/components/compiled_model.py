# -*- coding: utf-8 -*-

"""
A compiled, loaded model bundled with its source and destination paths.

Copyright (c) 2026 Yuta Wakui
Licensed under the MIT License.
"""

# File: src/compiled_model_cache/components/compiled_model.py
# Author: Yuta Wakui
# Date: 2026-10-19
# Description: Compiled model construction and prediction

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from compiled_model_cache.components.artifact_store import CompiledArtifactStore, PathLike
from compiled_model_cache.components.features import FeatureInput, FeatureOutput, as_feature_input
from compiled_model_cache.components.runtime import ModelHandle, PredictionOptions

logger = logging.getLogger(__name__)

Output = TypeVar("Output", bound=FeatureOutput)
InputLike = Union[FeatureInput, Mapping[str, Any]]


@dataclass(frozen=True)
class CompiledModel:
    """
    A model that can make predictions.

    Build instances with ``CompiledModel.from_raw``; the constructor only
    bundles values that already exist.

    Attributes
    ----------
    source : Path
        Path of the raw model file.
    destination : Path
        Path of the persisted compiled artifact.
    handle : ModelHandle
        Loaded runtime instance used for predictions.
    """
    source: Path
    destination: Path
    handle: ModelHandle

    @classmethod
    def from_raw(cls, raw: PathLike, store: CompiledArtifactStore) -> "CompiledModel":
        """
        Obtain a compiled artifact for ``raw`` (reused or freshly compiled) and load it.

        Parameters
        ----------
        raw : path
            Raw model path.
        store : CompiledArtifactStore
            Store that owns the persistent compiled artifacts.

        Returns
        -------
        CompiledModel

        Raises
        ------
        CompilationError, StorageError
            If obtaining the compiled artifact fails.
        LoadError
            If the obtained artifact cannot be loaded.
        """
        source = Path(raw)
        destination = store.obtain(source)
        handle = store.runtime.load_model(destination)
        logger.debug("[CompiledModel][LOAD] source=%s destination=%s", source, destination)
        return cls(source=source, destination=destination, handle=handle)

    @property
    def input_names(self) -> Sequence[str]:
        return self.handle.input_names

    @property
    def output_names(self) -> Sequence[str]:
        return self.handle.output_names

    def predict(
        self,
        input: InputLike,
        options: Optional[PredictionOptions] = None,
        output_type: Type[Output] = FeatureOutput,
    ) -> Output:
        """
        Make a prediction for one input.

        Parameters
        ----------
        input : FeatureInput or mapping
            Input features; a plain dict of feature name to value is accepted.
        options : PredictionOptions, optional
            Options for the runtime.
        output_type : type
            FeatureOutput subclass used to wrap the result.

        Raises
        ------
        PredictionError
            If the runtime rejects the input or the prediction fails.
        """
        features = self.handle.predict(as_feature_input(input), options or PredictionOptions())
        return output_type(features)

    def predict_batch(
        self,
        inputs: Sequence[InputLike],
        options: Optional[PredictionOptions] = None,
        output_type: Type[Output] = FeatureOutput,
    ) -> List[Output]:
        """
        Make one prediction per input in a single runtime call.
        Outputs are returned in input order.
        """
        batch = [as_feature_input(i) for i in inputs]
        outputs = self.handle.predict_batch(batch, options or PredictionOptions())
        return [output_type(features) for features in outputs]
