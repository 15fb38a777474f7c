# -*- coding: utf-8 -*-

"""
Model runtime boundary and the default scikit-learn runtime.

The cache only depends on the ModelRuntime / ModelHandle protocols:
- compile(raw) produces a fresh compiled artifact in a temporary location
- load_model(artifact) loads a compiled artifact into a predict-capable handle

SklearnRuntime implements them for fitted scikit-learn estimators saved with joblib.
A compiled artifact is a compressed joblib package with the structure:

{
  "__compiled_model__": true,
  "schema_version": "1",
  "sklearn_version": "<version that compiled it>",
  "input_names": [...],
  "output_names": [...],
  "estimator": <fitted estimator or Pipeline>,
}

Copyright (c) 2026 Yuta Wakui
Licensed under the MIT License.
"""

# File: src/compiled_model_cache/components/runtime.py
# Author: Yuta Wakui
# Date: 2026-10-19
# Description: Runtime protocols and scikit-learn runtime

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

import joblib
import numpy as np
import pandas as pd
import sklearn
from sklearn.exceptions import NotFittedError
from sklearn.utils.validation import check_is_fitted

from compiled_model_cache.components.features import FeatureInput
from compiled_model_cache.errors import CompilationError, LoadError, PredictionError

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

SCHEMA_VERSION = "1"
MAGIC_KEY = "__compiled_model__"
PREDICTION = "prediction"
PROBABILITIES = "probabilities"


@dataclass(frozen=True)
class PredictionOptions:
    """Options passed through to the runtime on every prediction."""
    include_probabilities: bool = True


class ModelHandle(Protocol):
    """A loaded, predict-capable model instance."""

    input_names: Tuple[str, ...]
    output_names: Tuple[str, ...]

    def predict(self, features: FeatureInput, options: PredictionOptions) -> Mapping[str, Any]:
        """Run a single prediction."""

    def predict_batch(
        self, inputs: Sequence[FeatureInput], options: PredictionOptions
    ) -> Sequence[Mapping[str, Any]]:
        """Run one prediction per input, in order."""


class ModelRuntime(Protocol):
    """Compiles raw models and loads compiled artifacts."""

    def compile(self, raw: Path) -> Path:
        """
        Compile ``raw`` into a fresh artifact and return its temporary location.

        The artifact must be a single regular file; the store moves it into
        place with one rename and removes it if publishing fails.
        """

    def load_model(self, artifact: Path) -> ModelHandle:
        """Load a compiled artifact."""


@dataclass(frozen=True)
class SklearnModelHandle:
    """Loaded scikit-learn estimator plus its declared feature schema."""

    estimator: Any
    input_names: Tuple[str, ...]
    output_names: Tuple[str, ...]

    def _to_frame(self, inputs: Sequence[FeatureInput]) -> pd.DataFrame:
        rows: List[List[Any]] = []
        for i, features in enumerate(inputs):
            missing = [name for name in self.input_names if name not in features.feature_names]
            if missing:
                raise PredictionError(f"Input {i} is missing features: {missing}")
            rows.append([features.feature_value(name) for name in self.input_names])
        return pd.DataFrame(rows, columns=list(self.input_names))

    def predict(self, features: FeatureInput, options: PredictionOptions) -> Mapping[str, Any]:
        return self.predict_batch([features], options)[0]

    def predict_batch(
        self, inputs: Sequence[FeatureInput], options: PredictionOptions
    ) -> List[Dict[str, Any]]:
        if len(inputs) == 0:
            return []

        x = self._to_frame(inputs)
        want_proba = options.include_probabilities and PROBABILITIES in self.output_names

        try:
            preds = np.asarray(self.estimator.predict(x)).tolist()
            proba = np.asarray(self.estimator.predict_proba(x)) if want_proba else None
        except Exception as exc:
            raise PredictionError(f"Prediction failed: {exc}") from exc

        results: List[Dict[str, Any]] = []
        classes = np.asarray(getattr(self.estimator, "classes_", [])).tolist()
        for i, pred in enumerate(preds):
            row: Dict[str, Any] = {PREDICTION: pred}
            if proba is not None:
                row[PROBABILITIES] = {c: float(p) for c, p in zip(classes, proba[i])}
            results.append(row)
        return results


class SklearnRuntime:
    """
    Runtime for fitted scikit-learn estimators.

    A raw model is a joblib (or pickle) file holding a fitted estimator that was
    trained on a pandas DataFrame, so that ``feature_names_in_`` names its inputs.

    Parameters
    ----------
    work_dir : path, optional
        Directory for freshly compiled artifacts (defaults to the system temp dir).
    compress : int
        joblib compression level for compiled artifacts.
    """

    def __init__(self, work_dir: Optional[PathLike] = None, compress: int = 3):
        self.work_dir = Path(work_dir) if work_dir is not None else None
        self.compress = compress

    def compile(self, raw: Path) -> Path:
        raw = Path(raw)
        if not raw.is_file():
            raise CompilationError(f"Raw model not found: {raw}")

        try:
            estimator = joblib.load(raw)
        except Exception as exc:
            raise CompilationError(f"Raw model could not be read: {raw}") from exc

        input_names, output_names = self._schema(estimator, raw)

        package = {
            MAGIC_KEY: True,
            "schema_version": SCHEMA_VERSION,
            "sklearn_version": sklearn.__version__,
            "input_names": list(input_names),
            "output_names": list(output_names),
            "estimator": estimator,
        }

        if self.work_dir is not None:
            self.work_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            prefix="compiled-",
            suffix=raw.suffix or ".joblib",
            dir=str(self.work_dir) if self.work_dir is not None else None,
        )
        os.close(fd)
        try:
            joblib.dump(package, tmp, compress=self.compress)
        except Exception as exc:
            Path(tmp).unlink(missing_ok=True)
            raise CompilationError(f"Compiled model could not be written for {raw}") from exc

        logger.info("[SklearnRuntime][COMPILE] raw=%s inputs=%s", raw, list(input_names))
        return Path(tmp)

    def load_model(self, artifact: Path) -> SklearnModelHandle:
        artifact = Path(artifact)
        if not artifact.is_file():
            raise LoadError(f"Compiled artifact not found: {artifact}")

        try:
            package = joblib.load(artifact)
        except Exception as exc:
            raise LoadError(f"Compiled artifact is unreadable: {artifact}") from exc

        if not isinstance(package, dict) or not package.get(MAGIC_KEY):
            raise LoadError(f"Not a compiled model artifact: {artifact}")

        if str(package.get("schema_version")) != SCHEMA_VERSION:
            raise LoadError(
                f"Incompatible schema_version: {package.get('schema_version')}, expected {SCHEMA_VERSION}"
            )

        if package.get("sklearn_version") != sklearn.__version__:
            raise LoadError(
                f"Artifact compiled with scikit-learn {package.get('sklearn_version')}, "
                f"running {sklearn.__version__}"
            )

        estimator = package.get("estimator")
        if estimator is None:
            raise LoadError(f"Corrupt artifact: missing 'estimator' in {artifact}")

        return SklearnModelHandle(
            estimator=estimator,
            input_names=tuple(package.get("input_names", [])),
            output_names=tuple(package.get("output_names", [PREDICTION])),
        )

    @staticmethod
    def _schema(estimator: Any, raw: Path) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        if not hasattr(estimator, "predict"):
            raise CompilationError(
                f"Raw model {raw} holds {type(estimator).__name__}, which has no predict()"
            )

        try:
            check_is_fitted(estimator)
        except (NotFittedError, TypeError) as exc:
            raise CompilationError(f"Raw model {raw} is not a fitted estimator") from exc

        names = getattr(estimator, "feature_names_in_", None)
        if names is None:
            raise CompilationError(
                f"Raw model {raw} has no feature_names_in_ (fit it on a pandas DataFrame)"
            )

        outputs = [PREDICTION]
        if hasattr(estimator, "predict_proba"):
            outputs.append(PROBABILITIES)

        return tuple(str(n) for n in names), tuple(outputs)
