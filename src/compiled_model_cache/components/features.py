# -*- coding: utf-8 -*-

"""
Feature providers exchanged with the model runtime.
FeatureInput adapts a dictionary of named values to the runtime's input shape,
FeatureOutput wraps whatever named features the runtime returned.

Copyright (c) 2026 Yuta Wakui
Licensed under the MIT License.
"""

# File: src/compiled_model_cache/components/features.py
# Author: Yuta Wakui
# Date: 2026-10-19
# Description: Named feature input/output wrappers

from typing import Any, Dict, FrozenSet, Mapping, Optional, Union


class FeatureInput:
    """
    Input features for a prediction.

    Example usage:
        features = FeatureInput({"x": 1.0, "y": 2.5})
        output = cache.predict("m1", features)

    All feature names must match the input features expected by the model;
    extra names are ignored by the runtime.
    """

    def __init__(self, values: Mapping[str, Any]):
        self._values: Dict[str, Any] = dict(values)

    @property
    def feature_names(self) -> FrozenSet[str]:
        """Set of all the feature names of this input."""
        return frozenset(self._values)

    def feature_value(self, name: str) -> Optional[Any]:
        """
        Return the value for the given feature name.

        Parameters
        ----------
        name : str
            Name of the feature.

        Returns
        -------
        Any or None
            Feature value, or None if the name is not present.
        """
        return self._values.get(name)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._values!r})"


class FeatureOutput:
    """
    Wraps the features returned by a runtime prediction.

    Subclass it to add typed accessors for a particular model and pass the
    subclass as ``output_type`` to the predict methods.
    """

    def __init__(self, features: Union[Mapping[str, Any], "FeatureOutput"]):
        self.provider = features

    @property
    def feature_names(self) -> FrozenSet[str]:
        if isinstance(self.provider, FeatureOutput):
            return self.provider.feature_names
        return frozenset(self.provider)

    def feature_value(self, name: str) -> Optional[Any]:
        if isinstance(self.provider, FeatureOutput):
            return self.provider.feature_value(name)
        return self.provider.get(name)

    def to_dict(self) -> Dict[str, Any]:
        return {name: self.feature_value(name) for name in self.feature_names}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_dict()!r})"


def as_feature_input(value: Union[FeatureInput, Mapping[str, Any]]) -> FeatureInput:
    """Accept either a FeatureInput or a plain feature dictionary."""
    if isinstance(value, FeatureInput):
        return value
    if isinstance(value, Mapping):
        return FeatureInput(value)
    raise TypeError(
        f"input must be a FeatureInput or a mapping of feature names, got {type(value).__name__}"
    )
