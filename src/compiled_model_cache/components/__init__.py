"""
Components of the compiled model cache.

-features: FeatureInput / FeatureOutput
-runtime: runtime protocols and SklearnRuntime
-artifact_store: CompiledArtifactStore
-compiled_model: CompiledModel
-model_cache: KeyedModelCache
"""
