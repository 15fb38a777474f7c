import joblib
import numpy as np
import pandas as pd
import pytest
import sklearn
from sklearn.linear_model import LinearRegression, LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from compiled_model_cache import (
    CompilationError,
    CompiledArtifactStore,
    KeyedModelCache,
    LoadError,
    PredictionError,
    PredictionOptions,
    SklearnRuntime,
)

class CountingRuntime(SklearnRuntime):
    """SklearnRuntime that counts compile calls."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.compiles = 0

    def compile(self, raw):
        self.compiles += 1
        return super().compile(raw)

@pytest.fixture
def sk_runtime(tmp_path):
    return CountingRuntime(work_dir=tmp_path / "work")

@pytest.fixture
def sk_store(sk_runtime, tmp_path):
    return CompiledArtifactStore(sk_runtime, root=tmp_path / "store")

@pytest.fixture
def regressor_path(tmp_path):
    df = pd.DataFrame({"x": np.arange(10, dtype=float)})
    y = 2.0 * df["x"] + 1.0
    path = tmp_path / "raw" / "linear.joblib"
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(LinearRegression().fit(df, y), path)
    return path

@pytest.fixture
def classifier_path(tmp_path):
    rng = np.random.default_rng(42)
    df = pd.DataFrame({
        "x1": np.concatenate([rng.normal(-2, 0.5, 20), rng.normal(2, 0.5, 20)]),
        "x2": np.concatenate([rng.normal(-2, 0.5, 20), rng.normal(2, 0.5, 20)]),
    })
    y = np.array([0] * 20 + [1] * 20)
    model = Pipeline([("scaler", StandardScaler()), ("clf", LogisticRegression())]).fit(df, y)
    path = tmp_path / "raw" / "clf.joblib"
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(model, path)
    return path

def test_regressor_predict(sk_store, regressor_path):
    cache = KeyedModelCache(store=sk_store)
    model = cache.add("linear", regressor_path)

    output = cache.predict("linear", {"x": 3.0})

    assert tuple(model.input_names) == ("x",)
    assert output.feature_names == frozenset(model.output_names) == frozenset({"prediction"})
    assert output.feature_value("prediction") == pytest.approx(7.0)

def test_regressor_batch_preserves_order(sk_store, regressor_path):
    cache = KeyedModelCache(store=sk_store)
    cache.add("linear", regressor_path)

    outputs = cache.predict_batch("linear", [{"x": 0.0}, {"x": 5.0}, {"x": 1.0}])

    assert [o.feature_value("prediction") for o in outputs] == pytest.approx([1.0, 11.0, 3.0])

def test_classifier_probabilities(sk_store, classifier_path):
    cache = KeyedModelCache(store=sk_store)
    cache.add("clf", classifier_path)

    output = cache.predict("clf", {"x1": 2.0, "x2": 2.0})
    proba = output.feature_value("probabilities")

    assert output.feature_names == frozenset({"prediction", "probabilities"})
    assert output.feature_value("prediction") == 1
    assert set(proba) == {0, 1}
    assert sum(proba.values()) == pytest.approx(1.0)
    assert proba[1] > proba[0]

def test_classifier_without_probabilities(sk_store, classifier_path):
    cache = KeyedModelCache(store=sk_store)
    cache.add("clf", classifier_path)

    output = cache.predict("clf", {"x1": -2.0, "x2": -2.0}, options=PredictionOptions(include_probabilities=False))

    assert output.feature_names == frozenset({"prediction"})
    assert output.feature_value("prediction") == 0

def test_missing_feature_raises_prediction_error(sk_store, classifier_path):
    cache = KeyedModelCache(store=sk_store)
    cache.add("clf", classifier_path)

    with pytest.raises(PredictionError, match="x2"):
        cache.predict("clf", {"x1": 1.0})
    with pytest.raises(PredictionError):
        cache.predict_batch("clf", [{"x1": 1.0, "x2": 1.0}, {"x1": 1.0}])

def test_invalid_feature_value_raises_prediction_error(sk_store, regressor_path):
    cache = KeyedModelCache(store=sk_store)
    cache.add("linear", regressor_path)
    with pytest.raises(PredictionError):
        cache.predict("linear", {"x": "not a number"})

def test_empty_batch(sk_store, regressor_path):
    cache = KeyedModelCache(store=sk_store)
    cache.add("linear", regressor_path)
    assert cache.predict_batch("linear", []) == []

def test_round_trip_across_caches(tmp_path, regressor_path):
    first = CountingRuntime(work_dir=tmp_path / "work")
    KeyedModelCache.from_models({"linear": regressor_path}, store=CompiledArtifactStore(first, root=tmp_path / "store"))

    second = CountingRuntime(work_dir=tmp_path / "work")
    cache = KeyedModelCache.from_models({"linear": regressor_path}, store=CompiledArtifactStore(second, root=tmp_path / "store"))

    assert first.compiles == 1
    assert second.compiles == 0
    assert cache.predict("linear", {"x": 1.0}).feature_value("prediction") == pytest.approx(3.0)

def test_version_mismatch_triggers_recompile(sk_store, sk_runtime, regressor_path, monkeypatch):
    cache = KeyedModelCache(store=sk_store)
    destination = cache.add("linear", regressor_path).destination

    monkeypatch.setattr(sklearn, "__version__", "0.0.0-other")
    with pytest.raises(LoadError, match="scikit-learn"):
        sk_runtime.load_model(destination)

    cache.add("linear", regressor_path)
    assert sk_runtime.compiles == 2
    assert joblib.load(destination)["sklearn_version"] == "0.0.0-other"

def test_compile_rejects_unfitted_estimator(sk_store, tmp_path):
    raw = tmp_path / "unfitted.joblib"
    joblib.dump(LinearRegression(), raw)
    with pytest.raises(CompilationError, match="fitted"):
        sk_store.obtain(raw)

def test_compile_rejects_non_estimator(sk_store, tmp_path):
    raw = tmp_path / "dict.joblib"
    joblib.dump({"weights": [1, 2, 3]}, raw)
    with pytest.raises(CompilationError, match="predict"):
        sk_store.obtain(raw)

def test_compile_requires_feature_names(sk_store, tmp_path):
    raw = tmp_path / "arrays.joblib"
    joblib.dump(LinearRegression().fit(np.arange(6.0).reshape(-1, 1), np.arange(6.0)), raw)
    with pytest.raises(CompilationError, match="feature_names_in_"):
        sk_store.obtain(raw)

def test_compile_rejects_garbage_file(sk_store, tmp_path):
    raw = tmp_path / "garbage.joblib"
    raw.write_bytes(b"definitely not a pickle")
    with pytest.raises(CompilationError):
        sk_store.obtain(raw)
    assert not (sk_store.root / "garbage.joblib").exists()

def test_load_rejects_foreign_joblib(sk_runtime, tmp_path):
    path = tmp_path / "foreign.joblib"
    joblib.dump({"something": "else"}, path)
    with pytest.raises(LoadError, match="Not a compiled model"):
        sk_runtime.load_model(path)

def test_load_missing_artifact(sk_runtime, tmp_path):
    with pytest.raises(LoadError, match="not found"):
        sk_runtime.load_model(tmp_path / "missing.joblib")

def test_raw_model_is_left_untouched(sk_store, regressor_path):
    before = regressor_path.read_bytes()
    KeyedModelCache(store=sk_store).add("linear", regressor_path)
    assert regressor_path.read_bytes() == before
    assert list((sk_store.root).glob(".tmp-*")) == []

def test_cache_without_store_uses_default_root(monkeypatch, tmp_path, regressor_path):
    monkeypatch.setenv("COMPILED_MODEL_CACHE_DIR", str(tmp_path / "default"))
    cache = KeyedModelCache(store=None)

    model = cache.add("linear", regressor_path)

    assert model.destination == tmp_path / "default" / "linear.joblib"
    assert cache.predict("linear", {"x": 2.0}).feature_value("prediction") == pytest.approx(5.0)
