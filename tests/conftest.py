from pathlib import Path
from typing import Callable, List

import pytest

from compiled_model_cache.components.artifact_store import CompiledArtifactStore, NamingStrategy
from compiled_model_cache.errors import CompilationError, LoadError, PredictionError

COMPILED_HEADER = "compiled:"


class FakeHandle:
    """Doubles x and echoes the raw body it was compiled from."""

    input_names = ("x",)
    output_names = ("y", "source")

    def __init__(self, body: str):
        self.body = body

    def predict(self, features, options):
        x = features.feature_value("x")
        if x is None:
            raise PredictionError("missing feature 'x'")
        return {"y": float(x) * 2, "source": self.body}

    def predict_batch(self, inputs, options):
        return [self.predict(f, options) for f in inputs]


class FakeRuntime:
    """Text-file runtime that records every compile and load call."""

    def __init__(self, work_dir: Path):
        self.work_dir = work_dir
        self.work_dir.mkdir(parents=True, exist_ok=True)
        self.compile_calls: List[Path] = []
        self.load_calls: List[Path] = []

    def compile(self, raw: Path) -> Path:
        raw = Path(raw)
        self.compile_calls.append(raw)
        if not raw.is_file():
            raise CompilationError(f"Raw model not found: {raw}")
        body = raw.read_text(encoding="utf-8")
        if body.startswith("malformed"):
            raise CompilationError(f"Raw model is malformed: {raw}")
        fresh = self.work_dir / f"fresh-{len(self.compile_calls)}"
        fresh.write_text(COMPILED_HEADER + body, encoding="utf-8")
        return fresh

    def load_model(self, artifact: Path) -> FakeHandle:
        artifact = Path(artifact)
        self.load_calls.append(artifact)
        if not artifact.is_file():
            raise LoadError(f"Compiled artifact not found: {artifact}")
        text = artifact.read_text(encoding="utf-8")
        if not text.startswith(COMPILED_HEADER):
            raise LoadError(f"Not a compiled artifact: {artifact}")
        return FakeHandle(text[len(COMPILED_HEADER):])


@pytest.fixture
def store_root(tmp_path: Path) -> Path:
    return tmp_path / "store"


@pytest.fixture
def make_runtime(tmp_path: Path) -> Callable[[], FakeRuntime]:
    def _make() -> FakeRuntime:
        return FakeRuntime(tmp_path / "work")
    return _make


@pytest.fixture
def runtime(make_runtime) -> FakeRuntime:
    return make_runtime()


@pytest.fixture
def store(runtime: FakeRuntime, store_root: Path) -> CompiledArtifactStore:
    return CompiledArtifactStore(runtime, root=store_root)


@pytest.fixture
def fingerprint_store(runtime: FakeRuntime, store_root: Path) -> CompiledArtifactStore:
    return CompiledArtifactStore(runtime, root=store_root, naming=NamingStrategy.FINGERPRINT)


@pytest.fixture
def write_raw(tmp_path: Path) -> Callable[..., Path]:
    def _write(name: str, body: str, subdir: str = "raw") -> Path:
        path = tmp_path / subdir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body, encoding="utf-8")
        return path
    return _write


def staging_files(root: Path) -> List[Path]:
    if not root.exists():
        return []
    return sorted(root.glob(".tmp-*"))


@pytest.fixture
def list_staging() -> Callable[[Path], List[Path]]:
    return staging_files
