# -*- coding: utf-8 -*-

"""
Persistent store for compiled model artifacts.
This module defines the CompiledArtifactStore class, which decides whether a
previously compiled artifact can be reused from the storage root or whether the
raw model must be compiled again, and publishes fresh artifacts atomically.

Layout:
  <root>/
    <raw base name>             # compiled artifact (NamingStrategy.BASENAME)
    <stem>-<sha256[:16]><ext>   # compiled artifact (NamingStrategy.FINGERPRINT)
    .tmp-<uuid>                 # staging file, only present during a publish

Copyright (c) 2026 Yuta Wakui
Licensed under the MIT License.
"""

# File: src/compiled_model_cache/components/artifact_store.py
# Author: Yuta Wakui
# Date: 2026-10-19
# Description: Reuse-or-compile logic and atomic publish of compiled artifacts

import hashlib
import logging
import os
import shutil
import uuid
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from compiled_model_cache.components.runtime import ModelHandle, ModelRuntime
from compiled_model_cache.errors import CompilationError, LoadError, StorageError

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

STORAGE_DIR_ENV = "COMPILED_MODEL_CACHE_DIR"
TMP_PREFIX = ".tmp-"
DEFAULT_CHUNK_SIZE = 1_048_576  # 1 MiB


class NamingStrategy(str, Enum):
    """
    How a destination file name is derived from a raw model path.

    BASENAME reuses the raw file's base name, so two raw models with the same
    name share one destination. FINGERPRINT appends a digest of the raw bytes.
    """
    BASENAME = "basename"
    FINGERPRINT = "fingerprint"


def default_storage_root() -> Path:
    # Application-scoped directory shared by every run of this user.
    raw = os.getenv(STORAGE_DIR_ENV, "~/.compiled_model_cache/models")
    return Path(raw).expanduser()


def fingerprint_file(path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> str:
    """Return the SHA-256 hex digest of a file's contents."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()


def _safe_unlink(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        pass


class CompiledArtifactStore:
    """
    Reuse-or-compile store for compiled artifacts under one storage root.

    Parameters
    ----------
    runtime : ModelRuntime
        Runtime used to compile raw models and to probe existing artifacts.
    root : path, optional
        Storage root. Defaults to ``default_storage_root()``.
    naming : NamingStrategy
        Destination naming strategy.
    """

    def __init__(
        self,
        runtime: ModelRuntime,
        root: Optional[PathLike] = None,
        naming: NamingStrategy = NamingStrategy.BASENAME,
    ):
        self.runtime = runtime
        self.root = Path(root if root is not None else default_storage_root()).expanduser()
        self.naming = NamingStrategy(naming)

    def destination_for(self, raw: PathLike) -> Path:
        """
        Derive the persistent location of the compiled form of ``raw``.

        Parameters
        ----------
        raw : path
            Raw model path.

        Returns
        -------
        Path
            Destination path under the storage root.

        Raises
        ------
        CompilationError
            If FINGERPRINT naming is used and the raw file cannot be read.
        """
        raw = Path(raw)
        if self.naming is NamingStrategy.BASENAME:
            return self.root / raw.name

        try:
            digest = fingerprint_file(raw)
        except OSError as exc:
            raise CompilationError(f"Raw model could not be read: {raw}") from exc
        return self.root / f"{raw.stem}-{digest[:16]}{raw.suffix}"

    def probe(self, destination: Path) -> Optional[ModelHandle]:
        """
        Try to load an existing artifact. Returns None when the artifact is
        absent, corrupt or incompatible; never writes.
        """
        if not destination.exists():
            return None
        try:
            return self.runtime.load_model(destination)
        except LoadError as exc:
            logger.info("[ArtifactStore][STALE] destination=%s reason=%s", destination, exc)
            return None

    def publish(self, fresh: Path, destination: Path) -> Path:
        """
        Atomically move a freshly compiled artifact onto ``destination``.

        The artifact is staged next to the destination first so that the final
        ``os.replace`` stays on one filesystem. Concurrent readers see either the
        previous artifact or the complete new one.

        Raises
        ------
        StorageError
            If staging or the final replace fails.
        """
        staging = destination.parent / f"{TMP_PREFIX}{uuid.uuid4().hex}"
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(fresh), str(staging))
            os.replace(staging, destination)
        except OSError as exc:
            _safe_unlink(staging)
            _safe_unlink(Path(fresh))
            raise StorageError(f"Could not publish compiled artifact to {destination}: {exc}") from exc

        logger.debug("[ArtifactStore][PUBLISH] destination=%s", destination)
        return destination

    def compile_and_publish(self, raw: PathLike, destination: Optional[Path] = None) -> Path:
        """Compile ``raw`` and publish the result; returns the destination."""
        raw = Path(raw)
        if destination is None:
            destination = self.destination_for(raw)
        fresh = self.runtime.compile(raw)
        return self.publish(Path(fresh), destination)

    def obtain(self, raw: PathLike) -> Path:
        """
        Return a destination holding a loadable compiled form of ``raw``,
        compiling only when no usable artifact is persisted.

        Raises
        ------
        CompilationError
            If the raw model cannot be found or compiled.
        StorageError
            If the compiled artifact cannot be published.
        """
        raw = Path(raw)
        destination = self.destination_for(raw)

        if self.probe(destination) is not None:
            logger.debug("[ArtifactStore][REUSE] raw=%s destination=%s", raw, destination)
            return destination

        logger.info("[ArtifactStore][COMPILE] raw=%s destination=%s", raw, destination)
        return self.compile_and_publish(raw, destination)

    def __repr__(self) -> str:
        return f"CompiledArtifactStore(root={str(self.root)!r}, naming={self.naming.value!r})"
