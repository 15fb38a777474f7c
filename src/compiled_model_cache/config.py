# -*- coding: utf-8 -*-

"""
Configuration loading for the compiled model cache.
Settings are read from a YAML file and converted into frozen dataclasses.

Copyright (c) 2026 Yuta Wakui
Licensed under the MIT License.
"""

# File: src/compiled_model_cache/config.py
# Author: Yuta Wakui
# Date: 2026-10-19
# Description: YAML configuration, storage settings and logging setup

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from compiled_model_cache.components.artifact_store import (
    CompiledArtifactStore,
    NamingStrategy,
    default_storage_root,
)
from compiled_model_cache.components.runtime import ModelRuntime, SklearnRuntime

DEFAULT_CONFIG_PATH = "configs/config.yaml"
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# ----------------------------
# Config dataclasses
# ----------------------------

@dataclass(frozen=True)
class StorageConfig:
    """Where compiled artifacts are persisted and how they are named."""
    root: Path = field(default_factory=default_storage_root)
    naming: NamingStrategy = NamingStrategy.BASENAME

@dataclass(frozen=True)
class LoggingConfig:
    """Logging settings applied by scripts."""
    level: str = "WARNING"
    format: str = DEFAULT_LOG_FORMAT

@dataclass(frozen=True)
class CacheConfig:
    """Overall cache configuration."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

# ----------------------------
# Loaders
# ----------------------------

def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Parameters
    ----------
    config_path : str
        Path to the configuration file (default: "configs/config.yaml").

    Returns
    -------
    cfg : Dict[str, Any]
        Parsed configuration; an empty file gives an empty dict.
    """
    with open(config_path, 'r', encoding='utf-8') as f:
        cfg = yaml.safe_load(f)
    return cfg or {}

def load_storage_config(cfg: Dict[str, Any]) -> StorageConfig:
    storage = cfg.get("storage", {}) or {}
    if not isinstance(storage, dict):
        raise ValueError("storage must be a mapping.")

    naming = str(storage.get("naming", NamingStrategy.BASENAME.value)).lower()
    try:
        strategy = NamingStrategy(naming)
    except ValueError:
        choices = [s.value for s in NamingStrategy]
        raise ValueError(f"storage.naming must be one of {choices}: {naming}") from None

    root = storage.get("root")
    return StorageConfig(
        root=Path(str(root)).expanduser() if root else default_storage_root(),
        naming=strategy,
    )

def load_logging_config(cfg: Dict[str, Any]) -> LoggingConfig:
    log = cfg.get("logging", {}) or {}
    level = str(log.get("level", "WARNING")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"logging.level is not a valid level name: {level}")
    return LoggingConfig(level=level, format=str(log.get("format", DEFAULT_LOG_FORMAT)))

def load_cache_config(cfg: Dict[str, Any]) -> CacheConfig:
    return CacheConfig(
        storage=load_storage_config(cfg),
        logging=load_logging_config(cfg),
    )

# ----------------------------
# Builders
# ----------------------------

def configure_logging(cfg: LoggingConfig) -> None:
    logging.basicConfig(level=cfg.level, format=cfg.format)

def build_store(cfg: CacheConfig, runtime: Optional[ModelRuntime] = None) -> CompiledArtifactStore:
    """Create an artifact store from configuration (scikit-learn runtime by default)."""
    return CompiledArtifactStore(
        runtime=runtime if runtime is not None else SklearnRuntime(),
        root=cfg.storage.root,
        naming=cfg.storage.naming,
    )
