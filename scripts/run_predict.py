import argparse
import json
import logging
from typing import Any, Dict, List

from compiled_model_cache import (
    FeatureInput,
    KeyedModelCache,
    PredictionOptions,
    build_store,
    configure_logging,
    load_cache_config,
    load_config,
)

logger = logging.getLogger("run_predict")

def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Predict with a cached compiled model")
    p.add_argument("--config", type=str, default="configs/config.yaml", help="Path to the config file")
    p.add_argument("--model", action="append", default=[], metavar="KEY=PATH",
                   help="Raw model to add (repeatable); merged over config 'models'")
    p.add_argument("--key", type=str, required=True, help="Key of the model to predict with")
    p.add_argument("--input", action="append", default=[], metavar="JSON",
                   help="JSON object of feature values (repeat for a batch)")
    p.add_argument("--no-proba", action="store_true", help="Skip class probabilities")
    return p.parse_args()

def _parse_models(cfg: Dict[str, Any], pairs: List[str]) -> Dict[str, str]:
    models = {str(k): str(v) for k, v in (cfg.get("models", {}) or {}).items()}
    for pair in pairs:
        key, sep, path = pair.partition("=")
        if not sep or not key or not path:
            raise ValueError(f"--model must look like KEY=PATH: {pair}")
        models[key] = path
    return models

def main() -> None:
    args = parse_args()

    cfg = load_config(args.config)
    cache_cfg = load_cache_config(cfg)
    configure_logging(cache_cfg.logging)

    models = _parse_models(cfg, args.model)
    if args.key not in models:
        raise ValueError(f"Unknown model key: {args.key} (known: {sorted(models)})")

    cache = KeyedModelCache.from_models(models, store=build_store(cache_cfg))
    logger.info("Loaded %d model(s) from %s", len(cache), cache.store.root)

    inputs = [FeatureInput(json.loads(s)) for s in args.input]
    if not inputs:
        raise ValueError("At least one --input is required.")

    options = PredictionOptions(include_probabilities=not args.no_proba)
    if len(inputs) == 1:
        outputs = [cache.predict(args.key, inputs[0], options=options)]
    else:
        outputs = cache.predict_batch(args.key, inputs, options=options)

    for output in outputs:
        print(json.dumps(output.to_dict(), ensure_ascii=False, default=str))

if __name__ == "__main__":
    main()
