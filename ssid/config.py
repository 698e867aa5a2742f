# ssid/config.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml

DETECTOR_KEYS = ("tcrit_u", "tcrit_l", "n", "ewma", "stp")


def _read_yaml(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(a)
    for k, v in b.items():
        # one level deep so a profile can override a single detector knob
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = {**out[k], **v}
        else:
            out[k] = v
    return out


def _postprocess(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten the `detector:` section onto the top-level keys the code reads.
    Values are not validated here; the filter rejects bad ones.
    """
    det = cfg.get("detector")
    if isinstance(det, dict):
        for k in DETECTOR_KEYS:
            if k not in cfg and k in det:
                cfg[k] = det[k]
    return cfg


def load_config(
    config: str | os.PathLike | None = None,
    profile: str | None = None,
) -> Dict[str, Any]:
    """
    Build the detector/service settings dict.

    A file passed as `config` is used on its own (missing -> FileNotFoundError);
    so is the file named by $SSID_CONFIG when it exists. Otherwise the bundled
    config/default.yaml is read and, if a profile is requested (argument or
    $SSID_PROFILE), config/profiles/<name>.yaml is laid over it one level deep,
    so a profile may change a single `detector:` knob and keep the rest.
    """
    repo_root = Path(__file__).resolve().parents[1]

    if config:
        p = Path(config)
        if not p.is_file():
            raise FileNotFoundError(f"config not found: {p}")
        return _postprocess(_read_yaml(p))

    env_path = os.getenv("SSID_CONFIG")
    if env_path:
        p = Path(env_path)
        if p.is_file():
            return _postprocess(_read_yaml(p))

    cfg: Dict[str, Any] = {}

    fallback = repo_root / "config" / "default.yaml"
    if fallback.is_file():
        cfg = _merge(cfg, _read_yaml(fallback))

    prof = profile or os.getenv("SSID_PROFILE")
    if prof:
        p = repo_root / "config" / "profiles" / f"{prof}.yaml"
        if not p.is_file():
            raise FileNotFoundError(f"profile not found: {p}")
        cfg = _merge(cfg, _read_yaml(p))

    return _postprocess(cfg)
