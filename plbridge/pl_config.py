"""
Session configuration.

Configuration comes from a YAML mapping with kebab-case keys:

    dangerous-functions: ask        # deny | allow | ask
    search-chunk-size: 65536
    debug: false
    http:
      timeout: 5.0
      retries: 2
      backoff: 0.2
      headers: {User-Agent: plbridge}

The file is taken from the explicit path, else $PLBRIDGE_CONFIG. A set
$PLBRIDGE_DEBUG turns debug tracing on. Explicit overrides win over both.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

import yaml

PERMISSION_MODES = ("deny", "allow", "ask")


@dataclass(frozen=True)
class BridgeConfig:
    dangerous_functions: str = "deny"
    http_timeout: float = 5.0
    http_retries: int = 2
    http_backoff: float = 0.2
    http_headers: Dict[str, str] = field(default_factory=dict)
    search_chunk_size: int = 0x10000
    debug: bool = False

    def __post_init__(self):
        if self.dangerous_functions not in PERMISSION_MODES:
            raise ValueError(
                f"dangerous-functions must be one of {', '.join(PERMISSION_MODES)}, "
                f"got {self.dangerous_functions!r}"
            )
        if self.search_chunk_size < 1:
            raise ValueError("search-chunk-size must be positive")
        if self.http_retries < 0:
            raise ValueError("http retries must not be negative")

    def http_options(self) -> Dict[str, Any]:
        return {
            "timeout": self.http_timeout,
            "retries": self.http_retries,
            "backoff": self.http_backoff,
            "headers": dict(self.http_headers),
        }


_TOP_LEVEL_KEYS = {
    "dangerous-functions": "dangerous_functions",
    "search-chunk-size": "search_chunk_size",
    "debug": "debug",
}
_HTTP_KEYS = {
    "timeout": "http_timeout",
    "retries": "http_retries",
    "backoff": "http_backoff",
    "headers": "http_headers",
}


def config_from_mapping(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Translate a kebab-case mapping into BridgeConfig keyword arguments."""
    out: Dict[str, Any] = {}
    for key, value in (data or {}).items():
        if key == "http":
            if not isinstance(value, dict):
                raise ValueError("'http' must be a mapping")
            for hkey, hvalue in value.items():
                if hkey not in _HTTP_KEYS:
                    raise ValueError(f"unknown http config key: {hkey!r}")
                out[_HTTP_KEYS[hkey]] = hvalue
            continue
        if key not in _TOP_LEVEL_KEYS:
            raise ValueError(f"unknown config key: {key!r}")
        out[_TOP_LEVEL_KEYS[key]] = value

    # Normalize scalar types the YAML may give us as strings or ints
    if "dangerous_functions" in out:
        out["dangerous_functions"] = str(out["dangerous_functions"]).strip().lower()
    for name, conv in (("http_timeout", float), ("http_backoff", float),
                       ("http_retries", int), ("search_chunk_size", int)):
        if name in out:
            try:
                out[name] = conv(out[name])
            except (TypeError, ValueError):
                raise ValueError(f"invalid value for {name.replace('_', '-')}: {out[name]!r}") from None
    if "debug" in out:
        out["debug"] = bool(out["debug"])
    if "http_headers" in out:
        out["http_headers"] = {str(k): str(v) for k, v in (out["http_headers"] or {}).items()}
    return out


def load_config(path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> BridgeConfig:
    path = path or os.environ.get("PLBRIDGE_CONFIG")
    data: Dict[str, Any] = {}
    if path:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
        if loaded is not None and not isinstance(loaded, dict):
            raise ValueError(f"config file {path} must contain a mapping")
        data = loaded or {}

    kwargs = config_from_mapping(data)
    if os.environ.get("PLBRIDGE_DEBUG"):
        kwargs["debug"] = True
    config = BridgeConfig(**kwargs)
    if overrides:
        config = replace(config, **config_from_mapping(overrides))
    return config
