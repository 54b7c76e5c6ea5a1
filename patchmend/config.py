"""Tunable knobs for the reconciliation engine (defaults + dict loading)."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional, Tuple


@dataclass
class EngineConfig:
    # FuzzyLocator
    search_window: int = 50
    accept_ratio: float = 0.5
    exact_weight: float = 1.0
    loose_weight: float = 0.8

    # Standard tier
    ignore_whitespace: bool = True
    native_timeout: float = 60.0

    # Regenerate tier
    regenerate_with_fuzzy: bool = False
    max_context_files: int = 10
    source_extensions: Tuple[str, ...] = field(
        default_factory=lambda: (".js", ".ts", ".jsx", ".tsx", ".py")
    )

    # Fuzzy tier writes
    backup_ext: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "EngineConfig":
        """Build a config from a plain dict, ignoring keys it does not know."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        if "source_extensions" in kwargs:
            kwargs["source_extensions"] = tuple(kwargs["source_extensions"])
        cfg = cls(**kwargs)
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if self.search_window < 0:
            raise ValueError("search_window must be >= 0")
        if not 0.0 <= self.accept_ratio <= 1.0:
            raise ValueError("accept_ratio must be within [0, 1]")
        if self.loose_weight > self.exact_weight:
            raise ValueError("loose_weight cannot exceed exact_weight")
        if self.native_timeout <= 0:
            raise ValueError("native_timeout must be positive")


def resolve_config(config: EngineConfig | Mapping[str, Any] | None) -> EngineConfig:
    if isinstance(config, EngineConfig):
        return config
    return EngineConfig.from_mapping(config)
