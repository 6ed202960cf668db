"""
Configuration classes for the flow traversal engine.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from .colors import NODE_HEX_COLORS
from .exceptions import FlowConfigurationError


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise FlowConfigurationError(
            f"Environment variable {name} must be a number, got '{raw}'",
            config_field=name,
            config_value=raw,
        )


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CacheConfig:
    """Time-to-live policy for a traversal cache layer."""
    ttl_s: float = 1.0
    # Entries older than ttl_s * sweep_multiplier are dropped on every write
    sweep_multiplier: float = 2.0
    enabled: bool = True

    def __post_init__(self):
        if self.ttl_s <= 0:
            raise FlowConfigurationError(
                "Cache TTL must be positive",
                config_field="ttl_s",
                config_value=self.ttl_s,
            )
        if self.sweep_multiplier < 1:
            raise FlowConfigurationError(
                "Sweep multiplier must be at least 1 so fresh entries survive a sweep",
                config_field="sweep_multiplier",
                config_value=self.sweep_multiplier,
            )

    @property
    def stale_after_s(self) -> float:
        return self.ttl_s * self.sweep_multiplier


@dataclass
class EnrichmentConfig:
    """Configuration for the data enrichment adapter."""
    cache: CacheConfig = field(default_factory=CacheConfig)
    max_concurrency: int = 8

    def __post_init__(self):
        if self.max_concurrency < 1:
            raise FlowConfigurationError(
                "Enrichment concurrency must be at least 1",
                config_field="max_concurrency",
                config_value=self.max_concurrency,
            )


@dataclass
class EngineConfig:
    """
    Top-level configuration for FlowTraversalEngine.

    Attributes:
        basic_cache: TTL policy for plain traversal results
        enrichment: Enrichment adapter settings (own cache, concurrency)
        palette: Ordered colors handed out to new process nodes
        connected_opacity: Opacity of nodes wired start-to-end
        disconnected_opacity: Opacity of every other process node
    """
    basic_cache: CacheConfig = field(default_factory=CacheConfig)
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)
    palette: List[str] = field(default_factory=lambda: list(NODE_HEX_COLORS))
    connected_opacity: float = 1.0
    disconnected_opacity: float = 0.7

    def __post_init__(self):
        if not self.palette:
            raise FlowConfigurationError(
                "Color palette cannot be empty",
                config_field="palette",
                config_value=self.palette,
            )
        for name in ("connected_opacity", "disconnected_opacity"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise FlowConfigurationError(
                    f"{name} must be between 0 and 1",
                    config_field=name,
                    config_value=value,
                )

    @classmethod
    def from_env(cls, palette: Optional[List[str]] = None) -> 'EngineConfig':
        """
        Create an EngineConfig from FLOWGRAPH_* environment variables.

        Recognized variables:
            FLOWGRAPH_CACHE_TTL_S: basic cache TTL in seconds
            FLOWGRAPH_ENRICHMENT_TTL_S: enhanced cache TTL in seconds
            FLOWGRAPH_ENRICHMENT_CONCURRENCY: max concurrent lookups
            FLOWGRAPH_CACHE_ENABLED: set to 0/false to disable both caches
        """
        enabled = _env_bool("FLOWGRAPH_CACHE_ENABLED", True)
        basic_cache = CacheConfig(
            ttl_s=_env_float("FLOWGRAPH_CACHE_TTL_S", 1.0),
            enabled=enabled,
        )
        enrichment = EnrichmentConfig(
            cache=CacheConfig(
                ttl_s=_env_float("FLOWGRAPH_ENRICHMENT_TTL_S", 1.0),
                enabled=enabled,
            ),
            max_concurrency=int(_env_float("FLOWGRAPH_ENRICHMENT_CONCURRENCY", 8)),
        )
        kwargs = {"basic_cache": basic_cache, "enrichment": enrichment}
        if palette is not None:
            kwargs["palette"] = list(palette)
        return cls(**kwargs)
