import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

from .library.models import DecidedPolicy
from .similarity.hash import ConfigurationError, HashConfig

__all__ = ["ConfigurationError", "Settings"]

_ENV_PREFIX = "PHOTOCULL_"
_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class Settings:
    hash_width: int = 9
    hash_height: int = 8
    similarity_threshold: float = 0.9
    cluster_distance: int = 10
    max_workers: int = 1
    recursive: bool = True
    decided_policy: DecidedPolicy = DecidedPolicy.KEEP_OR_TRASH

    def __post_init__(self) -> None:
        if self.hash_width < 1 or self.hash_height < 1:
            raise ConfigurationError(
                f"Hash grid must be at least 1x1, got {self.hash_width}x{self.hash_height}"
            )
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ConfigurationError(
                f"Similarity threshold must be within [0, 1], got {self.similarity_threshold}"
            )
        if self.cluster_distance < 0:
            raise ConfigurationError(
                f"Cluster distance must be non-negative, got {self.cluster_distance}"
            )
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {self.max_workers}")
        self.decided_policy = DecidedPolicy(self.decided_policy)

    def hash_config(self) -> HashConfig:
        return HashConfig(width=self.hash_width, height=self.hash_height)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from ``PHOTOCULL_*`` environment variables.

        Each field maps to its upper-cased name, e.g. ``PHOTOCULL_HASH_WIDTH``.
        Unset variables keep their defaults.

        Raises:
            ConfigurationError: If a value cannot be parsed or is out of range
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for field in fields(cls):
            raw = environ.get(f"{_ENV_PREFIX}{field.name.upper()}")
            if raw is None:
                continue
            try:
                if field.name == "recursive":
                    overrides[field.name] = raw.strip().lower() in _TRUE_VALUES
                elif field.name == "decided_policy":
                    overrides[field.name] = DecidedPolicy(raw.strip().lower())
                elif field.name == "similarity_threshold":
                    overrides[field.name] = float(raw)
                else:
                    overrides[field.name] = int(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Invalid value for {_ENV_PREFIX}{field.name.upper()}: {raw!r}"
                ) from exc
        return cls(**overrides)
