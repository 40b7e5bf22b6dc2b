"""
Settings for the lampstand engine.

Values come from the environment, optionally seeded from a .env file.
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

from .errors import ConfigError
from .utils.normalize import Normalizer
from .utils.scoring import DEFAULT_B, DEFAULT_K1

T = TypeVar("T")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(value: str) -> bool:
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _env(name: str, default: T, parse: Callable[[str], T]) -> T:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return parse(raw)
    except ValueError as e:
        raise ConfigError(f"{name}: {e}") from e


def default_cache_dir() -> Path:
    xdg = os.getenv("XDG_CACHE_HOME")
    base = Path(xdg) if xdg else Path.home() / ".cache"
    return base / "lampstand"


@dataclass(frozen=True)
class Settings:
    data_dir: Path = Path("data")
    cache_dir: Path = field(default_factory=default_cache_dir)
    translation: str = "kjv"
    k1: float = DEFAULT_K1
    b: float = DEFAULT_B
    stemming: bool = False
    fold_diacritics: bool = True
    drop_stopwords: bool = True
    phrase_boost: float = 0.0
    fuzzy_max_edits: int = 2
    fuzzy_margin: int = 1
    limit: int = 10
    log_level: str = "WARNING"

    def __post_init__(self):
        if self.k1 < 0:
            raise ConfigError(f"LAMPSTAND_BM25_K1 must be >= 0, got {self.k1}")
        if not 0.0 <= self.b <= 1.0:
            raise ConfigError(f"LAMPSTAND_BM25_B must be in [0, 1], got {self.b}")
        if self.phrase_boost < 0:
            raise ConfigError(f"LAMPSTAND_PHRASE_BOOST must be >= 0, got {self.phrase_boost}")
        if self.fuzzy_max_edits < 0 or self.fuzzy_margin < 1:
            raise ConfigError("fuzzy matching needs max edits >= 0 and margin >= 1")
        if self.limit < 1:
            raise ConfigError(f"LAMPSTAND_LIMIT must be >= 1, got {self.limit}")

    @property
    def normalizer(self) -> Normalizer:
        return Normalizer(
            stemming=self.stemming,
            fold_diacritics=self.fold_diacritics,
            drop_stopwords=self.drop_stopwords,
        )

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Read settings from LAMPSTAND_* variables (after loading .env)."""
        load_dotenv(env_file)
        defaults = cls()
        return cls(
            data_dir=_env("LAMPSTAND_DATA_DIR", defaults.data_dir, Path),
            cache_dir=_env("LAMPSTAND_CACHE_DIR", defaults.cache_dir, Path),
            translation=_env("LAMPSTAND_TRANSLATION", defaults.translation, lambda s: s.strip().lower()),
            k1=_env("LAMPSTAND_BM25_K1", defaults.k1, float),
            b=_env("LAMPSTAND_BM25_B", defaults.b, float),
            stemming=_env("LAMPSTAND_STEMMING", defaults.stemming, _parse_bool),
            fold_diacritics=_env("LAMPSTAND_FOLD_DIACRITICS", defaults.fold_diacritics, _parse_bool),
            drop_stopwords=_env("LAMPSTAND_STOPWORDS", defaults.drop_stopwords, _parse_bool),
            phrase_boost=_env("LAMPSTAND_PHRASE_BOOST", defaults.phrase_boost, float),
            fuzzy_max_edits=_env("LAMPSTAND_FUZZY_MAX_EDITS", defaults.fuzzy_max_edits, int),
            fuzzy_margin=_env("LAMPSTAND_FUZZY_MARGIN", defaults.fuzzy_margin, int),
            limit=_env("LAMPSTAND_LIMIT", defaults.limit, int),
            log_level=_env("LAMPSTAND_LOG_LEVEL", defaults.log_level, lambda s: s.strip().upper()),
        )


def configure_logging(level: str = "WARNING") -> None:
    """Install one stderr handler on the root logger (once) and set the level."""
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.WARNING))
