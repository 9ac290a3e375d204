"""
Unified Run Configuration
=========================
Single source of truth for every harvest design parameter.

Values are layered, lowest precedence first:

1. ``_DEFAULTS`` below
2. ``WIKIHARVEST_<FIELD>`` environment variables (``from_env``)
3. CLI flags (``from_cli_args``)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional, Tuple

from .utils import join_url

logger = logging.getLogger(__name__)

ENV_PREFIX = "WIKIHARVEST_"

ON_ERROR_CHOICES = ("fail", "skip")


# ---------------------------------------------------------------------------
# Canonical defaults: the ONLY place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "base_url": "https://wiki.facepunch.com",
    "index_path": "/gmod/",
    "section_label": "Developer Reference",
    "raw_suffix": "?format=text",       # raw-source view of a wiki page
    "output_path": "dist/functions.json",
    "concurrency": 4,                   # in-flight entity fetches
    "max_retries": 100,                 # per HTTP request
    "retry_base_delay": 0.1,            # seconds, doubled per attempt
    "retry_max_delay": 60.0,
    "timeout_seconds": 30.0,            # per HTTP request
    "user_agent": "wikiharvest/1.0 (+https://github.com/wikiharvest/wikiharvest)",
    "on_error": "fail",                 # "fail" | "skip"
    "inline_tags": ("page",),
}


@dataclass
class HarvestRunConfig:
    """
    Configuration consumed by discovery, harvesting and the pipeline driver.

    Populate via:
      - ``HarvestRunConfig()``                   → all defaults
      - ``HarvestRunConfig(concurrency=2)``      → override one value
      - ``HarvestRunConfig.from_env()``          → defaults + environment
      - ``HarvestRunConfig.from_cli_args(ns)``   → environment + argparse flags
    """

    # ---- Source site ----
    base_url: str = _DEFAULTS["base_url"]
    index_path: str = _DEFAULTS["index_path"]
    section_label: str = _DEFAULTS["section_label"]
    raw_suffix: str = _DEFAULTS["raw_suffix"]

    # ---- Output ----
    output_path: str = _DEFAULTS["output_path"]

    # ---- Harvest ----
    concurrency: int = _DEFAULTS["concurrency"]
    on_error: str = _DEFAULTS["on_error"]
    inline_tags: Tuple[str, ...] = _DEFAULTS["inline_tags"]

    # ---- Transport ----
    max_retries: int = _DEFAULTS["max_retries"]
    retry_base_delay: float = _DEFAULTS["retry_base_delay"]
    retry_max_delay: float = _DEFAULTS["retry_max_delay"]
    timeout_seconds: float = _DEFAULTS["timeout_seconds"]
    user_agent: str = _DEFAULTS["user_agent"]

    @property
    def index_url(self) -> str:
        return join_url(self.base_url, self.index_path)

    def validate(self) -> "HarvestRunConfig":
        """Raise ``ValueError`` for values the pipeline cannot run with."""
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1 (got {self.concurrency})")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0 (got {self.max_retries})")
        if self.on_error not in ON_ERROR_CHOICES:
            raise ValueError(
                f"on_error must be one of {', '.join(ON_ERROR_CHOICES)} (got {self.on_error!r})"
            )
        if not self.base_url.startswith(('http://', 'https://')):
            raise ValueError(f"base_url must be an http(s) URL (got {self.base_url!r})")
        return self

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HarvestRunConfig":
        """Build config from ``WIKIHARVEST_*`` environment variables."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            default = _DEFAULTS[f.name]
            try:
                if isinstance(default, tuple):
                    overrides[f.name] = tuple(t.strip() for t in raw.split(',') if t.strip())
                elif isinstance(default, int):
                    overrides[f.name] = int(raw)
                elif isinstance(default, float):
                    overrides[f.name] = float(raw)
                else:
                    overrides[f.name] = raw
            except ValueError as e:
                raise ValueError(f"Invalid {ENV_PREFIX}{f.name.upper()}={raw!r}: {e}") from e
        return cls(**overrides)

    @classmethod
    def from_cli_args(cls, args, base: Optional["HarvestRunConfig"] = None) -> "HarvestRunConfig":
        """Build config from an argparse Namespace (``__main__.py``).

        Flags left unset (``None``) keep the value from ``base``, which
        defaults to ``from_env()``.
        """
        cfg = base if base is not None else cls.from_env()
        overrides = {}
        for name, attr in (
            ("base_url", "base_url"),
            ("index_path", "index_path"),
            ("section_label", "section_label"),
            ("raw_suffix", "raw_suffix"),
            ("output_path", "output"),
            ("concurrency", "concurrency"),
            ("on_error", "on_error"),
            ("max_retries", "max_retries"),
            ("timeout_seconds", "timeout"),
        ):
            value = getattr(args, attr, None)
            if value is not None:
                overrides[name] = value
        return replace(cfg, **overrides)

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self) -> None:
        """Emit a structured summary to the logger."""
        logger.info("=" * 60)
        logger.info("HARVEST RUN CONFIG")
        logger.info("=" * 60)
        logger.info(f"  Index URL:        {self.index_url}")
        logger.info(f"  Section:          {self.section_label}")
        logger.info(f"  Raw Suffix:       {self.raw_suffix}")
        logger.info(f"  Output:           {self.output_path}")
        logger.info(f"  Concurrency:      {self.concurrency}")
        logger.info(f"  On Error:         {self.on_error}")
        logger.info(f"  Max Retries:      {self.max_retries} (backoff {self.retry_base_delay}s..{self.retry_max_delay}s)")
        logger.info(f"  Timeout:          {self.timeout_seconds}s per request")
        logger.info("=" * 60)
