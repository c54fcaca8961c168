"""
Dataclass configuration loaded from an optional YAML file.

Each top-level YAML mapping overrides the matching section field by
field; sections and keys the file leaves out keep their defaults, and
unknown top-level keys are ignored. Sections:
- fetch: how the library website is contacted
- references: how cross-references are resolved
- pages: how this week's pages are found from the site root
- output: how JSON results are written
- logging: where log records go
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml


@dataclass
class FetchConfig:
    """HTTP settings for the library website.

    Attributes:
        base_url: Site root that reference links are joined to (env WOL_BASE_URL wins)
        timeout_seconds: Per-request timeout of the HTTP client
        retries: Extra attempts for page downloads; reference payloads are never retried
        trust_env: Honour proxy variables from the environment
        user_agent: Browser User-Agent sent with every request
        accept_language: Accept-Language sent with every request
    """

    base_url: str = "https://wol.jw.org"
    timeout_seconds: float = 20.0
    retries: int = 2
    trust_env: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:126.0) "
        "Gecko/20100101 Firefox/126.0"
    )
    accept_language: str = "es-ES,es;q=0.5"


@dataclass
class ReferenceConfig:
    """Cross-reference resolution settings.

    Attributes:
        href_prefix_length: Characters stripped from an anchor href before joining it to base_url
        watchtower_marker: articleClasses token identifying Watchtower payloads
        bible_marker: articleClasses token identifying Bible study edition payloads
        fetch_timeout_seconds: Hard budget for a single reference fetch
        max_concurrency: Upper bound on in-flight reference fetches (None for unbounded)
    """

    href_prefix_length: int = 3
    watchtower_marker: str = "pub-w"
    bible_marker: str = "pub-nwtsty"
    fetch_timeout_seconds: float = 30.0
    max_concurrency: int | None = None


@dataclass
class PagesConfig:
    """Selectors for walking from the site root to this week's pages.

    Attributes:
        language_link_selector: `<link>` on the site root pointing to the language landing page
        today_nav_selector: Link on the language landing page to this week's meeting page
        watchtower_link_selector: Link on the meeting page to the Watchtower study article
        bible_read_selector: Anchors of the weekly Bible reading on the meeting page
    """

    language_link_selector: str = 'link[hreflang="es"]'
    today_nav_selector: str = "#menuToday .todayNav"
    watchtower_link_selector: str = ".todayItem.pub-w .itemData a"
    bible_read_selector: str = "#p2 a"


@dataclass
class OutputConfig:
    indent: int | None = 2
    ensure_ascii: bool = False


@dataclass
class LoggingConfig:
    """Log destinations.

    Attributes:
        level: Threshold name such as "DEBUG" or "WARNING" (env WOL_LOG_LEVEL beats the file,
            a --log-level flag beats both)
        console: Emit records through rich on stderr
        file: Also write records to `filename` next to the output file
        format: "jsonl" for one JSON object per record, anything else for plain text
        filename: Log file name
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "run.jsonl"


@dataclass
class AppConfig:
    fetch: FetchConfig = field(default_factory=FetchConfig)
    references: ReferenceConfig = field(default_factory=ReferenceConfig)
    pages: PagesConfig = field(default_factory=PagesConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


DEFAULT_CONFIG = AppConfig()

_SECTIONS: dict[str, type] = {
    "fetch": FetchConfig,
    "references": ReferenceConfig,
    "pages": PagesConfig,
    "output": OutputConfig,
    "logging": LoggingConfig,
}


def load_config(path: str | None) -> AppConfig:
    """Read a YAML config file, or return a fresh default config when path is empty.

    WOL_LOG_LEVEL from the environment replaces the file's logging level;
    callers apply command-line overrides to the returned config afterwards.

    Raises:
        ValueError: If a section is not a mapping, names an unknown key, or
            sets an out-of-range value
    """
    raw: Any = {}
    if path:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Config file {path} must contain a mapping at the top level.")

    cfg = _merge_config(DEFAULT_CONFIG, raw)
    cfg.logging.level = os.getenv("WOL_LOG_LEVEL") or cfg.logging.level
    return cfg


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Overlay raw section mappings onto a copy of base."""
    merged: dict[str, Any] = {}
    for name, section_type in _SECTIONS.items():
        values = asdict(getattr(base, name))
        override = raw.get(name)
        if override is not None:
            if not isinstance(override, dict):
                raise ValueError(f"Config section [{name}] must be a mapping.")
            unknown = set(override) - set(values)
            if unknown:
                raise ValueError(f"Unknown keys in config section [{name}]: {', '.join(sorted(unknown))}")
            values.update(override)
        merged[name] = section_type(**values)

    cfg = AppConfig(**merged)
    _validate(cfg)
    return cfg


def _validate(cfg: AppConfig) -> None:
    if cfg.fetch.retries < 0:
        raise ValueError("fetch.retries must not be negative.")
    if cfg.references.fetch_timeout_seconds <= 0:
        raise ValueError("references.fetch_timeout_seconds must be positive.")
    if cfg.references.max_concurrency is not None and cfg.references.max_concurrency < 1:
        raise ValueError("references.max_concurrency must be at least 1 when set.")
    if cfg.references.href_prefix_length < 0:
        raise ValueError("references.href_prefix_length must not be negative.")


def get_base_url(cfg: FetchConfig) -> str:
    """Site root without a trailing slash; WOL_BASE_URL overrides the config."""
    return (os.getenv("WOL_BASE_URL") or cfg.base_url).rstrip("/")

