from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

StrategyName = Literal[
    "cache-first",
    "network-first",
    "cache-only",
    "network-only",
    "stale-while-revalidate",
]
RuleKind = Literal["extension", "prefix", "contains", "scheme"]


class FileRotationSettings(BaseModel):
    """
    Date-based rotation settings (daily).

    This maps cleanly to Python's standard library TimedRotatingFileHandler behavior.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_count: int = 7


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = ""
    rotation: FileRotationSettings = FileRotationSettings()


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = "INFO"
    # Level for aiohttp's per-request access log while serving
    access_level: str = "WARNING"
    file: FileLoggingSettings = FileLoggingSettings()


class QuickLink(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    label: str
    href: str


class IndexerSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    root_dir: str = "."
    index_filename: str = "index.html"

    # Top-level directories that never get a listing page
    excluded_dirs: Sequence[str] = (".git", "node_modules", "scripts")
    # Directory names skipped anywhere during the root audit scan
    audit_excluded_dirs: Sequence[str] = ("node_modules",)

    largest_files_limit: int = Field(default=50, ge=0)

    site_title: str = "Doge Minna Assets"
    quick_links: Sequence[QuickLink] = (
        QuickLink(label="Models", href="/models/"),
        QuickLink(label="Music", href="/music/"),
        QuickLink(label="Sound Effects", href="/sfx/"),
        QuickLink(label="Textures", href="/textures/"),
        QuickLink(label="Worlds", href="/worlds/"),
        QuickLink(label="Manifests", href="/manifests/"),
    )


class StrategyRuleSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: RuleKind
    pattern: str
    strategy: StrategyName


_CACHE_FIRST_EXTENSIONS = (
    ".js", ".css", ".wasm", ".glb",
    ".png", ".jpg", ".jpeg", ".webp", ".svg",
    ".mp3", ".wav", ".ogg",
)


def _default_strategy_rules() -> tuple[StrategyRuleSettings, ...]:
    rules = [
        StrategyRuleSettings(kind="extension", pattern=ext, strategy="cache-first")
        for ext in _CACHE_FIRST_EXTENSIONS
    ]
    rules.append(StrategyRuleSettings(kind="prefix", pattern="/api/", strategy="network-first"))
    rules.append(StrategyRuleSettings(kind="scheme", pattern="ws", strategy="network-only"))
    rules.append(StrategyRuleSettings(kind="scheme", pattern="wss", strategy="network-only"))
    return tuple(rules)


class WorkerSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    # Public origin the worker is registered on. Must not be a dev host, or caching is off
    origin: str = "https://assets.example.com"
    # Where network requests for the public origin are actually sent
    upstream_url: str = "http://127.0.0.1:8000"

    cache_prefix: str = "doge-minna"
    cache_version: str = "2.0.0"

    dev_hosts: Sequence[str] = ("localhost", "127.0.0.1")
    dev_host_suffixes: Sequence[str] = (".local",)

    owned_assets_prefix: str = "/assets/"

    static_assets: Sequence[str] = ("/", "/index.html", "/doge.svg", "/manifest.json", "/sw.js")
    critical_assets: Sequence[str] = (
        "/assets/vendor-three",
        "/assets/index",
        "/assets/game-stores",
        "/assets/game-services",
    )

    strategies: Sequence[StrategyRuleSettings] = Field(default_factory=_default_strategy_rules)
    default_strategy: StrategyName = "network-first"

    skip_waiting_on_install: bool = True
    fetch_timeout_seconds: Optional[float] = None

    # Empty means in-memory caches
    cache_dir: str = ""


class ServerSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = "127.0.0.1"
    port: int = 8080


class AppConfig(BaseModel):
    """
    Effective runtime configuration after applying all precedence rules.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    logging: LoggingSettings = LoggingSettings()
    indexer: IndexerSettings = IndexerSettings()
    worker: WorkerSettings = WorkerSettings()
    server: ServerSettings = ServerSettings()


@dataclass(frozen=True, slots=True)
class ConfigLoadRequest:
    """
    Optional inputs for a configuration loader.

    Implementations may use these to control where configuration is read from.
    """

    yaml_path: str = "config/config.yaml"
    env_prefix: str = "ASSET_SITE__"
    dotenv_path: Optional[str] = ".env"
