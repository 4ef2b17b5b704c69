"""
Configuration for the MCP Router.

Contains ranking weights, cache limits, collaborator timeouts
and the execution mode (mock or real invocation).
"""

from dataclasses import dataclass, field
from typing import List, Optional
import os
import yaml


@dataclass
class RankingConfig:
    """Weights of the candidate scoring formula and search bounds."""
    category_exact_weight: float = 10.0
    category_fuzzy_weight: float = 5.0
    capability_tool_weight: float = 3.0
    name_weight: float = 5.0
    description_weight: float = 3.0
    tool_weight: float = 2.0
    tag_weight: float = 1.0
    popularity_factor: float = 2.0
    verified_bonus: float = 10.0
    max_candidates: int = 3      # Providers tried by the fallback chain
    max_alternates: int = 2      # Alternates reported in the response
    options_limit: int = 10      # Providers listed for present_options


@dataclass
class CacheConfig:
    """Configuration for the response cache."""
    ttl_seconds: float = 300.0   # 5 minutes
    max_entries: int = 1000
    single_flight: bool = True


@dataclass
class CatalogConfig:
    """Where provider records come from."""
    source: str = "memory"       # memory, http
    path: Optional[str] = None   # YAML/JSON file for the in-memory catalog
    base_url: Optional[str] = None
    timeout_seconds: float = 5.0


@dataclass
class ExecutionConfig:
    """How selected providers are invoked."""
    invoker: str = "mock"        # mock, http
    strict: bool = False         # Surface upstream errors instead of degrading
    timeout_seconds: float = 45.0
    require_verified: bool = True


@dataclass
class StateConfig:
    """Configuration for the audit trail."""
    audit_enabled: bool = False
    audit_log_path: str = "state/router_audit.log"


@dataclass
class Config:
    """Master configuration for the MCP Router."""
    ranking: RankingConfig = field(default_factory=RankingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    state: StateConfig = field(default_factory=StateConfig)

    # Environment
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    @classmethod
    def load_from_file(cls, path: str) -> "Config":
        """Load configuration from a YAML file."""
        with open(path, 'r', encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        config = cls()

        if 'ranking' in data:
            config.ranking = RankingConfig(**data['ranking'])
        if 'cache' in data:
            config.cache = CacheConfig(**data['cache'])
        if 'catalog' in data:
            config.catalog = CatalogConfig(**data['catalog'])
        if 'execution' in data:
            config.execution = ExecutionConfig(**data['execution'])
        if 'state' in data:
            config.state = StateConfig(**data['state'])

        config.environment = data.get('environment', 'development')
        config.debug = data.get('debug', False)
        config.log_level = data.get('log_level', 'INFO')

        return config

    @classmethod
    def load_from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        config = cls()

        if os.getenv('ROUTER_CACHE_TTL'):
            config.cache.ttl_seconds = float(os.getenv('ROUTER_CACHE_TTL'))
        if os.getenv('ROUTER_CACHE_MAX_ENTRIES'):
            config.cache.max_entries = int(os.getenv('ROUTER_CACHE_MAX_ENTRIES'))
        if os.getenv('ROUTER_MAX_CANDIDATES'):
            config.ranking.max_candidates = int(os.getenv('ROUTER_MAX_CANDIDATES'))

        # Collaborators
        config.catalog.source = os.getenv('ROUTER_CATALOG_SOURCE', config.catalog.source)
        config.catalog.path = os.getenv('ROUTER_CATALOG_PATH', config.catalog.path)
        config.catalog.base_url = os.getenv('ROUTER_CATALOG_URL', config.catalog.base_url)
        config.execution.invoker = os.getenv('ROUTER_INVOKER', config.execution.invoker)
        if os.getenv('ROUTER_STRICT'):
            config.execution.strict = os.getenv('ROUTER_STRICT').lower() == 'true'
        if os.getenv('ROUTER_REQUIRE_VERIFIED'):
            config.execution.require_verified = (
                os.getenv('ROUTER_REQUIRE_VERIFIED').lower() == 'true'
            )

        if os.getenv('ROUTER_AUDIT_LOG'):
            config.state.audit_enabled = True
            config.state.audit_log_path = os.getenv('ROUTER_AUDIT_LOG')

        config.environment = os.getenv('ENVIRONMENT', 'development')
        config.debug = os.getenv('DEBUG', 'false').lower() == 'true'
        config.log_level = os.getenv('LOG_LEVEL', 'INFO')

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if self.ranking.max_candidates < 1:
            errors.append("max_candidates must be at least 1")
        if self.ranking.max_alternates < 0:
            errors.append("max_alternates cannot be negative")
        if self.cache.ttl_seconds <= 0:
            errors.append("cache ttl_seconds must be positive")
        if self.cache.max_entries < 1:
            errors.append("cache max_entries must be at least 1")
        if self.catalog.source not in ("memory", "http"):
            errors.append(f"unknown catalog source: {self.catalog.source}")
        if self.catalog.source == "http" and not self.catalog.base_url:
            errors.append("catalog base_url is required for the http source")
        if self.execution.invoker not in ("mock", "http"):
            errors.append(f"unknown invoker: {self.execution.invoker}")
        if self.catalog.timeout_seconds <= 0 or self.execution.timeout_seconds <= 0:
            errors.append("timeouts must be positive")

        return errors
