from __future__ import annotations
import os, re, json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Tuple

import yaml

_env_pattern = re.compile(r"\$\{([A-Z0-9_]+)\}")

DEFAULT_CONFIG_PATH = "config/deepsearch.yaml"


def _env_expand(value: str) -> str:
    def repl(m):
        return os.getenv(m.group(1), "")
    return _env_pattern.sub(repl, value)


def load_yaml(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    s = json.dumps(data)
    s = _env_expand(s)
    return json.loads(s)


@dataclass(frozen=True)
class Settings:
    supabase_url: str = ""
    supabase_anon_key: str = ""
    adapter_timeout_s: float = 25.0
    persistence_timeout_s: float = 15.0
    enrichment_enabled: bool = True
    enrichment_endpoint: str = "deepsearch-truecaller"
    enrichment_regions: Tuple[str, ...] = ("IN",)
    default_region: str = "IN"
    redis_url: str = ""
    cache_ttl_s: int = 3600
    cors_headers: Dict[str, str] = field(default_factory=lambda: {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    })

    def function_url(self, endpoint: str) -> str:
        return f"{self.supabase_url.rstrip('/')}/functions/v1/{endpoint}"

    def rest_url(self, table: str) -> str:
        return f"{self.supabase_url.rstrip('/')}/rest/v1/{table}"

    def auth_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.supabase_anon_key}",
        }


def load_settings(path: str | None = None) -> Settings:
    """
    Build Settings from the YAML file (DEEPSEARCH_CONFIG) with env overrides.
    Env vars always win over file values; missing keys keep dataclass defaults.
    """
    cfg = load_yaml(path or os.getenv("DEEPSEARCH_CONFIG", DEFAULT_CONFIG_PATH))
    sb = cfg.get("supabase", {}) or {}
    to = cfg.get("timeouts", {}) or {}
    en = cfg.get("enrichment", {}) or {}
    ca = cfg.get("cache", {}) or {}
    defaults = Settings()

    regions = en.get("regions") or list(defaults.enrichment_regions)
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL") or sb.get("url") or defaults.supabase_url,
        supabase_anon_key=os.getenv("SUPABASE_ANON_KEY") or sb.get("anon_key") or defaults.supabase_anon_key,
        adapter_timeout_s=float(os.getenv("ADAPTER_TIMEOUT_SECONDS") or to.get("adapter_s") or defaults.adapter_timeout_s),
        persistence_timeout_s=float(to.get("persistence_s") or defaults.persistence_timeout_s),
        enrichment_enabled=bool(en.get("enabled", defaults.enrichment_enabled)),
        enrichment_endpoint=en.get("endpoint") or defaults.enrichment_endpoint,
        enrichment_regions=tuple(r.upper() for r in regions),
        default_region=(os.getenv("PHONE_DEFAULT_REGION") or en.get("default_region") or defaults.default_region).upper(),
        redis_url=os.getenv("REDIS_URL") or ca.get("redis_url") or defaults.redis_url,
        cache_ttl_s=int(os.getenv("CACHE_TTL_SECONDS") or ca.get("ttl_s") or defaults.cache_ttl_s),
    )
