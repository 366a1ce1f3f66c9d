"""Glimpse configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (GLIMPSE_DESCRIPTION_MODEL, GLIMPSE_EMBEDDING_MODEL, ...)
  3. Per-project glimpse.yaml
  4. Global ~/.glimpse/config.yaml  (model defaults only — no credentials)
  5. Hardcoded defaults

Global config must never contain API keys or service-account secrets; use
environment variables / application default credentials instead.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from glimpse.db.vectors import SUPPORTED_DIMENSIONS
from glimpse.errors import ConfigError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".glimpse"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "glimpse.yaml"

# Fields that suggest a credential are forbidden in global config.
# Does NOT match legitimate config keys like max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # access_token, auth_token (suffix)
    r"|^token$"                  # exactly "token" (standalone)
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret" (standalone)
    r"|passw(?:ord|d)"           # password, passwd
    r"|private[_\-]?key"         # service-account private_key
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

# Known top-level sections; unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(
    [
        "gcp", "description", "embedding", "retry", "search",
        "storage", "server", "emulator", "generation",
    ]
)

DEFAULT_PUBLIC_URL_TEMPLATE = (
    "https://firebasestorage.googleapis.com/v0/b/{bucket}/o/{quoted_path}?alt=media"
)


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class GcpCfg:
    """Google Cloud project settings (glimpse.yaml: gcp:)."""

    project: str | None = None
    location: str = "us-central1"

    def resolved_project(self) -> str | None:
        """Configured project, else the project the runtime environment advertises."""
        return (
            self.project
            or os.environ.get("GOOGLE_CLOUD_PROJECT")
            or os.environ.get("GCLOUD_PROJECT")
        )


@dataclass
class DescriptionCfg:
    """Generative description model (glimpse.yaml: description:)."""

    model: str = "vertex_ai/gemini-2.5-flash"
    max_tokens: int = 1024
    temperature: float = 0.2


@dataclass
class EmbeddingCfg:
    """Multimodal embedding model (glimpse.yaml: embedding:)."""

    model: str = "multimodalembedding@001"
    dimension: int = 1408


@dataclass
class RetryCfg:
    """Backoff policy for rate-limited remote calls (glimpse.yaml: retry:).

    Delays are in seconds.
    """

    max_attempts: int = 5
    initial_delay: float = 1.0
    max_jitter: float = 1.0


@dataclass
class SearchCfg:
    """Search and ranking settings (glimpse.yaml: search:)."""

    default_limit: int = 5
    max_limit: int = 100
    max_query_keywords: int = 10
    overfetch_factor: int = 5
    score_threshold: float = 0.05


@dataclass
class StorageCfg:
    """Index storage, display URLs and the upload bucket (glimpse.yaml: storage:)."""

    db_path: str = ".glimpse.db"
    public_url_template: str = DEFAULT_PUBLIC_URL_TEMPLATE
    bucket: str | None = None


@dataclass
class GenerationCfg:
    """Text-to-image generation (glimpse.yaml: generation:).

    Generated images are written under *prefix* in storage.bucket and, when
    *ingest* is set, indexed right away like any other upload.
    """

    model: str = "gemini-2.5-flash-image"
    max_count: int = 4
    prefix: str = "generated/"
    ingest: bool = True


@dataclass
class ServerCfg:
    """HTTP server settings (glimpse.yaml: server:)."""

    host: str = "127.0.0.1"
    port: int = 8080
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class EmulatorCfg:
    """Local-emulator overrides, applied only when GLIMPSE_EMULATOR=true.

    Emulated uploads point at objects that do not exist in a real bucket, so a
    known image URI and content type can be substituted.
    """

    source_uri: str | None = None
    content_type: str | None = None


@dataclass
class GlimpseConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    gcp: GcpCfg = field(default_factory=GcpCfg)
    description: DescriptionCfg = field(default_factory=DescriptionCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    retry: RetryCfg = field(default_factory=RetryCfg)
    search: SearchCfg = field(default_factory=SearchCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)
    server: ServerCfg = field(default_factory=ServerCfg)
    emulator: EmulatorCfg = field(default_factory=EmulatorCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any credential-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  Credentials must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: GlimpseConfig) -> None:
    """Raise ConfigError for values the services cannot honour."""
    if cfg.embedding.dimension not in SUPPORTED_DIMENSIONS:
        raise ConfigError(
            f"embedding.dimension must be one of {sorted(SUPPORTED_DIMENSIONS)}, "
            f"got {cfg.embedding.dimension}"
        )
    if cfg.retry.max_attempts < 1:
        raise ConfigError(f"retry.max_attempts must be >= 1, got {cfg.retry.max_attempts}")
    if cfg.retry.initial_delay < 0 or cfg.retry.max_jitter < 0:
        raise ConfigError("retry.initial_delay and retry.max_jitter must be >= 0")
    if cfg.search.default_limit < 1 or cfg.search.max_limit < cfg.search.default_limit:
        raise ConfigError(
            "search.default_limit must be >= 1 and no larger than search.max_limit"
        )
    if cfg.search.max_query_keywords < 1:
        raise ConfigError("search.max_query_keywords must be >= 1")
    if cfg.search.overfetch_factor < 1:
        raise ConfigError("search.overfetch_factor must be >= 1")
    if "{bucket}" not in cfg.storage.public_url_template:
        raise ConfigError(
            "storage.public_url_template must contain the '{bucket}' placeholder"
        )
    if cfg.generation.max_count < 1:
        raise ConfigError(
            f"generation.max_count must be >= 1, got {cfg.generation.max_count}"
        )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> GlimpseConfig:
    """Build a *GlimpseConfig* from a merged raw YAML dict."""
    cfg = GlimpseConfig()

    if "gcp" in data:
        g = data["gcp"] or {}
        cfg.gcp = GcpCfg(
            project=g.get("project") or cfg.gcp.project,
            location=str(g.get("location", cfg.gcp.location)),
        )

    if "description" in data:
        d = data["description"] or {}
        cfg.description = DescriptionCfg(
            model=str(d.get("model", cfg.description.model)),
            max_tokens=int(d.get("max_tokens", cfg.description.max_tokens)),
            temperature=float(d.get("temperature", cfg.description.temperature)),
        )

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimension=int(e.get("dimension", cfg.embedding.dimension)),
        )

    if "retry" in data:
        r = data["retry"] or {}
        cfg.retry = RetryCfg(
            max_attempts=int(r.get("max_attempts", cfg.retry.max_attempts)),
            initial_delay=float(r.get("initial_delay", cfg.retry.initial_delay)),
            max_jitter=float(r.get("max_jitter", cfg.retry.max_jitter)),
        )

    if "search" in data:
        s = data["search"] or {}
        cfg.search = SearchCfg(
            default_limit=int(s.get("default_limit", cfg.search.default_limit)),
            max_limit=int(s.get("max_limit", cfg.search.max_limit)),
            max_query_keywords=int(
                s.get("max_query_keywords", cfg.search.max_query_keywords)
            ),
            overfetch_factor=int(s.get("overfetch_factor", cfg.search.overfetch_factor)),
            score_threshold=float(s.get("score_threshold", cfg.search.score_threshold)),
        )

    if "storage" in data:
        st = data["storage"] or {}
        cfg.storage = StorageCfg(
            db_path=str(st.get("db_path", cfg.storage.db_path)),
            public_url_template=str(
                st.get("public_url_template", cfg.storage.public_url_template)
            ),
            bucket=st.get("bucket") or cfg.storage.bucket,
        )

    if "server" in data:
        sv = data["server"] or {}
        cfg.server = ServerCfg(
            host=str(sv.get("host", cfg.server.host)),
            port=int(sv.get("port", cfg.server.port)),
            cors_origins=[str(o) for o in sv.get("cors_origins", cfg.server.cors_origins)],
        )

    if "emulator" in data:
        em = data["emulator"] or {}
        cfg.emulator = EmulatorCfg(
            source_uri=em.get("source_uri"),
            content_type=em.get("content_type"),
        )

    if "generation" in data:
        gn = data["generation"] or {}
        cfg.generation = GenerationCfg(
            model=str(gn.get("model", cfg.generation.model)),
            max_count=int(gn.get("max_count", cfg.generation.max_count)),
            prefix=str(gn.get("prefix", cfg.generation.prefix)),
            ingest=bool(gn.get("ingest", cfg.generation.ingest)),
        )

    return cfg


def _apply_env_overrides(cfg: GlimpseConfig) -> GlimpseConfig:
    """Apply GLIMPSE_* environment variable overrides."""
    if model := os.environ.get("GLIMPSE_DESCRIPTION_MODEL"):
        cfg.description.model = model
    if model := os.environ.get("GLIMPSE_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if db_path := os.environ.get("GLIMPSE_DB_PATH"):
        cfg.storage.db_path = db_path
    if project := os.environ.get("GLIMPSE_GCP_PROJECT"):
        cfg.gcp.project = project
    if location := os.environ.get("GLIMPSE_GCP_LOCATION"):
        cfg.gcp.location = location
    if bucket := os.environ.get("GLIMPSE_STORAGE_BUCKET"):
        cfg.storage.bucket = bucket
    if model := os.environ.get("GLIMPSE_GENERATION_MODEL"):
        cfg.generation.model = model
    return cfg


def emulator_enabled() -> bool:
    """True when running against the local storage emulator."""
    return os.environ.get("GLIMPSE_EMULATOR", "").lower() == "true"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> GlimpseConfig:
    """Load and return a merged *GlimpseConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *glimpse.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *GlimpseConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains credential-like fields, or a
            value is out of range.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.glimpse/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).

    Args:
        global_config_path: Override path (for testing).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Glimpse global configuration — model defaults only.\n"
            "# NEVER store credentials here — use application default credentials:\n"
            "#   gcloud auth application-default login\n"
            "#   export GOOGLE_CLOUD_PROJECT=my-project\n"
            "\n"
            "gcp:\n"
            "  location: us-central1\n"
            "\n"
            "description:\n"
            "  model: vertex_ai/gemini-2.5-flash\n"
            "\n"
            "embedding:\n"
            "  model: multimodalembedding@001\n"
            "  dimension: 1408\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target
