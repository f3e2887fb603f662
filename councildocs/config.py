from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


class ConfigError(ValueError):
    pass


DEFAULT_CONFIG_BASENAME = "councildocs.yaml"


DEFAULT_CONFIG_TEMPLATE = """version: 1

chunking:
  chunk_size: 500
  overlap: 50

search:
  top_k: 10
  k1: 1.5
  b: 0.75

analysis:
  max_items: 20

schema:
  # Item lookups larger than this come back as a truncated preview.
  max_bytes: 200000

# Per-corpus ranking and tagging rules for policy schemas.
corpora:
  council_tax:
    boost_terms: []
    tag_keys:
      discount_id: discount
      exemption: exemption
      premium_id: premium
      legal_basis: legal
      eligibility: eligibility
      application_process: application
      url: has-url
      TODO: todo
    tag_phrases:
      TODO: todo
    allowed_sections:
      - sections
      - schema_metadata
      - legal_framework
      - package_identity
      - service_overview
      - valuation_and_charging
      - discounts
      - property_premiums
      - exemptions
      - council_tax_support
      - payment
      - liability
      - enforcement
      - appeals_and_challenges
      - service_standards
      - data_privacy
      - governance
      - channels
      - complaints
      - holiday_lets_and_self_catering
      - related_services
      - fraud
      - security_warning

  heritage:
    boost_terms:
      - "listed building"
      - "conservation area"
      - "section 66"
      - "section 72"
      - "nppf"
      - "historic england"
      - "substantial harm"
      - "significance"
      - "setting"
      - "consent"
      - "grade i"
      - "grade ii"
      - "scheduled monument"
    tag_keys:
      assetType: asset-type
      designation: designation
      legislativeAuthority: legislation
      statutoryDuty: statutory-duty
      consentRequired: consent
      processName: process
      section: section
      paragraph: nppf
      grade: grade
      policyWeight: policy
      sourceUrl: has-url
      caselaw: caselaw
    tag_phrases:
      listed building: listed-building
      conservation area: conservation-area
      consent: consent
      nppf: nppf
    allowed_sections:
      - authorityContext
      - legislativeFramework
      - heritageAssetTypes
      - serviceProcesses
      - userJourneys
      - keyDefinitions
      - contactInformation
      - metadata
"""


@dataclass(frozen=True)
class EngineConfig:
    chunk_size: int = 500
    overlap: int = 50
    top_k: int = 10
    k1: float = 1.5
    b: float = 0.75
    max_items: int = 20
    max_bytes: int = 200000
    corpora: Dict[str, Dict[str, Any]] = field(default_factory=lambda: default_config_data()["corpora"])


def _xdg_config_home() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base)
    home = os.environ.get("HOME")
    if home:
        return Path(home) / ".config"
    return Path.home() / ".config"


def default_config_path() -> Path:
    return _xdg_config_home() / "councildocs" / DEFAULT_CONFIG_BASENAME


def resolve_config_path(explicit: Optional[str], *, prefer_xdg: bool = False) -> Optional[Path]:
    """Resolve the engine config path.

    Precedence:
    1) explicit CLI arg
    2) COUNCILDOCS_CONFIG env var
    3) XDG config file (if exists)
    4) local ./councildocs.yaml (if exists)

    Returns None when nothing is configured; callers then use built-in defaults.
    With prefer_xdg, the XDG location is returned even if it does not exist yet.
    """

    if explicit:
        return Path(explicit)

    env_path = os.environ.get("COUNCILDOCS_CONFIG")
    if env_path:
        return Path(env_path)

    xdg = default_config_path()
    if xdg.exists() or prefer_xdg:
        return xdg

    local = Path.cwd() / DEFAULT_CONFIG_BASENAME
    if local.exists():
        return local

    return None


def init_config(path: Path, *, overwrite: bool = False) -> Path:
    """Write the starter config; a no-op if the file exists and overwrite is False."""

    if path.exists() and not overwrite:
        return path

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
    return path


def default_config_data() -> Dict[str, Any]:
    return yaml.safe_load(DEFAULT_CONFIG_TEMPLATE)


def load_config(path: Optional[Path] = None) -> EngineConfig:
    """Load and validate a config file; None yields the built-in defaults."""

    if path is None:
        return config_from_data(default_config_data())

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigError(
            f"Config file not found: {path}. Create one with: --init-config"
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config YAML: {path}") from e

    if not isinstance(data, dict):
        raise ConfigError("Config YAML must be a mapping (top-level object).")

    return config_from_data(data)


def _merge_corpora(data: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    # User-supplied corpora replace built-in entries of the same name.
    corpora = copy.deepcopy(default_config_data()["corpora"])
    for name, rules in (data.get("corpora") or {}).items():
        corpora[name] = rules
    return corpora


def config_from_data(data: Dict[str, Any]) -> EngineConfig:
    validate_config(data)

    chunking = data.get("chunking") or {}
    search = data.get("search") or {}
    analysis = data.get("analysis") or {}
    schema = data.get("schema") or {}
    defaults = EngineConfig()

    return EngineConfig(
        chunk_size=int(chunking.get("chunk_size", defaults.chunk_size)),
        overlap=int(chunking.get("overlap", defaults.overlap)),
        top_k=int(search.get("top_k", defaults.top_k)),
        k1=float(search.get("k1", defaults.k1)),
        b=float(search.get("b", defaults.b)),
        max_items=int(analysis.get("max_items", defaults.max_items)),
        max_bytes=int(schema.get("max_bytes", defaults.max_bytes)),
        corpora=_merge_corpora(data),
    )


def _as_str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item.strip()]


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config field '{name}' must be an object.")
    return value


def _require_int(section: Dict[str, Any], name: str, field_name: str, *, minimum: int) -> None:
    if field_name not in section or section[field_name] is None:
        return
    value = section[field_name]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"Config field '{name}.{field_name}' must be an integer.")
    if value < minimum:
        raise ConfigError(f"Config field '{name}.{field_name}' must be >= {minimum}.")


def _require_number(section: Dict[str, Any], name: str, field_name: str) -> None:
    if field_name not in section or section[field_name] is None:
        return
    try:
        float(section[field_name])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Config field '{name}.{field_name}' must be a number.") from e


def validate_config(data: Dict[str, Any]) -> None:
    """Lightweight validation for user-edited configs."""

    chunking = _section(data, "chunking")
    _require_int(chunking, "chunking", "chunk_size", minimum=1)
    _require_int(chunking, "chunking", "overlap", minimum=0)
    chunk_size = chunking.get("chunk_size") or EngineConfig.chunk_size
    overlap = chunking.get("overlap") if chunking.get("overlap") is not None else EngineConfig.overlap
    if overlap >= chunk_size:
        raise ConfigError("Config field 'chunking.overlap' must be smaller than 'chunking.chunk_size'.")

    search = _section(data, "search")
    _require_int(search, "search", "top_k", minimum=1)
    _require_number(search, "search", "k1")
    _require_number(search, "search", "b")

    analysis = _section(data, "analysis")
    _require_int(analysis, "analysis", "max_items", minimum=1)

    schema = _section(data, "schema")
    _require_int(schema, "schema", "max_bytes", minimum=1)

    corpora = _section(data, "corpora")
    for name, rules in corpora.items():
        if not isinstance(rules, dict):
            raise ConfigError(f"Corpus '{name}' must be a mapping/object.")
        for list_field in ("boost_terms", "allowed_sections"):
            items = rules.get(list_field)
            if items is not None and (not isinstance(items, list) or len(_as_str_list(items)) != len(items)):
                raise ConfigError(f"Corpus '{name}' field '{list_field}' must be a list of strings.")
        for mapping_field in ("tag_keys", "tag_phrases"):
            value = rules.get(mapping_field)
            if value is None:
                continue
            if not isinstance(value, dict) or not all(
                isinstance(k, str) and isinstance(v, str) for k, v in value.items()
            ):
                raise ConfigError(
                    f"Corpus '{name}' field '{mapping_field}' must map strings to tag names."
                )
