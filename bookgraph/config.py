# -*- coding: utf-8 -*-
"""Load and save the bookgraph configuration file.

The file is YAML unless its name ends in ``.json``. It has three sections,
``deduplication``, ``organization`` and ``graph``, whose keys mirror
:class:`bookgraph.dedupe.DeduplicationConfig`,
:class:`bookgraph.organize.OrganizationConfig` and
:class:`bookgraph.graph.GraphConfig`. Values are validated here; the core
trusts what it receives.
"""
import json
import os
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

import yaml

from .dedupe import DeduplicationConfig, MergeStrategy
from .graph import DetailLevel, GraphConfig
from .loaders import parse_datetime
from .models import format_timestamp
from .organize import OrganizationConfig, OrganizationRule, RuleError

CONFIG_ENV_VAR = "BOOKGRAPH_CONFIG"


class ConfigError(ValueError):
    """Raised for unreadable config files and out-of-range settings."""


@dataclass
class AppConfig:
    deduplication: DeduplicationConfig = field(default_factory=DeduplicationConfig)
    organization: OrganizationConfig = field(default_factory=OrganizationConfig)
    graph: GraphConfig = field(default_factory=GraphConfig)
    backup_enabled: bool = True
    dry_run_by_default: bool = False


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "bookgraph" / "config.yaml"


def parse_enum(enum_cls: Type[Enum], value: Any) -> Enum:
    """Accept an enum member, its value (``keep_first``) or a CamelCase name (``KeepFirst``)."""
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    snake = "".join("_" + c.lower() if c.isupper() else c for c in text).lstrip("_")
    for candidate in (text.lower(), snake.replace("-", "_"), text.lower().replace("-", "_")):
        for member in enum_cls:
            if candidate in (member.value, member.name.lower()):
                return member
    choices = ", ".join(m.value for m in enum_cls)
    raise ConfigError(f"invalid {enum_cls.__name__} {value!r} (expected one of {choices})")


def _optional_count(name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    return _count(name, value)


def _count(name: str, value: Any) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
    if count < 0:
        raise ConfigError(f"{name} must not be negative, got {count}")
    return count


def _known(cls: Type, data: Any) -> Dict:
    if not isinstance(data, dict):
        raise ConfigError(f"section for {cls.__name__} must be a mapping, got {type(data).__name__}")
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


def dedup_config_from_dict(data: Optional[Dict]) -> DeduplicationConfig:
    values = _known(DeduplicationConfig, data or {})
    if "merge_strategy" in values:
        values["merge_strategy"] = parse_enum(MergeStrategy, values["merge_strategy"])
    for key in ("normalize_urls", "ignore_query_params", "ignore_fragment", "ignore_www",
                "ignore_protocol", "case_sensitive"):
        if key in values:
            values[key] = bool(values[key])
    return DeduplicationConfig(**values)


def rule_from_dict(data: Any) -> OrganizationRule:
    if not isinstance(data, dict):
        raise ConfigError(f"organization rule must be a mapping, got {type(data).__name__}")
    try:
        priority = int(data.get("priority") or 0)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"rule priority must be an integer, got {data.get('priority')!r}") from exc
    rule = OrganizationRule(
        name=str(data.get("name") or ""),
        pattern=str(data.get("pattern") or ""),
        folder=str(data.get("folder") or ""),
        priority=priority,
    )
    try:
        rule.compile()
    except RuleError as exc:
        raise ConfigError(str(exc)) from exc
    return rule


def organization_config_from_dict(data: Optional[Dict]) -> OrganizationConfig:
    values = _known(OrganizationConfig, data or {})
    for key in ("organize_by_domain", "organize_by_category", "organize_by_date", "preserve_existing"):
        if key in values:
            values[key] = bool(values[key])
    if "folder_separator" in values:
        values["folder_separator"] = str(values["folder_separator"] or "")
        if not values["folder_separator"]:
            raise ConfigError("folder_separator must not be empty")
    if "custom_rules" in values:
        raw = values["custom_rules"] or []
        if not isinstance(raw, list):
            raise ConfigError("custom_rules must be a list")
        values["custom_rules"] = [rule_from_dict(r) for r in raw]
    return OrganizationConfig(**values)


def add_rule(config: AppConfig, rule: OrganizationRule) -> None:
    """Replace the rule of the same name or append; rules stay sorted by priority."""
    try:
        rule.compile()
    except RuleError as exc:
        raise ConfigError(str(exc)) from exc
    rules = list(config.organization.custom_rules)
    for i, existing in enumerate(rules):
        if existing.name == rule.name:
            rules[i] = rule
            break
    else:
        rules.append(rule)
    config.organization.custom_rules = sorted(rules, key=lambda r: r.priority, reverse=True)


def remove_rule(config: AppConfig, name: str) -> None:
    rules = [r for r in config.organization.custom_rules if r.name != name]
    if len(rules) == len(config.organization.custom_rules):
        raise ConfigError(f"rule {name!r} not found")
    config.organization.custom_rules = rules


def list_rules(config: AppConfig) -> List[OrganizationRule]:
    return list(config.organization.custom_rules)


def graph_config_from_dict(data: Optional[Dict]) -> GraphConfig:
    values = _known(GraphConfig, data or {})
    if "detail_level" in values:
        values["detail_level"] = parse_enum(DetailLevel, values["detail_level"])
    for key in ("min_domain_threshold", "min_tag_threshold"):
        if key in values:
            values[key] = _count(key, values[key])
    for key in ("max_bookmarks_per_domain", "max_total_bookmarks"):
        if key in values:
            values[key] = _optional_count(key, values[key])
    if "similarity_threshold" in values:
        try:
            threshold = float(values["similarity_threshold"])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"similarity_threshold must be a number, got {values['similarity_threshold']!r}") from exc
        if not 0.0 <= threshold <= 1.0:
            raise ConfigError(f"similarity_threshold must be within [0, 1], got {threshold}")
        values["similarity_threshold"] = threshold
    if "min_date" in values and values["min_date"] is not None:
        raw = values["min_date"]
        values["min_date"] = parse_datetime(raw)
        if values["min_date"] is None:
            raise ConfigError(f"min_date is not a valid date: {raw!r}")
    return GraphConfig(**values)


def config_from_dict(data: Optional[Dict]) -> AppConfig:
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError(f"config must be a mapping, got {type(data).__name__}")
    return AppConfig(
        deduplication=dedup_config_from_dict(data.get("deduplication")),
        organization=organization_config_from_dict(data.get("organization")),
        graph=graph_config_from_dict(data.get("graph")),
        backup_enabled=bool(data.get("backup_enabled", True)),
        dry_run_by_default=bool(data.get("dry_run_by_default", False)),
    )


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def config_to_dict(config: AppConfig) -> Dict:
    return _plain(asdict(config))


def save_config(config: AppConfig, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config_to_dict(config)
    with open(path, "w", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            json.dump(data, f, indent=2)
        else:
            yaml.safe_dump(data, f, sort_keys=False)


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Read the config at ``path``; a missing file is created with defaults."""
    path = Path(path) if path else default_config_path()
    if not path.exists():
        config = AppConfig()
        save_config(config, path)
        return config
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
        if path.suffix.lower() == ".json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    return config_from_dict(data)


def write_sample_config(path: Path) -> AppConfig:
    config = AppConfig(
        organization=OrganizationConfig(
            custom_rules=[
                OrganizationRule(
                    "Development", r"(github|gitlab|bitbucket|stackoverflow|dev\.to|medium\.com)", "Development", 10
                ),
                OrganizationRule(
                    "Social Media", r"(facebook|twitter|x|instagram|linkedin|reddit|youtube|tiktok)\.com", "Social", 9
                ),
                OrganizationRule("Shopping", r"(amazon|ebay|etsy|shopify|aliexpress|walmart|target)", "Shopping", 8),
            ],
        ),
        graph=GraphConfig(
            include_tag_edges=True,
            min_domain_threshold=3,
            min_tag_threshold=3,
            detail_level=DetailLevel.STANDARD,
        ),
    )
    save_config(config, path)
    return config
