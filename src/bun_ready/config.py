"""JSON configuration loader for bun-ready.config.json."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import Field, ValidationError, field_validator

from bun_ready.models import (
    CamelModel,
    PolicyConfig,
    PolicyRule,
    PolicyThresholds,
    Severity,
)

logger = logging.getLogger("bun_ready.config")

CONFIG_FILE_NAME = "bun-ready.config.json"


def _strings(v: object) -> list[str]:
    if not isinstance(v, list):
        return []
    return [s for s in v if isinstance(s, str)]


class BunReadyConfig(CamelModel):
    """Configuration for a scan run. Invalid entries are dropped, not fatal."""

    ignore_packages: list[str] = Field(
        default_factory=list, description="Workspace package names to skip"
    )
    ignore_findings: list[str] = Field(
        default_factory=list, description="Finding ids to drop before policy"
    )
    native_addon_allowlist: list[str] = Field(
        default_factory=list, description="Dependencies never flagged as native addons"
    )
    fail_on: Severity | None = None
    detailed: bool = False
    rules: list[PolicyRule] = Field(default_factory=list)
    thresholds: PolicyThresholds | None = None

    @field_validator("ignore_packages", "ignore_findings", "native_addon_allowlist", mode="before")
    @classmethod
    def _parse_string_lists(cls, v: object) -> list[str]:
        return _strings(v)

    @field_validator("fail_on", mode="before")
    @classmethod
    def _parse_fail_on(cls, v: object) -> str | None:
        if isinstance(v, str) and v in {s.value for s in Severity}:
            return v
        return None

    @field_validator("detailed", mode="before")
    @classmethod
    def _parse_detailed(cls, v: object) -> bool:
        return v if isinstance(v, bool) else False

    @field_validator("rules", mode="before")
    @classmethod
    def _parse_rules(cls, v: object) -> list[PolicyRule]:
        if not isinstance(v, list):
            return []
        rules: list[PolicyRule] = []
        for raw in v:
            if not isinstance(raw, dict) or not isinstance(raw.get("id"), str):
                logger.warning("Skipping invalid policy rule in config: %r", raw)
                continue
            try:
                rules.append(PolicyRule.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping invalid policy rule in config: %r", raw)
        return rules

    @field_validator("thresholds", mode="before")
    @classmethod
    def _parse_thresholds(cls, v: object) -> PolicyThresholds | None:
        if not isinstance(v, dict):
            return None
        valid = {
            k: n for k, n in v.items()
            if isinstance(n, int) and not isinstance(n, bool)
        }
        thresholds = PolicyThresholds.model_validate(valid)
        return None if thresholds.is_empty() else thresholds

    def policy(self) -> PolicyConfig:
        return PolicyConfig(
            rules=list(self.rules),
            thresholds=self.thresholds,
            fail_on=self.fail_on,
        )


def load_config(root: Path, config_path: Path | None = None) -> BunReadyConfig | None:
    """Load config from ``config_path`` or ``<root>/bun-ready.config.json``.

    Returns None when there is no file or it cannot be used.
    """
    path = config_path or root / CONFIG_FILE_NAME
    if not path.is_file():
        if config_path is not None:
            logger.warning("Config file %s not found, using defaults", path)
        return None
    return _parse_json(path)


def _parse_json(path: Path) -> BunReadyConfig | None:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Invalid %s: %s", path.name, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Invalid %s: expected a JSON object", path.name)
        return None
    return BunReadyConfig.model_validate(data)
