# -*- coding: utf-8 -*-
"""
Formula constants and reference bands.

Defaults live in ``DEFAULT_RULES``. A unit may override single values with a
YAML file (``RENALCALC_RULES=/path/rules.yaml``); the file is deep-merged
over the defaults, so it only needs the keys that differ, e.g.::

    adequacy:
      total_ktv_target: 1.8
"""
from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

RULES_ENV = "RENALCALC_RULES"

DEFAULT_RULES: Dict[str, Any] = {
    "adequacy": {
        # Watson-style shortcut used on the unit sheet: V = body weight × 0.58
        "v_factor": 0.58,
        # daily clearance → weekly Kt/V
        "days_per_week": 7,
        # weekly total Kt/V; ≥ target counts as met
        "total_ktv_target": 1.7,
    },
    "pet": {
        # first matching band wins; values in the gaps between bands get no hint
        "creatinine_bands": [
            {"label": "High Transporter", "gt": 0.81},
            {"label": "High Average Transporter", "ge": 0.65, "le": 0.81},
            {"label": "Low Average Transporter", "ge": 0.50, "le": 0.64},
            {"label": "Low Transporter", "lt": 0.50},
        ],
        "glucose_bands": [
            {"label": "High Transporter", "lt": 0.26},
            {"label": "High Average Transporter", "ge": 0.26, "le": 0.38},
            {"label": "Low Average Transporter", "ge": 0.39, "le": 0.49},
            {"label": "Low Transporter", "gt": 0.49},
        ],
    },
    "precision": {
        "ratio": 3,
        "v_value": 2,
        "ktv": 3,
        "bmi": 1,
        "weight_gain": 2,
    },
}


def deep_merge_dict(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursive merge:
    - dict + dict -> merge
    - otherwise: patch wins
    """
    out = copy.deepcopy(base)
    for k, v in patch.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = deep_merge_dict(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


def load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        obj = yaml.safe_load(f) or {}
    return obj


def load_rules(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Defaults merged with the YAML file at ``path`` (or ``$RENALCALC_RULES``)."""
    if path is None:
        path = os.environ.get(RULES_ENV) or None
    if path is None:
        return copy.deepcopy(DEFAULT_RULES)
    p = Path(path)
    try:
        override = load_yaml(p)
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Rules file %s unreadable, using defaults: %s", p, exc)
        return copy.deepcopy(DEFAULT_RULES)
    if not isinstance(override, dict):
        logger.warning("Rules file %s is not a mapping, using defaults", p)
        return copy.deepcopy(DEFAULT_RULES)
    return deep_merge_dict(DEFAULT_RULES, override)


def rule(rules: Optional[Dict[str, Any]], *path: str, default: Any = None) -> Any:
    """Nested lookup that falls back to ``DEFAULT_RULES`` and then ``default``."""
    for src in (rules or {}, DEFAULT_RULES):
        cur: Any = src
        for p in path:
            if not isinstance(cur, dict) or p not in cur:
                cur = None
                break
            cur = cur[p]
        if cur is not None:
            return cur
    return default
