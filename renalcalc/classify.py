# -*- coding: utf-8 -*-
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from .calcs import CalcResult
from .rules import rule


class TransporterCategory(str, Enum):
    """PET transport class. Always chosen by the clinician."""

    HIGH = "High Transporter"
    HIGH_AVERAGE = "High Average Transporter"
    LOW_AVERAGE = "Low Average Transporter"
    LOW = "Low Transporter"

    @classmethod
    def from_label(cls, label: Optional[str]) -> Optional["TransporterCategory"]:
        if label is None or not str(label).strip():
            return None
        norm = " ".join(str(label).replace("-", " ").split()).lower()
        for member in cls:
            if member.value.lower() == norm:
                return member
        raise ValueError(f"Unknown transporter category: {label!r}")

    @classmethod
    def labels(cls) -> List[str]:
        return [m.value for m in cls]


class AdequacyAssessment(str, Enum):
    """Clinician's adequacy judgment; independent of the Kt/V target."""

    ADEQUATE = "adequate"
    INADEQUATE = "inadequate"
    UNSET = "unset"

    @classmethod
    def from_flag(cls, flag: Optional[bool]) -> "AdequacyAssessment":
        if flag is None:
            return cls.UNSET
        return cls.ADEQUATE if flag else cls.INADEQUATE

    def as_flag(self) -> Optional[bool]:
        if self is AdequacyAssessment.UNSET:
            return None
        return self is AdequacyAssessment.ADEQUATE


def _total_value(total_ktv: Any) -> Optional[float]:
    if isinstance(total_ktv, CalcResult):
        return total_ktv.value
    return total_ktv


def meets_adequacy_target(total_ktv: Any, rules: Optional[Dict[str, Any]] = None) -> Optional[bool]:
    """Total Kt/V ≥ target (1.7 by default). None if Kt/V was not calculated."""
    total = _total_value(total_ktv)
    if total is None:
        return None
    return total >= float(rule(rules, "adequacy", "total_ktv_target"))


def adequacy_badge(total_ktv: Any, rules: Optional[Dict[str, Any]] = None) -> str:
    """Badge variant for the Total Kt/V field: anything short of the target warns."""
    return "default" if meets_adequacy_target(total_ktv, rules) else "destructive"


def _in_band(v: float, band: Dict[str, Any]) -> bool:
    if "gt" in band and not v > band["gt"]:
        return False
    if "ge" in band and not v >= band["ge"]:
        return False
    if "lt" in band and not v < band["lt"]:
        return False
    if "le" in band and not v <= band["le"]:
        return False
    return True


def _suggest(value: Any, bands: List[Dict[str, Any]]) -> Optional[TransporterCategory]:
    v = _total_value(value)
    if v is None:
        return None
    for band in bands or []:
        if _in_band(v, band):
            return TransporterCategory.from_label(band.get("label"))
    return None


def suggest_creatinine_category(dp_creatinine: Any, rules: Optional[Dict[str, Any]] = None) -> Optional[TransporterCategory]:
    """
    Reference band for a D/P creatinine ratio, shown as a hint beside the
    clinician's own selection. Ratios in the sheet's gaps (0.64–0.65) give None.
    """
    return _suggest(dp_creatinine, rule(rules, "pet", "creatinine_bands"))


def suggest_glucose_category(dd0_glucose: Any, rules: Optional[Dict[str, Any]] = None) -> Optional[TransporterCategory]:
    """Reference band for a D/D0 glucose ratio (lower ratio = faster transport)."""
    return _suggest(dd0_glucose, rule(rules, "pet", "glucose_bands"))
