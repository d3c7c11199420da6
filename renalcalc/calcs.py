# -*- coding: utf-8 -*-
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from .measurements import MeasurementSet, Quantity, TimePoint
from .rules import rule
from .util import NOT_CALCULATED, fmt_num, round_fixed, to_float


@dataclass(frozen=True)
class CalcResult:
    value: Optional[float]
    formula: Optional[str] = None
    decimals: int = 3

    @property
    def calculated(self) -> bool:
        return self.value is not None

    def display(self, unit: Optional[str] = None) -> str:
        if self.value is None:
            return NOT_CALCULATED
        txt = fmt_num(self.value, self.decimals)
        return f"{txt} {unit}" if unit else txt


def _not_calculated(decimals: int) -> CalcResult:
    return CalcResult(None, decimals=decimals)


def _result(value: float, formula: str, decimals: int) -> CalcResult:
    # extreme inputs can overflow to inf; that is no result either
    if not math.isfinite(value):
        return _not_calculated(decimals)
    return CalcResult(round_fixed(value, decimals), formula=formula, decimals=decimals)


@dataclass(frozen=True)
class PETResults:
    dp_creatinine: CalcResult
    dd0_glucose: CalcResult

    def as_dict(self) -> Dict[str, str]:
        return {
            "dpCreatinine": self.dp_creatinine.display(),
            "dd0Glucose": self.dd0_glucose.display(),
        }


@dataclass(frozen=True)
class AdequacyResults:
    v_value: CalcResult
    peritoneal_ktv: CalcResult
    renal_ktv: CalcResult
    total_ktv: CalcResult

    def as_dict(self) -> Dict[str, str]:
        return {
            "vValue": self.v_value.display(),
            "peritonealKtV": self.peritoneal_ktv.display(),
            "renalKtV": self.renal_ktv.display(),
            "totalKtV": self.total_ktv.display(),
        }


Measurements = Union[MeasurementSet, Mapping[str, Any]]

EMPTY_PET = PETResults(_not_calculated(3), _not_calculated(3))
EMPTY_ADEQUACY = AdequacyResults(_not_calculated(2), _not_calculated(3), _not_calculated(3), _not_calculated(3))


def calc_ratio(numerator: Optional[float], denominator: Optional[float], decimals: int = 3) -> CalcResult:
    if numerator is None or denominator is None:
        return _not_calculated(decimals)
    # a zero or negative concentration is an entry error, not a measurement
    if denominator <= 0 or numerator <= 0:
        return _not_calculated(decimals)
    return _result(numerator / denominator, f"{numerator}/{denominator}", decimals)


def calc_v_value(body_weight_kg: Optional[float], rules: Optional[Dict[str, Any]] = None) -> CalcResult:
    decimals = rule(rules, "precision", "v_value")
    factor = rule(rules, "adequacy", "v_factor")
    if body_weight_kg is None or body_weight_kg <= 0:
        return _not_calculated(decimals)
    return _result(body_weight_kg * factor, f"{body_weight_kg}·{factor}", decimals)


def calc_ktv(
    urea_volume_l: Optional[float],
    blood_urea_mg_dl: Optional[float],
    v_value: Optional[float],
    rules: Optional[Dict[str, Any]] = None,
) -> CalcResult:
    """
    Weekly Kt/V as written on the unit's adequacy sheet:

        (urea / blood urea) · urea · 7 / V

    The entered urea figure is used both as the ratio numerator and as the
    volume multiplier. Kept literally; pending clinical review.
    """
    decimals = rule(rules, "precision", "ktv")
    days = rule(rules, "adequacy", "days_per_week")
    if not urea_volume_l or not blood_urea_mg_dl or not v_value:
        return _not_calculated(decimals)
    ktv = (urea_volume_l / blood_urea_mg_dl) * urea_volume_l * days / v_value
    return _result(ktv, f"({urea_volume_l}/{blood_urea_mg_dl})·{urea_volume_l}·{days}/{v_value}", decimals)


def calc_total_ktv(peritoneal: CalcResult, renal: CalcResult, rules: Optional[Dict[str, Any]] = None) -> CalcResult:
    decimals = rule(rules, "precision", "ktv")
    if not peritoneal.calculated and not renal.calculated:
        return _not_calculated(decimals)
    p = peritoneal.value or 0.0
    r = renal.value or 0.0
    return _result(p + r, f"{p} + {r}", decimals)


def _as_set(measurements: Measurements) -> MeasurementSet:
    # form layer hands over plain key -> text pairs
    if isinstance(measurements, MeasurementSet):
        return measurements
    return MeasurementSet.from_mapping(measurements)


def compute_pet(measurements: Measurements, rules: Optional[Dict[str, Any]] = None) -> PETResults:
    """D/P creatinine (T4 dialysate / T0 serum) and D/D0 glucose (T4 / T0 dialysate)."""
    measurements = _as_set(measurements)
    decimals = rule(rules, "precision", "ratio")
    dp = calc_ratio(
        measurements.get(Quantity.DIALYSATE_CREATININE, TimePoint.T4),
        measurements.get(Quantity.SERUM_CREATININE, TimePoint.T0),
        decimals,
    )
    dd0 = calc_ratio(
        measurements.get(Quantity.DIALYSATE_GLUCOSE, TimePoint.T4),
        measurements.get(Quantity.DIALYSATE_GLUCOSE, TimePoint.T0),
        decimals,
    )
    return PETResults(dp_creatinine=dp, dd0_glucose=dd0)


def compute_adequacy(measurements: Measurements, rules: Optional[Dict[str, Any]] = None) -> AdequacyResults:
    measurements = _as_set(measurements)
    weight = measurements.get(Quantity.BODY_WEIGHT_KG)
    v = calc_v_value(weight, rules)
    # Kt/V divides by the unrounded V; only the displayed V is rounded
    v_exact = weight * rule(rules, "adequacy", "v_factor") if v.calculated else None
    blood_urea = measurements.get(Quantity.BLOOD_UREA_MG_DL)
    peritoneal = calc_ktv(measurements.get(Quantity.DIALYSATE_UREA_VOLUME_L), blood_urea, v_exact, rules)
    renal = calc_ktv(measurements.get(Quantity.URINE_UREA_VOLUME_L), blood_urea, v_exact, rules)
    return AdequacyResults(
        v_value=v,
        peritoneal_ktv=peritoneal,
        renal_ktv=renal,
        total_ktv=calc_total_ktv(peritoneal, renal, rules),
    )


def compute_bmi(height_cm: Any, weight_kg: Any, rules: Optional[Dict[str, Any]] = None) -> CalcResult:
    decimals = rule(rules, "precision", "bmi")
    h = to_float(height_cm)
    w = to_float(weight_kg)
    if h is None or w is None:
        return _not_calculated(decimals)
    if h <= 0 or w <= 0:
        return _not_calculated(decimals)
    m2 = (h / 100.0) * (h / 100.0)
    if m2 == 0 or not math.isfinite(m2):
        return _not_calculated(decimals)
    return _result(w / m2, f"{w}/({h}/100)²", decimals)


def _weight_difference(minuend: Any, subtrahend: Any, rules: Optional[Dict[str, Any]]) -> CalcResult:
    decimals = rule(rules, "precision", "weight_gain")
    a = to_float(minuend)
    b = to_float(subtrahend)
    # an untouched weight field holds 0, which is "not weighed"
    if not a or not b:
        return _not_calculated(decimals)
    return _result(a - b, f"{a} - {b}", decimals)


def compute_weight_gain(dry_weight_kg: Any, pre_dialysis_weight_kg: Any, rules: Optional[Dict[str, Any]] = None) -> CalcResult:
    """Inter-dialytic weight gain: pre-dialysis weight minus dry weight."""
    return _weight_difference(pre_dialysis_weight_kg, dry_weight_kg, rules)


def compute_hourly_weight_gain(pre_dialysis_weight_kg: Any, post_dialysis_weight_kg: Any, rules: Optional[Dict[str, Any]] = None) -> CalcResult:
    return _weight_difference(pre_dialysis_weight_kg, post_dialysis_weight_kg, rules)
