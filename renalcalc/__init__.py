# -*- coding: utf-8 -*-
"""Clinical formula evaluation for the renal unit: PET, PD adequacy, BMI, HD weight gain."""
from __future__ import annotations

from .calcs import (
    AdequacyResults,
    CalcResult,
    PETResults,
    compute_adequacy,
    compute_bmi,
    compute_hourly_weight_gain,
    compute_pet,
    compute_weight_gain,
)
from .classify import AdequacyAssessment, TransporterCategory, meets_adequacy_target
from .measurements import MeasurementSet, Quantity, TimePoint, measurement_key
from .version import APP_NAME, APP_VERSION

__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "AdequacyAssessment",
    "AdequacyResults",
    "CalcResult",
    "MeasurementSet",
    "PETResults",
    "Quantity",
    "TimePoint",
    "TransporterCategory",
    "compute_adequacy",
    "compute_bmi",
    "compute_hourly_weight_gain",
    "compute_pet",
    "compute_weight_gain",
    "meets_adequacy_target",
    "measurement_key",
]
