# -*- coding: utf-8 -*-
"""
MeasurementSet: the raw, user-typed values of one test episode.

Values are kept exactly as entered (text or number) and parsed on read, so an
empty field and a field holding "abc" both read back as ``None``. Keys are
built from typed parts (``Quantity`` + optional ``TimePoint``), e.g.
``dialysateCreatinine@T4`` or ``bodyWeightKg``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

from .util import to_float


class TimePoint(str, Enum):
    T0 = "T0"
    T1 = "T1"
    T2 = "T2"
    T3 = "T3"
    T4 = "T4"

    @property
    def hour(self) -> int:
        return int(self.value[1:])

    @property
    def has_serum_sample(self) -> bool:
        # serum creatinine is drawn at T0–T2 only
        return self.hour <= 2


class Quantity(str, Enum):
    # PET, sampled per time point
    SERUM_CREATININE = "serumCreatinine"
    DIALYSATE_CREATININE = "dialysateCreatinine"
    DIALYSATE_GLUCOSE = "dialysateGlucose"
    # adequacy
    BODY_WEIGHT_KG = "bodyWeightKg"
    DIALYSATE_UREA_VOLUME_L = "dialysateUreaVolumeL"
    URINE_UREA_VOLUME_L = "urineUreaVolumeL"
    BLOOD_UREA_MG_DL = "bloodUreaMgDl"
    # anthropometry / HD session
    HEIGHT_CM = "heightCm"
    WEIGHT_KG = "weightKg"
    DRY_WEIGHT_KG = "dryWeightKg"
    PRE_DIALYSIS_WEIGHT_KG = "preDialysisWeightKg"
    POST_DIALYSIS_WEIGHT_KG = "postDialysisWeightKg"

    @property
    def timed(self) -> bool:
        return self in PET_QUANTITIES


PET_QUANTITIES = (
    Quantity.SERUM_CREATININE,
    Quantity.DIALYSATE_CREATININE,
    Quantity.DIALYSATE_GLUCOSE,
)

QUANTITY_LABELS: Dict[Quantity, str] = {
    Quantity.SERUM_CREATININE: "Serum creatinine",
    Quantity.DIALYSATE_CREATININE: "Dialysate creatinine",
    Quantity.DIALYSATE_GLUCOSE: "Dialysate glucose",
    Quantity.BODY_WEIGHT_KG: "Body weight (kg)",
    Quantity.DIALYSATE_UREA_VOLUME_L: "Dialysate urea volume (L)",
    Quantity.URINE_UREA_VOLUME_L: "Urine urea volume (L)",
    Quantity.BLOOD_UREA_MG_DL: "Blood urea (mg/dl)",
    Quantity.HEIGHT_CM: "Height (cm)",
    Quantity.WEIGHT_KG: "Weight (kg)",
    Quantity.DRY_WEIGHT_KG: "Dry weight (kg)",
    Quantity.PRE_DIALYSIS_WEIGHT_KG: "Pre-dialysis weight (kg)",
    Quantity.POST_DIALYSIS_WEIGHT_KG: "Post-dialysis weight (kg)",
}


def measurement_key(quantity: Quantity, timepoint: Optional[TimePoint] = None) -> str:
    q = Quantity(quantity)
    if timepoint is None:
        if q.timed:
            raise ValueError(f"{q.value} needs a time point")
        return q.value
    if not q.timed:
        raise ValueError(f"{q.value} is not sampled per time point")
    return f"{q.value}@{TimePoint(timepoint).value}"


def split_key(key: str) -> Tuple[Quantity, Optional[TimePoint]]:
    """Inverse of ``measurement_key``; raises ValueError for unknown keys."""
    name, sep, tp = key.partition("@")
    q = Quantity(name)
    t = TimePoint(tp) if sep else None
    measurement_key(q, t)
    return q, t


def _is_blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


@dataclass(frozen=True)
class MeasurementSet:
    _values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for key in self._values:
            split_key(key)
        object.__setattr__(self, "_values", MappingProxyType(dict(self._values)))

    @classmethod
    def empty(cls) -> "MeasurementSet":
        return cls()

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "MeasurementSet":
        return cls(dict(mapping or {}))

    def with_value(self, quantity: Quantity, value: Any, timepoint: Optional[TimePoint] = None) -> "MeasurementSet":
        key = measurement_key(quantity, timepoint)
        values = dict(self._values)
        values[key] = value
        return MeasurementSet(values)

    def with_values(self, mapping: Mapping[str, Any]) -> "MeasurementSet":
        values = dict(self._values)
        values.update(mapping)
        return MeasurementSet(values)

    def raw(self, quantity: Quantity, timepoint: Optional[TimePoint] = None) -> Any:
        v = self._values.get(measurement_key(quantity, timepoint))
        return "" if v is None else v

    def get(self, quantity: Quantity, timepoint: Optional[TimePoint] = None) -> Optional[float]:
        return to_float(self._values.get(measurement_key(quantity, timepoint)))

    def is_blank(self) -> bool:
        return all(_is_blank(v) for v in self._values.values())

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MeasurementSet):
            return NotImplemented
        return dict(self._values) == dict(other._values)

    def __hash__(self) -> int:
        # must agree with __eq__: 1 == 1.0 and hash(1) == hash(1.0)
        try:
            return hash(frozenset(self._values.items()))
        except TypeError:
            return hash(frozenset(self._values))

    def __reduce__(self):
        # mappingproxy cannot be pickled; gr.State deep-copies its value
        return (MeasurementSet, (dict(self._values),))

    def __deepcopy__(self, memo: Dict[int, Any]) -> "MeasurementSet":
        return self

    def __repr__(self) -> str:
        return f"MeasurementSet({dict(self._values)!r})"
