# -*- coding: utf-8 -*-
"""
Form state for PET tests, adequacy tests, HD sessions and donor examinations.

All containers are frozen; every edit returns a new object. PET/adequacy
results and the donor BMI change only through an explicit ``calculate``
call, whereas the HD weight gain follows its two weights on every edit.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .calcs import (
    EMPTY_ADEQUACY,
    EMPTY_PET,
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
from .measurements import MeasurementSet, Quantity, TimePoint
from .util import to_float

logger = logging.getLogger(__name__)

_UNCHANGED: Any = object()


class EpisodeSlot(str, Enum):
    FIRST = "first"
    SECOND = "second"
    THIRD = "third"

    @property
    def title(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class PETEpisode:
    slot: Optional[EpisodeSlot] = None
    date: str = ""
    measurements: MeasurementSet = field(default_factory=MeasurementSet.empty)
    results: PETResults = EMPTY_PET
    creatinine_class: Optional[TransporterCategory] = None
    glucose_class: Optional[TransporterCategory] = None

    def with_measurement(self, quantity: Quantity, timepoint: TimePoint, value: Any) -> "PETEpisode":
        return replace(self, measurements=self.measurements.with_value(quantity, value, timepoint))

    def with_date(self, date: str) -> "PETEpisode":
        return replace(self, date=date or "")

    def with_classification(self, creatinine: Any = _UNCHANGED, glucose: Any = _UNCHANGED) -> "PETEpisode":
        ep = self
        if creatinine is not _UNCHANGED:
            ep = replace(ep, creatinine_class=_as_category(creatinine))
        if glucose is not _UNCHANGED:
            ep = replace(ep, glucose_class=_as_category(glucose))
        return ep

    def calculate(self, rules: Optional[Dict[str, Any]] = None) -> "PETEpisode":
        results = compute_pet(self.measurements, rules)
        logger.debug("PET %s calculated: %s", self.slot, results.as_dict())
        return replace(self, results=results)

    def is_blank(self) -> bool:
        return not self.date and self.measurements.is_blank()


def _as_category(label: Any) -> Optional[TransporterCategory]:
    if label is None or isinstance(label, TransporterCategory):
        return label
    return TransporterCategory.from_label(label)


@dataclass(frozen=True)
class AdequacyEpisode:
    slot: Optional[EpisodeSlot] = None
    date: str = ""
    patient_name: str = ""
    measurements: MeasurementSet = field(default_factory=MeasurementSet.empty)
    results: AdequacyResults = EMPTY_ADEQUACY
    assessment: AdequacyAssessment = AdequacyAssessment.UNSET

    def with_measurement(self, quantity: Quantity, value: Any) -> "AdequacyEpisode":
        return replace(self, measurements=self.measurements.with_value(quantity, value))

    def with_details(self, date: Any = _UNCHANGED, patient_name: Any = _UNCHANGED) -> "AdequacyEpisode":
        ep = self
        if date is not _UNCHANGED:
            ep = replace(ep, date=date or "")
        if patient_name is not _UNCHANGED:
            ep = replace(ep, patient_name=patient_name or "")
        return ep

    def with_assessment(self, flag: Optional[bool]) -> "AdequacyEpisode":
        return replace(self, assessment=AdequacyAssessment.from_flag(flag))

    def calculate(self, rules: Optional[Dict[str, Any]] = None) -> "AdequacyEpisode":
        results = compute_adequacy(self.measurements, rules)
        logger.debug("Adequacy %s calculated: %s", self.slot, results.as_dict())
        # assessment is left as the clinician set it
        return replace(self, results=results)

    def meets_target(self, rules: Optional[Dict[str, Any]] = None) -> Optional[bool]:
        return meets_adequacy_target(self.results.total_ktv, rules)


@dataclass(frozen=True)
class HourlyRecord:
    hour: int
    pre_dialysis_weight_kg: Optional[float] = None
    post_dialysis_weight_kg: Optional[float] = None
    weight_gain: CalcResult = field(default_factory=lambda: compute_hourly_weight_gain(None, None))

    @classmethod
    def build(cls, hour: int, pre: Any = None, post: Any = None, rules: Optional[Dict[str, Any]] = None) -> "HourlyRecord":
        return cls(
            hour=hour,
            pre_dialysis_weight_kg=to_float(pre),
            post_dialysis_weight_kg=to_float(post),
            weight_gain=compute_hourly_weight_gain(pre, post, rules),
        )


@dataclass(frozen=True)
class HDSession:
    dry_weight_kg: Optional[float] = None
    pre_dialysis_weight_kg: Optional[float] = None
    weight_gain: CalcResult = field(default_factory=lambda: compute_weight_gain(None, None))
    hourly_records: Tuple[HourlyRecord, ...] = ()

    @classmethod
    def build(cls, dry: Any = None, pre: Any = None, rules: Optional[Dict[str, Any]] = None) -> "HDSession":
        return cls(
            dry_weight_kg=to_float(dry),
            pre_dialysis_weight_kg=to_float(pre),
            weight_gain=compute_weight_gain(dry, pre, rules),
        )

    def _with_weights(self, dry: Optional[float], pre: Optional[float], rules: Optional[Dict[str, Any]]) -> "HDSession":
        return replace(
            self,
            dry_weight_kg=dry,
            pre_dialysis_weight_kg=pre,
            weight_gain=compute_weight_gain(dry, pre, rules),
        )

    def with_dry_weight(self, value: Any, rules: Optional[Dict[str, Any]] = None) -> "HDSession":
        return self._with_weights(to_float(value), self.pre_dialysis_weight_kg, rules)

    def with_pre_dialysis_weight(self, value: Any, rules: Optional[Dict[str, Any]] = None) -> "HDSession":
        return self._with_weights(self.dry_weight_kg, to_float(value), rules)

    def with_hourly_record(
        self, index: int, pre: Any = None, post: Any = None, rules: Optional[Dict[str, Any]] = None
    ) -> "HDSession":
        """Set record ``index`` (0-based); missing records up to it are added blank."""
        records: List[HourlyRecord] = list(self.hourly_records)
        while len(records) <= index:
            records.append(HourlyRecord.build(len(records) + 1))
        records[index] = HourlyRecord.build(records[index].hour, pre, post, rules)
        return replace(self, hourly_records=tuple(records))


@dataclass(frozen=True)
class DonorExamination:
    height_cm: Any = ""
    weight_kg: Any = ""
    bmi: CalcResult = field(default_factory=lambda: compute_bmi(None, None))

    def with_height(self, value: Any) -> "DonorExamination":
        return replace(self, height_cm=value)

    def with_weight(self, value: Any) -> "DonorExamination":
        return replace(self, weight_kg=value)

    def calculate_bmi(self, rules: Optional[Dict[str, Any]] = None) -> "DonorExamination":
        return replace(self, bmi=compute_bmi(self.height_cm, self.weight_kg, rules))


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class PETEntry:
    id: str
    label: str
    episode: PETEpisode


@dataclass(frozen=True)
class PETSeries:
    """Ordered list of PET tests, labelled "Test 1", "Test 2", ..."""

    entries: Tuple[PETEntry, ...] = ()

    @classmethod
    def of(cls, episodes: List[PETEpisode]) -> "PETSeries":
        series = cls()
        for ep in episodes:
            series = series.add(ep)
        return series

    def add(self, episode: Optional[PETEpisode] = None) -> "PETSeries":
        entry = PETEntry(id=_new_id(), label="", episode=episode or PETEpisode())
        return self._relabel(self.entries + (entry,))

    def remove(self, entry_id: str) -> "PETSeries":
        return self._relabel(tuple(e for e in self.entries if e.id != entry_id))

    def update(self, entry_id: str, episode: PETEpisode) -> "PETSeries":
        if not any(e.id == entry_id for e in self.entries):
            raise KeyError(entry_id)
        return PETSeries(tuple(replace(e, episode=episode) if e.id == entry_id else e for e in self.entries))

    def get(self, entry_id: str) -> PETEpisode:
        for e in self.entries:
            if e.id == entry_id:
                return e.episode
        raise KeyError(entry_id)

    @staticmethod
    def _relabel(entries: Tuple[PETEntry, ...]) -> "PETSeries":
        return PETSeries(tuple(replace(e, label=f"Test {i}") for i, e in enumerate(entries, start=1)))

    def __len__(self) -> int:
        return len(self.entries)
