# -*- coding: utf-8 -*-
"""
Conversion between episodes and the JSON payloads exchanged with the REST
backend / saved case files.

Payload shapes follow the forms: PET measurements nested per time point
(``{"t0": {"serumCreatinine": "1.2", ...}}``), adequacy fields flat and
camelCase. Stored ratios are never trusted; they are recomputed on import.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from .classify import AdequacyAssessment, TransporterCategory
from .episodes import AdequacyEpisode, EpisodeSlot, PETEpisode, PETSeries
from .measurements import PET_QUANTITIES, MeasurementSet, Quantity, TimePoint, measurement_key
from .version import APP_VERSION, SCHEMA_VERSION

logger = logging.getLogger(__name__)

SCHEMA = "renal_episode"
KIND_PET = "pet"
KIND_ADEQUACY = "adequacy"
KIND_PET_SERIES = "pet_series"

Episode = Union[PETEpisode, AdequacyEpisode]
Loaded = Union[PETEpisode, AdequacyEpisode, PETSeries]

# payload field -> quantity
ADEQUACY_FIELDS: Dict[str, Quantity] = {
    "bodyWeight": Quantity.BODY_WEIGHT_KG,
    "dialysateUreaVolume": Quantity.DIALYSATE_UREA_VOLUME_L,
    "urineUreaVolume": Quantity.URINE_UREA_VOLUME_L,
    "bloodUrea": Quantity.BLOOD_UREA_MG_DL,
}


def _text(v: Any) -> str:
    return "" if v is None else str(v)


def _category(label: Any) -> Optional[TransporterCategory]:
    try:
        return TransporterCategory.from_label(label)
    except ValueError:
        logger.warning("Dropping unknown transporter category %r", label)
        return None


def _slot(v: Any) -> Optional[EpisodeSlot]:
    try:
        return EpisodeSlot(v) if v else None
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# PET
# ---------------------------------------------------------------------------

def pet_payload_to_measurements(payload: Dict[str, Any]) -> MeasurementSet:
    values: Dict[str, Any] = {}
    timed = (payload or {}).get("measurements") or {}
    if not isinstance(timed, dict):
        return MeasurementSet.empty()
    for tp in TimePoint:
        row = timed.get(tp.value.lower()) or {}
        if not isinstance(row, dict):
            continue
        for q in PET_QUANTITIES:
            if q.value in row:
                values[measurement_key(q, tp)] = row[q.value]
    return MeasurementSet.from_mapping(values)


def pet_measurements_to_payload(measurements: MeasurementSet) -> Dict[str, Dict[str, str]]:
    return {
        tp.value.lower(): {q.value: _text(measurements.raw(q, tp)) for q in PET_QUANTITIES}
        for tp in TimePoint
    }


def payload_to_pet_episode(payload: Dict[str, Any], slot: Optional[EpisodeSlot] = None) -> PETEpisode:
    payload = payload if isinstance(payload, dict) else {}
    episode = PETEpisode(
        slot=slot or _slot(payload.get("slot")),
        date=_text(payload.get("date")),
        measurements=pet_payload_to_measurements(payload),
        creatinine_class=_category(payload.get("creatinineClassification")),
        glucose_class=_category(payload.get("glucoseClassification")),
    )
    return episode.calculate()


def pet_episode_to_payload(episode: PETEpisode) -> Dict[str, Any]:
    res = episode.results
    return {
        "slot": episode.slot.value if episode.slot else None,
        "date": episode.date,
        "measurements": pet_measurements_to_payload(episode.measurements),
        # backend stores "" for a ratio that was not calculated
        "dpCreatinine": res.dp_creatinine.display() if res.dp_creatinine.calculated else "",
        "dd0Glucose": res.dd0_glucose.display() if res.dd0_glucose.calculated else "",
        "creatinineClassification": episode.creatinine_class.value if episode.creatinine_class else "",
        "glucoseClassification": episode.glucose_class.value if episode.glucose_class else "",
    }


def seed_pet_entries(pet_results: Dict[str, Any]) -> List[PETEpisode]:
    """
    Legacy ``{"first": {"date", "data"}, "second": ..., "third": ...}`` seeds
    to PET episodes. Seeds with neither a date nor any value are dropped.
    """
    episodes: List[PETEpisode] = []
    for slot in EpisodeSlot:
        seed = (pet_results or {}).get(slot.value)
        if not isinstance(seed, dict):
            continue
        data = seed.get("data")
        if isinstance(data, dict):
            payload = dict(data)
            payload.setdefault("date", seed.get("date") or "")
        else:
            payload = {"date": seed.get("date") or ""}
        episode = payload_to_pet_episode(payload, slot)
        if not episode.is_blank():
            episodes.append(episode)
    return episodes


# ---------------------------------------------------------------------------
# Adequacy
# ---------------------------------------------------------------------------

def adequacy_payload_to_measurements(payload: Dict[str, Any]) -> MeasurementSet:
    values: Dict[str, Any] = {}
    for name, q in ADEQUACY_FIELDS.items():
        if name in (payload or {}):
            values[measurement_key(q)] = payload[name]
    return MeasurementSet.from_mapping(values)


def payload_to_adequacy_episode(payload: Dict[str, Any], slot: Optional[EpisodeSlot] = None) -> AdequacyEpisode:
    payload = payload if isinstance(payload, dict) else {}
    flag = payload.get("isAdequate")
    episode = AdequacyEpisode(
        slot=slot or _slot(payload.get("slot")),
        date=_text(payload.get("date")),
        patient_name=_text(payload.get("patientName")),
        measurements=adequacy_payload_to_measurements(payload),
        assessment=AdequacyAssessment.from_flag(flag if isinstance(flag, bool) else None),
    )
    return episode.calculate()


def adequacy_episode_to_payload(episode: AdequacyEpisode) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "slot": episode.slot.value if episode.slot else None,
        "date": episode.date,
        "patientName": episode.patient_name,
    }
    for name, q in ADEQUACY_FIELDS.items():
        out[name] = _text(episode.measurements.raw(q))
    for name, res in (
        ("vValue", episode.results.v_value),
        ("peritonealKtV", episode.results.peritoneal_ktv),
        ("renalKtV", episode.results.renal_ktv),
        ("totalKtV", episode.results.total_ktv),
    ):
        out[name] = res.display() if res.calculated else ""
    out["isAdequate"] = episode.assessment.as_flag()
    return out


# ---------------------------------------------------------------------------
# Saved case files
# ---------------------------------------------------------------------------

def is_saved_episode(obj: Any) -> bool:
    return isinstance(obj, dict) and obj.get("schema") == SCHEMA


def build_saved_episode(episode: Episode) -> Dict[str, Any]:
    if isinstance(episode, PETEpisode):
        kind, data = KIND_PET, pet_episode_to_payload(episode)
    elif isinstance(episode, AdequacyEpisode):
        kind, data = KIND_ADEQUACY, adequacy_episode_to_payload(episode)
    else:
        raise TypeError(f"Cannot save {type(episode).__name__}")
    return {
        "schema": SCHEMA,
        "schema_version": SCHEMA_VERSION,
        "app_version": APP_VERSION,
        "saved_at": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "kind": kind,
        "data": data,
    }


def migrate_payload(payload: Any) -> Tuple[Optional[str], Optional[Loaded], str]:
    """
    Accepts:
      - Current format: {"schema":"renal_episode","schema_version":N,"kind":..,"data":{...}}
      - Legacy form payloads: a bare PET payload (has "measurements") or a
        bare adequacy payload (has any of bodyWeight/bloodUrea/...).
      - Legacy PET seeds: {"first": {"date", "data"}, "second": ..., "third": ...},
        optionally wrapped in "petResults"; loaded as a PETSeries.
    Returns (kind, episode, info_message); kind/episode are None if nothing
    could be read.
    """
    if not isinstance(payload, dict):
        return None, None, "Invalid file (not a JSON object)."

    if is_saved_episode(payload) and isinstance(payload.get("data"), dict):
        kind = payload.get("kind")
        ver = payload.get("schema_version", "?")
        if kind == KIND_PET:
            return KIND_PET, payload_to_pet_episode(payload["data"]), f"PET test loaded (schema v{ver})."
        if kind == KIND_ADEQUACY:
            return KIND_ADEQUACY, payload_to_adequacy_episode(payload["data"]), f"Adequacy test loaded (schema v{ver})."
        return None, None, f"Unknown episode kind: {kind!r}."

    if isinstance(payload.get("measurements"), dict):
        return KIND_PET, payload_to_pet_episode(payload), "PET test loaded (legacy format)."
    if any(k in payload for k in ADEQUACY_FIELDS):
        return KIND_ADEQUACY, payload_to_adequacy_episode(payload), "Adequacy test loaded (legacy format)."

    seeds = payload.get("petResults") if isinstance(payload.get("petResults"), dict) else payload
    if any(isinstance(seeds.get(s.value), dict) for s in EpisodeSlot):
        episodes = seed_pet_entries(seeds)
        if not episodes:
            return None, None, "PET seeds found, but all of them are empty."
        return KIND_PET_SERIES, PETSeries.of(episodes), f"{len(episodes)} PET test(s) loaded (legacy seeds)."

    return None, None, "No PET or adequacy data found in file."
