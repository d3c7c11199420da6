import pytest

pytest.importorskip("gradio")

from renalcalc.classify import AdequacyAssessment, TransporterCategory  # noqa: E402
from renalcalc.episodes import EpisodeSlot, PETEpisode, PETSeries  # noqa: E402
from renalcalc.measurements import Quantity, TimePoint  # noqa: E402
from renalcalc.ui import (  # noqa: E402
    ADEQUACY_QUANTITIES,
    PET_FIELDS,
    _assessment_choice,
    _file_path,
    adequacy_episode_from_form,
    build_demo,
    pet_episode_from_form,
    pet_form_values,
    pet_result_values,
    series_choices,
    store_pet_form,
)


def _form(date="2024-01-01", cr="", gl=""):
    vals = [""] * len(PET_FIELDS)
    vals[PET_FIELDS.index((Quantity.SERUM_CREATININE, TimePoint.T0))] = "1.2"
    vals[PET_FIELDS.index((Quantity.DIALYSATE_CREATININE, TimePoint.T4))] = "0.8"
    return [date, cr, gl] + vals


def test_pet_grid_has_no_late_serum_fields():
    assert (Quantity.SERUM_CREATININE, TimePoint.T2) in PET_FIELDS
    assert (Quantity.SERUM_CREATININE, TimePoint.T3) not in PET_FIELDS
    assert len(PET_FIELDS) == 13


def test_pet_episode_from_form():
    ep = pet_episode_from_form(*_form(cr="Low Transporter", gl="bogus"), slot=EpisodeSlot.SECOND)
    assert ep.slot is EpisodeSlot.SECOND
    assert ep.date == "2024-01-01"
    assert ep.creatinine_class is TransporterCategory.LOW
    assert ep.glucose_class is None
    assert not ep.results.dp_creatinine.calculated
    assert ep.calculate().results.dp_creatinine.display() == "0.667"


def test_store_pet_form_keeps_slot_and_stale_results():
    series = PETSeries.of([PETEpisode(slot=EpisodeSlot.FIRST)])
    eid = series.entries[0].id
    series = store_pet_form(series, eid, *_form())
    stored = series.get(eid)
    assert stored.slot is EpisodeSlot.FIRST
    assert stored.measurements.raw(Quantity.SERUM_CREATININE, TimePoint.T0) == "1.2"
    assert not stored.results.dp_creatinine.calculated

    series = series.update(eid, stored.calculate())
    series = store_pet_form(series, eid, *_form(date="2024-02-02"))
    assert series.get(eid).date == "2024-02-02"
    assert series.get(eid).results.dp_creatinine.value == 0.667


def test_store_pet_form_ignores_unknown_entry():
    series = PETSeries().add()
    assert store_pet_form(series, "missing", *_form()) is series
    assert store_pet_form(series, None, *_form()) is series


def test_pet_form_values_roundtrip():
    ep = pet_episode_from_form(*_form(cr="High Transporter"))
    values = pet_form_values(ep)
    assert values[:3] == ["2024-01-01", "High Transporter", ""]
    assert pet_episode_from_form(*values) == ep


def test_pet_result_values():
    ep = pet_episode_from_form(*_form()).calculate()
    dp, dp_hint, dd0, dd0_hint, md = pet_result_values(ep)
    assert dp == "0.667"
    assert dp_hint == "Reference band: High Average Transporter"
    assert dd0 == "Not calculated"
    assert dd0_hint == "Reference band: —"
    assert md.startswith("### PET")


def test_series_choices_follow_labels():
    series = PETSeries.of([PETEpisode(), PETEpisode()])
    series = series.remove(series.entries[0].id)
    assert series_choices(series) == [("Test 1", series.entries[0].id)]


def test_adequacy_episode_from_form():
    vals = ["70", "8", "", "100"]
    assert len(vals) == len(ADEQUACY_QUANTITIES)
    ep = adequacy_episode_from_form("First", "", "Doe", "Inadequate", *vals)
    assert ep.assessment is AdequacyAssessment.INADEQUATE
    assert _assessment_choice(ep.assessment) == "Inadequate"
    assert _assessment_choice(AdequacyAssessment.UNSET) == "Not assessed"
    assert ep.calculate().results.v_value.display() == "40.60"


def test_file_path():
    assert _file_path("/tmp/a.json") == "/tmp/a.json"
    assert _file_path({"name": "/tmp/b.json"}) == "/tmp/b.json"
    assert _file_path(None) is None


def test_build_demo():
    assert build_demo({}) is not None
