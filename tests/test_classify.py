import pytest

from renalcalc.calcs import CalcResult
from renalcalc.classify import (
    AdequacyAssessment,
    TransporterCategory,
    adequacy_badge,
    meets_adequacy_target,
    suggest_creatinine_category,
    suggest_glucose_category,
)


def test_transporter_labels():
    assert TransporterCategory.labels() == [
        "High Transporter",
        "High Average Transporter",
        "Low Average Transporter",
        "Low Transporter",
    ]


def test_from_label_normalizes():
    assert TransporterCategory.from_label("High-Average Transporter") is TransporterCategory.HIGH_AVERAGE
    assert TransporterCategory.from_label("  low   transporter ") is TransporterCategory.LOW
    assert TransporterCategory.from_label("") is None
    assert TransporterCategory.from_label(None) is None


def test_from_label_rejects_unknown():
    with pytest.raises(ValueError):
        TransporterCategory.from_label("Fast Transporter")


def test_adequacy_target_is_inclusive():
    assert meets_adequacy_target(1.7) is True
    assert meets_adequacy_target(CalcResult(1.7)) is True
    assert meets_adequacy_target(1.699) is False
    assert meets_adequacy_target(None) is None
    assert meets_adequacy_target(CalcResult(None)) is None


def test_adequacy_target_configurable():
    rules = {"adequacy": {"total_ktv_target": 2.0}}
    assert meets_adequacy_target(1.9, rules) is False
    assert meets_adequacy_target(2.0, rules) is True


def test_adequacy_badge():
    assert adequacy_badge(1.8) == "default"
    assert adequacy_badge(1.2) == "destructive"
    assert adequacy_badge(None) == "destructive"


def test_assessment_flag_roundtrip():
    assert AdequacyAssessment.from_flag(None) is AdequacyAssessment.UNSET
    assert AdequacyAssessment.from_flag(True).as_flag() is True
    assert AdequacyAssessment.from_flag(False).as_flag() is False
    assert AdequacyAssessment.UNSET.as_flag() is None


@pytest.mark.parametrize("ratio,expected", [
    (0.82, TransporterCategory.HIGH),
    (0.81, TransporterCategory.HIGH_AVERAGE),
    (0.65, TransporterCategory.HIGH_AVERAGE),
    (0.645, None),
    (0.64, TransporterCategory.LOW_AVERAGE),
    (0.5, TransporterCategory.LOW_AVERAGE),
    (0.49, TransporterCategory.LOW),
    (None, None),
])
def test_creatinine_reference_band(ratio, expected):
    assert suggest_creatinine_category(ratio) is expected


@pytest.mark.parametrize("ratio,expected", [
    (0.25, TransporterCategory.HIGH),
    (0.26, TransporterCategory.HIGH_AVERAGE),
    (0.385, None),
    (0.49, TransporterCategory.LOW_AVERAGE),
    (0.5, TransporterCategory.LOW),
])
def test_glucose_reference_band(ratio, expected):
    assert suggest_glucose_category(ratio) is expected


def test_reference_band_accepts_calc_result():
    assert suggest_creatinine_category(CalcResult(0.9)) is TransporterCategory.HIGH
    assert suggest_creatinine_category(CalcResult(None)) is None
