import copy
import dataclasses
import pickle

import pytest

from renalcalc.measurements import MeasurementSet, Quantity, TimePoint, measurement_key, split_key


def test_measurement_key():
    assert measurement_key(Quantity.DIALYSATE_CREATININE, TimePoint.T4) == "dialysateCreatinine@T4"
    assert measurement_key(Quantity.BODY_WEIGHT_KG) == "bodyWeightKg"


def test_measurement_key_rejects_wrong_shape():
    with pytest.raises(ValueError):
        measurement_key(Quantity.SERUM_CREATININE)
    with pytest.raises(ValueError):
        measurement_key(Quantity.BODY_WEIGHT_KG, TimePoint.T0)


def test_split_key():
    assert split_key("serumCreatinine@T0") == (Quantity.SERUM_CREATININE, TimePoint.T0)
    assert split_key("bloodUreaMgDl") == (Quantity.BLOOD_UREA_MG_DL, None)
    with pytest.raises(ValueError):
        split_key("serumCreatinine@T9")
    with pytest.raises(ValueError):
        split_key("a.b.c")


def test_with_value_returns_new_set():
    empty = MeasurementSet.empty()
    ms = empty.with_value(Quantity.SERUM_CREATININE, "1.1", TimePoint.T0)
    assert len(empty) == 0
    assert ms.get(Quantity.SERUM_CREATININE, TimePoint.T0) == 1.1
    assert ms.raw(Quantity.SERUM_CREATININE, TimePoint.T0) == "1.1"


def test_get_treats_garbage_as_missing():
    ms = MeasurementSet.from_mapping({"bodyWeightKg": "seventy"})
    assert ms.get(Quantity.BODY_WEIGHT_KG) is None
    assert ms.raw(Quantity.BLOOD_UREA_MG_DL) == ""
    assert ms.get(Quantity.BLOOD_UREA_MG_DL) is None


def test_value_semantics():
    a = MeasurementSet.from_mapping({"bodyWeightKg": "70"})
    b = MeasurementSet.empty().with_values({"bodyWeightKg": "70"})
    assert a == b
    assert hash(a) == hash(b)
    assert a != b.with_value(Quantity.BODY_WEIGHT_KG, "71")


def test_set_is_read_only():
    ms = MeasurementSet.from_mapping({"bodyWeightKg": "70"})
    with pytest.raises(dataclasses.FrozenInstanceError):
        ms._values = {}
    d = ms.to_dict()
    d["bodyWeightKg"] = "80"
    assert ms.get(Quantity.BODY_WEIGHT_KG) == 70.0


def test_is_blank():
    assert MeasurementSet.empty().is_blank()
    assert MeasurementSet.from_mapping({"bodyWeightKg": "  "}).is_blank()
    assert not MeasurementSet.from_mapping({"bodyWeightKg": "0"}).is_blank()


def test_unknown_keys_rejected():
    with pytest.raises(ValueError):
        MeasurementSet.from_mapping({"examination.bmi": "22"})


def test_timepoints():
    assert TimePoint.T2.has_serum_sample
    assert not TimePoint.T3.has_serum_sample
    assert TimePoint.T4.hour == 4


def test_hash_agrees_with_equality():
    a = MeasurementSet.from_mapping({"bodyWeightKg": 1})
    b = MeasurementSet.from_mapping({"bodyWeightKg": 1.0})
    assert a == b
    assert hash(a) == hash(b)
    assert len({a, b}) == 1
    assert MeasurementSet.from_mapping({"bodyWeightKg": "1"}) != a


def test_unhashable_values_still_hash():
    a = MeasurementSet.from_mapping({"bodyWeightKg": [70]})
    assert hash(a) == hash(MeasurementSet.from_mapping({"bodyWeightKg": [70]}))


def test_copy_and_pickle():
    ms = MeasurementSet.from_mapping({"serumCreatinine@T0": "1.2"})
    assert copy.deepcopy(ms) == ms
    assert pickle.loads(pickle.dumps(ms)) == ms
