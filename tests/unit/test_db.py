"""Storage tests against an in-memory SQLite database."""

import pytest

from validation_api import db
from validation_api.ml_service import predict_performance
from validation_api.schemas import PredictionResult


def _prediction(value=53.3, model="remainingLife", ts="2025-03-01T10:00:00.000Z"):
    return PredictionResult(value=value, confidence=0.88, model=model, timestamp=ts)


def test_persist_and_list_prediction(engine):
    stored = db.persist_prediction("test_01", _prediction(), {"peakStrain": 500})
    assert stored.test_id == "test_01"

    rows = db.list_predictions()
    assert rows == [
        {
            "testId": "test_01",
            "value": 53.3,
            "confidence": 0.88,
            "model": "remainingLife",
            "timestamp": "2025-03-01T10:00:00.000Z",
            "features": {"peakStrain": 500.0},
        }
    ]


def test_persist_overwrites_same_test(engine):
    db.persist_prediction("test_01", _prediction(value=10.0))
    db.persist_prediction(
        "test_01", _prediction(value=90.0, model="brakeFade", ts="2025-03-02T10:00:00.000Z")
    )
    rows = db.list_predictions()
    assert len(rows) == 1
    assert rows[0]["value"] == 90.0
    assert rows[0]["model"] == "brakeFade"


def test_list_predictions_filter_order_and_limit(engine):
    db.persist_prediction("a", _prediction(ts="2025-03-01T10:00:00.000Z"))
    db.persist_prediction("b", _prediction(ts="2025-03-03T10:00:00.000Z"))
    db.persist_prediction("c", _prediction(ts="2025-03-02T10:00:00.000Z"))

    assert [r["testId"] for r in db.list_predictions()] == ["b", "c", "a"]
    assert [r["testId"] for r in db.list_predictions(limit=2)] == ["b", "c"]
    assert [r["testId"] for r in db.list_predictions(test_id="c")] == ["c"]


def test_persist_requires_test_id(engine):
    with pytest.raises(ValueError):
        db.persist_prediction("", _prediction())


def test_test_records_roundtrip_and_features(engine, suspension_record):
    record_id = db.create_test_record(suspension_record)

    record = db.get_test_record(record_id)
    assert record["id"] == record_id
    assert record["testName"] == "Rough Road Endurance"
    assert record["timestamp"].endswith("Z")

    features = db.load_features(record_id)
    assert features == {"peakStrain": 500.0, "minerDamageTotal": 0.4, "cycleCount": 10000.0}

    # feature bag from storage drives the engine the same way a request body does
    assert predict_performance(features, "remainingLife").value == pytest.approx(53.333, abs=1e-3)


def test_list_test_records_by_domain(engine):
    db.create_test_record({"testName": "Panic Stop", "domain": "Safety"})
    db.create_test_record({"testName": "Cabin Boom", "domain": "NVH"})

    safety = db.list_test_records(domain="Safety")
    assert [r["testName"] for r in safety] == ["Panic Stop"]
    assert len(db.list_test_records()) == 2
    assert len(db.list_test_records(limit=1)) == 1


def test_create_test_record_validates_required_fields(engine):
    with pytest.raises(ValueError, match="testName, domain"):
        db.create_test_record({"testName": "No domain"})


def test_unknown_test(engine):
    assert db.get_test_record("missing") is None
    assert db.load_features("missing") is None


def test_client_supplied_id_does_not_replace_row_id(engine):
    record_id = db.create_test_record(
        {"testName": "Washboard", "domain": "Ride", "id": "spoof", "wheelTravel": 80}
    )

    listed = db.list_test_records()
    assert [r["id"] for r in listed] == [record_id]
    assert db.get_test_record(record_id)["id"] == record_id
    assert db.get_test_record("spoof") is None
    assert db.load_features(record_id) == {"wheelTravel": 80.0}
