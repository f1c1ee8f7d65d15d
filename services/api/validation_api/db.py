from __future__ import annotations

import json
import uuid
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from .features import build_feature_bag
from .logging_setup import logger as root_logger
from .ml_service import utc_timestamp
from .schemas import PredictionResult, StoredPrediction
from .settings import settings

logger = root_logger.getChild("db")

_engine: Engine | None = None

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS ml_predictions (
        test_id VARCHAR(128) PRIMARY KEY,
        model VARCHAR(64) NOT NULL,
        value DOUBLE PRECISION NOT NULL,
        confidence DOUBLE PRECISION NOT NULL,
        timestamp VARCHAR(32) NOT NULL,
        features TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS test_data (
        id VARCHAR(64) PRIMARY KEY,
        test_name VARCHAR(256) NOT NULL,
        domain VARCHAR(64) NOT NULL,
        timestamp VARCHAR(32) NOT NULL,
        doc TEXT NOT NULL
    )
    """,
)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_engine(settings.database_url, pool_pre_ping=True)
    return _engine


def init_db() -> None:
    eng = get_engine()
    with eng.begin() as conn:
        for ddl in SCHEMA:
            conn.execute(text(ddl))


def persist_prediction(
    test_id: str, prediction: PredictionResult, features: dict | None = None
) -> StoredPrediction:
    """
    Store ``prediction`` under ``test_id``, replacing any earlier prediction
    for the same test.
    """
    if not test_id:
        raise ValueError("test_id is required to persist a prediction")

    stored = StoredPrediction(
        test_id=test_id,
        value=prediction.value,
        confidence=prediction.confidence,
        model=prediction.model,
        timestamp=prediction.timestamp,
        features=build_feature_bag(features),
    )
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(
            text(
                """
                INSERT INTO ml_predictions (test_id, model, value, confidence, timestamp, features)
                VALUES (:test_id, :model, :value, :confidence, :timestamp, :features)
                ON CONFLICT (test_id) DO UPDATE SET
                    model = excluded.model,
                    value = excluded.value,
                    confidence = excluded.confidence,
                    timestamp = excluded.timestamp,
                    features = excluded.features
            """
            ),
            {
                "test_id": stored.test_id,
                "model": stored.model,
                "value": float(stored.value),
                "confidence": float(stored.confidence),
                "timestamp": stored.timestamp,
                "features": json.dumps(stored.features),
            },
        )
    logger.info(
        "prediction persisted",
        extra={"test_id": test_id, "model_type": stored.model},
    )
    return stored


def list_predictions(test_id: str | None = None, limit: int = 50) -> list[dict]:
    where = "WHERE test_id = :test_id" if test_id else ""
    q = text(
        f"""
        SELECT test_id, model, value, confidence, timestamp, features
        FROM ml_predictions
        {where}
        ORDER BY timestamp DESC
        LIMIT :limit
    """
    )
    params: dict[str, Any] = {"limit": int(limit)}
    if test_id:
        params["test_id"] = test_id

    eng = get_engine()
    with eng.begin() as conn:
        rows = conn.execute(q, params).mappings().all()

    out = []
    for row in rows:
        d = dict(row)
        d["features"] = json.loads(d["features"] or "{}")
        out.append(StoredPrediction(**d).model_dump(by_alias=True))
    return out


def create_test_record(doc: dict) -> str:
    """Insert a test record and return its generated id."""
    if not doc.get("testName") or not doc.get("domain"):
        raise ValueError("Missing required fields: testName, domain")

    record_id = uuid.uuid4().hex
    # the row id is generated here; a client-supplied "id" is not kept
    record = {k: v for k, v in doc.items() if k != "id"}
    record["timestamp"] = utc_timestamp()
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(
            text(
                """
                INSERT INTO test_data (id, test_name, domain, timestamp, doc)
                VALUES (:id, :test_name, :domain, :timestamp, :doc)
            """
            ),
            {
                "id": record_id,
                "test_name": str(record["testName"]),
                "domain": str(record["domain"]),
                "timestamp": record["timestamp"],
                "doc": json.dumps(record, default=str),
            },
        )
    logger.info("test record created", extra={"test_id": record_id})
    return record_id


def _record_from_row(row) -> dict:
    return {**json.loads(row["doc"]), "id": row["id"]}


def list_test_records(domain: str | None = None, limit: int = 100) -> list[dict]:
    where = "WHERE domain = :domain" if domain else ""
    q = text(
        f"""
        SELECT id, doc FROM test_data
        {where}
        ORDER BY timestamp DESC
        LIMIT :limit
    """
    )
    params: dict[str, Any] = {"limit": int(limit)}
    if domain:
        params["domain"] = domain

    eng = get_engine()
    with eng.begin() as conn:
        rows = conn.execute(q, params).mappings().all()
    return [_record_from_row(r) for r in rows]


def get_test_record(test_id: str) -> dict | None:
    eng = get_engine()
    with eng.begin() as conn:
        row = (
            conn.execute(
                text("SELECT id, doc FROM test_data WHERE id = :id"),
                {"id": test_id},
            )
            .mappings()
            .first()
        )
    if not row:
        return None
    return _record_from_row(row)


def load_features(test_id: str) -> dict[str, float] | None:
    """Feature bag for a stored test record, or None if the test is unknown."""
    record = get_test_record(test_id)
    if record is None:
        return None
    return build_feature_bag(record)
