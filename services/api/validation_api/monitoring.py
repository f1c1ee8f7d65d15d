from __future__ import annotations

import pandas as pd
from sqlalchemy import text

from .db import get_engine


def get_recent_predictions(limit: int = 1000) -> pd.DataFrame:
    eng = get_engine()
    q = text(
        """
        SELECT test_id, model, value, confidence, timestamp
        FROM ml_predictions
        ORDER BY timestamp DESC
        LIMIT :limit
    """
    )
    with eng.connect() as conn:
        df = pd.read_sql(q, conn, params={"limit": int(limit)})
    return df


def summarize_predictions(limit: int = 1000) -> dict:
    """
    Per-model counts and score statistics over the most recent persisted
    predictions.
    """
    df = get_recent_predictions(limit=limit)
    if df.empty:
        return {"ok": False, "error": "No predictions stored yet.", "models": []}

    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    grouped = (
        df.groupby("model")
        .agg(
            n=("test_id", "size"),
            mean_value=("value", "mean"),
            min_value=("value", "min"),
            max_value=("value", "max"),
            confidence=("confidence", "first"),
            latest=("timestamp", "max"),
        )
        .reset_index()
        .sort_values(["n", "model"], ascending=[False, True])
    )

    models = [
        {
            "model": r.model,
            "count": int(r.n),
            "meanValue": round(float(r.mean_value), 2),
            "minValue": float(r.min_value),
            "maxValue": float(r.max_value),
            "confidence": float(r.confidence),
            "latest": r.latest,
        }
        for r in grouped.itertuples(index=False)
    ]
    return {"ok": True, "window_n": int(len(df)), "models": models}
