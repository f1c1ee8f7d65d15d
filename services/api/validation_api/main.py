from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import numpy as np
from fastapi import FastAPI, HTTPException, Query
from sqlalchemy import text

from .db import (
    create_test_record,
    get_engine,
    init_db,
    list_predictions,
    list_test_records,
    load_features,
    persist_prediction,
)
from .features import build_feature_bag
from .logging_setup import logger as root_logger
from .ml_service import (
    analyze_risk_factors,
    generate_recommendations,
    predict_performance,
    utc_timestamp,
)
from .monitoring import summarize_predictions
from .schemas import (
    AnalyzeRiskRequest,
    AnalyzeRiskResponse,
    PredictRequest,
    PredictResponse,
    RecommendationsRequest,
    RecommendationsResponse,
    RecordCreated,
    StoredPrediction,
)
from .settings import settings

logger = root_logger.getChild("api")

# Seeded only when PREDICTION_SEED is set; otherwise draws from OS entropy.
rng = np.random.default_rng(settings.prediction_seed)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    yield


app = FastAPI(title="Vehicle Validation Prediction API", lifespan=lifespan)


@app.get("/health")
def health():
    return {"status": "ok", "timestamp": utc_timestamp()}


@app.get("/health/db")
def health_db():
    eng = get_engine()
    with eng.begin() as conn:
        conn.execute(text("SELECT 1"))
    return {"db": "ok"}


@app.post("/predict", response_model=PredictResponse)
def predict(req: PredictRequest):
    if req.test_data is None:
        raise HTTPException(status_code=400, detail="Missing required field: testData")
    try:
        prediction = predict_performance(
            build_feature_bag(req.test_data), req.model_type, rng=rng
        )
    except Exception as e:
        logger.exception("prediction failed")
        raise HTTPException(
            status_code=500, detail=f"Failed to generate prediction: {e}"
        )
    return PredictResponse(
        prediction=prediction,
        confidence=prediction.confidence,
        timestamp=utc_timestamp(),
    )


@app.post("/analyze-risk", response_model=AnalyzeRiskResponse)
def analyze_risk(req: AnalyzeRiskRequest):
    if req.test_results is None:
        raise HTTPException(
            status_code=400, detail="Missing required field: testResults"
        )
    try:
        assessment = analyze_risk_factors(req.test_results, req.domain)
    except Exception as e:
        logger.exception("risk analysis failed")
        raise HTTPException(status_code=500, detail=f"Failed to analyze risk: {e}")
    return AnalyzeRiskResponse(
        risk_level=assessment.overall_risk,
        factors=assessment.factors,
        recommendations=assessment.recommendations,
    )


@app.post("/recommendations", response_model=RecommendationsResponse)
def recommendations(req: RecommendationsRequest):
    try:
        recs = generate_recommendations(req.performance_gaps, req.test_data)
    except Exception as e:
        logger.exception("recommendation generation failed")
        raise HTTPException(
            status_code=500, detail=f"Failed to generate recommendations: {e}"
        )
    return RecommendationsResponse(recommendations=recs)


@app.get("/predictions")
def predictions(
    test_id: Optional[str] = Query(default=None, alias="testId"),
    limit: int = Query(default=50, ge=1, le=1000),
):
    try:
        return list_predictions(test_id=test_id, limit=limit)
    except Exception as e:
        logger.exception("listing predictions failed")
        raise HTTPException(
            status_code=500, detail=f"Failed to fetch ML predictions: {e}"
        )


@app.get("/predictions/summary")
def predictions_summary(limit: int = Query(default=1000, ge=1, le=10000)):
    return summarize_predictions(limit=limit)


@app.post("/tests/{test_id}/predict", response_model=StoredPrediction)
def predict_for_test(
    test_id: str,
    model_type: str = Query(default=settings.default_model_type, alias="modelType"),
):
    try:
        features = load_features(test_id)
        if features is None:
            raise HTTPException(status_code=404, detail=f"test {test_id} not found")

        prediction = predict_performance(features, model_type, rng=rng)
        return persist_prediction(test_id, prediction, features)

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("prediction for stored test failed", extra={"test_id": test_id})
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/test-data")
def list_test_data(
    domain: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=1000),
):
    try:
        return list_test_records(domain=domain, limit=limit)
    except Exception as e:
        logger.exception("listing test data failed")
        raise HTTPException(status_code=500, detail=f"Failed to fetch test data: {e}")


@app.post("/test-data", status_code=201, response_model=RecordCreated)
def create_test_data(doc: Dict[str, Any]):
    try:
        record_id = create_test_record(doc)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))
    except Exception as e:
        logger.exception("creating test data failed")
        raise HTTPException(status_code=500, detail=f"Failed to create test data: {e}")
    return RecordCreated(id=record_id)
