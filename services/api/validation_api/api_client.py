import os
import requests

from .schemas import PredictionResult

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")


def submit_prediction(features: dict, model_type: str = "default") -> PredictionResult:
    r = requests.post(
        f"{API_BASE_URL}/predict",
        json={"testData": features, "modelType": model_type},
        timeout=10,
    )
    r.raise_for_status()
    return PredictionResult.model_validate(r.json()["prediction"])


def analyze_risk(test_results: dict, domain: str | None = None) -> dict:
    body = {"testResults": test_results}
    if domain is not None:
        body["domain"] = domain
    r = requests.post(f"{API_BASE_URL}/analyze-risk", json=body, timeout=10)
    r.raise_for_status()
    return r.json()


def get_recommendations(performance_gaps: list[dict], test_data: dict | None = None) -> list[dict]:
    r = requests.post(
        f"{API_BASE_URL}/recommendations",
        json={"testData": test_data or {}, "performanceGaps": performance_gaps},
        timeout=10,
    )
    r.raise_for_status()
    return r.json()["recommendations"]


def predict_for_test(test_id: str, model_type: str = "default") -> dict:
    r = requests.post(
        f"{API_BASE_URL}/tests/{test_id}/predict",
        params={"modelType": model_type},
        timeout=30,
    )
    r.raise_for_status()
    return r.json()


def list_predictions(test_id: str | None = None, limit: int = 50) -> list[dict]:
    params = {"limit": limit}
    if test_id:
        params["testId"] = test_id
    r = requests.get(f"{API_BASE_URL}/predictions", params=params, timeout=20)
    r.raise_for_status()
    return r.json()
