from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Literal, Optional

RiskLevel = Literal["low", "medium", "high"]


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PredictionResult(CamelModel):
    value: float = Field(..., ge=0.0, le=100.0)
    confidence: float
    model: str
    timestamp: str


class PredictRequest(CamelModel):
    test_data: Optional[Dict[str, Any]] = None
    model_type: Optional[str] = "default"


class PredictResponse(CamelModel):
    prediction: PredictionResult
    confidence: float
    timestamp: str


class RiskFactor(CamelModel):
    type: str
    severity: str
    message: str


class RiskRecommendation(CamelModel):
    action: str
    priority: str


class RiskAssessment(CamelModel):
    overall_risk: RiskLevel = "low"
    factors: List[RiskFactor] = []
    recommendations: List[RiskRecommendation] = []


class AnalyzeRiskRequest(CamelModel):
    test_results: Optional[Dict[str, Any]] = None
    domain: Optional[str] = None


class AnalyzeRiskResponse(CamelModel):
    risk_level: RiskLevel
    factors: List[RiskFactor]
    recommendations: List[RiskRecommendation]


class PerformanceGap(CamelModel):
    area: str
    current: float
    target: float


class DesignRecommendation(CamelModel):
    area: str
    current_value: float
    target_value: float
    suggestion: str
    estimated_improvement: str


class RecommendationsRequest(CamelModel):
    test_data: Optional[Dict[str, Any]] = None
    performance_gaps: List[PerformanceGap] = []


class RecommendationsResponse(CamelModel):
    recommendations: List[DesignRecommendation]
    priority: str = "high"
    estimated_impact: str = "medium"


class StoredPrediction(CamelModel):
    test_id: str
    value: float
    confidence: float
    model: str
    timestamp: str
    features: Dict[str, float] = {}


class RecordCreated(CamelModel):
    id: str
    message: str = "Test data created successfully"
