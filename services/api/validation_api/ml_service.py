"""
Heuristic prediction engine for vehicle-validation test data.

Each model type averages two or three sub-scores, each a saturating linear
transform of one named feature, and reports a fixed confidence. These are
stand-ins for trained models: the confidence is editorial, not computed.
"""
from __future__ import annotations

import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

import numpy as np

from .features import coerce_number
from .logging_setup import logger as root_logger
from .schemas import (
    DesignRecommendation,
    PerformanceGap,
    PredictionResult,
    RiskAssessment,
    RiskFactor,
    RiskRecommendation,
)

logger = root_logger.getChild("ml")

SCORE_MIN = 0.0
SCORE_MAX = 100.0
DEFAULT_BASELINE = 75.0
DEFAULT_JITTER = 10.0
# Sub-scores are bounded to this before averaging so an overflowing transform
# cannot turn the mean into NaN.
_FINITE_LIMIT = sys.float_info.max / 4


class ModelType(str, Enum):
    REMAINING_LIFE = "remainingLife"
    FAILURE_RISK = "failureRisk"
    BRAKE_FADE = "brakeFade"
    SQUEAL_LIKELIHOOD = "squealLikelihood"
    FASTENER_LOOSENING = "fastenerLoosening"
    BOTTOM_OUT = "bottomOut"
    RIDE_DISCOMFORT = "rideDiscomfort"
    NVH_COMPLIANCE = "nvhCompliance"
    WARRANTY_CLAIM = "warrantyClaim"
    DEFAULT = "default"

    @classmethod
    def resolve(cls, tag: str | None) -> "ModelType":
        """Map a request tag onto a model type; unknown tags fall back to DEFAULT."""
        if tag is None:
            return cls.DEFAULT
        try:
            return cls(tag)
        except ValueError:
            logger.warning(
                "Unknown model type, using default heuristic",
                extra={"model_type": tag},
            )
            return cls.DEFAULT


MODEL_CONFIDENCE: dict[ModelType, float] = {
    ModelType.REMAINING_LIFE: 0.88,
    ModelType.FAILURE_RISK: 0.82,
    ModelType.BRAKE_FADE: 0.90,
    ModelType.SQUEAL_LIKELIHOOD: 0.85,
    ModelType.FASTENER_LOOSENING: 0.87,
    ModelType.BOTTOM_OUT: 0.86,
    ModelType.RIDE_DISCOMFORT: 0.89,
    ModelType.NVH_COMPLIANCE: 0.84,
    ModelType.WARRANTY_CLAIM: 0.83,
    ModelType.DEFAULT: 0.85,
}


def _clamp(x: float) -> float:
    return float(np.clip(x, SCORE_MIN, SCORE_MAX))


def _feature(features: Mapping[str, Any], name: str) -> float | None:
    return coerce_number(features.get(name))


def _scored(
    features: Mapping[str, Any],
    name: str,
    transform: Callable[[float], float],
    default: float,
) -> float:
    x = _feature(features, name)
    return default if x is None else transform(x)


def _remaining_life(f: Mapping[str, Any]) -> list[float]:
    return [
        _scored(f, "peakStrain", lambda x: max(0.0, 100 - x / 25), 50),
        _scored(f, "cycleCount", lambda x: min(100.0, x / 500), 50),
        _scored(f, "minerDamageTotal", lambda x: max(0.0, 100 - x * 100), 50),
    ]


def _failure_risk(f: Mapping[str, Any]) -> list[float]:
    return [
        _scored(f, "peakStrain", lambda x: min(100.0, x / 20), 50),
        _scored(f, "asymmetryMetrics", lambda x: min(100.0, x * 5), 30),
        _scored(f, "driftIndicators", lambda x: min(100.0, x * 1000), 20),
    ]


def _brake_fade(f: Mapping[str, Any]) -> list[float]:
    return [
        _scored(f, "brakeTemperature", lambda x: min(100.0, x / 5), 50),
        _scored(f, "brakePressure", lambda x: min(100.0, x / 0.7), 50),
        _scored(f, "fadeSlope", lambda x: max(0.0, 100 + x * 500), 50),
    ]


def _squeal_likelihood(f: Mapping[str, Any]) -> list[float]:
    return [
        _scored(f, "dominantFrequency", lambda x: min(100.0, x / 30), 50),
        _scored(f, "splMax", lambda x: min(100.0, x / 1.1), 50),
        _scored(f, "orderAmplitude", lambda x: min(100.0, x * 200), 50),
    ]


def _fastener_loosening(f: Mapping[str, Any]) -> list[float]:
    return [
        _scored(f, "clampLoadLossRate", lambda x: min(100.0, abs(x) * 1000), 30),
        _scored(f, "vibrationRMS", lambda x: min(100.0, x * 150), 40),
        _scored(f, "shockVelocity", lambda x: min(100.0, x * 25), 30),
    ]


def _bottom_out(f: Mapping[str, Any]) -> list[float]:
    return [
        _scored(f, "shockVelocity", lambda x: min(100.0, x * 25), 50),
        _scored(f, "wheelTravel", lambda x: min(100.0, x / 2), 50),
        _scored(f, "verticalAcceleration", lambda x: min(100.0, x * 100), 50),
    ]


def _ride_discomfort(f: Mapping[str, Any]) -> list[float]:
    # two sub-scores only
    return [
        _scored(f, "iso2631WeightedRMS", lambda x: max(0.0, 100 - x * 100), 50),
        _scored(f, "exposureHours", lambda x: max(0.0, 100 - x * 10), 50),
    ]


def _nvh_compliance(f: Mapping[str, Any]) -> list[float]:
    return [
        _scored(f, "splMax", lambda x: max(0.0, 100 - (x - 70) * 2), 50),
        _scored(f, "dominantFrequency", lambda x: 30.0 if x > 2000 else 70.0, 50),
        _scored(f, "vibrationRMS", lambda x: max(0.0, 100 - x * 200), 50),
    ]


def _warranty_claim(f: Mapping[str, Any]) -> list[float]:
    return [
        _scored(f, "failureRiskScore", lambda x: x * 100, 30),
        _scored(f, "complianceRate", lambda x: 100 - x * 100, 20),
        _scored(f, "performanceVariability", lambda x: min(100.0, x * 5), 50),
    ]


_SUB_SCORES: dict[ModelType, Callable[[Mapping[str, Any]], list[float]]] = {
    ModelType.REMAINING_LIFE: _remaining_life,
    ModelType.FAILURE_RISK: _failure_risk,
    ModelType.BRAKE_FADE: _brake_fade,
    ModelType.SQUEAL_LIKELIHOOD: _squeal_likelihood,
    ModelType.FASTENER_LOOSENING: _fastener_loosening,
    ModelType.BOTTOM_OUT: _bottom_out,
    ModelType.RIDE_DISCOMFORT: _ride_discomfort,
    ModelType.NVH_COMPLIANCE: _nvh_compliance,
    ModelType.WARRANTY_CLAIM: _warranty_claim,
}


def utc_timestamp() -> str:
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def sub_scores(features: Mapping[str, Any], model_type: ModelType) -> list[float]:
    """Per-feature sub-scores for a named model; empty for DEFAULT."""
    scorer = _SUB_SCORES.get(model_type)
    return [] if scorer is None else [float(s) for s in scorer(features)]


def predict_performance(
    features: Mapping[str, Any] | None,
    model_type: str | ModelType = "default",
    rng: np.random.Generator | None = None,
) -> PredictionResult:
    """
    Score ``features`` with the heuristic selected by ``model_type``.

    Never raises on missing features: every absent or non-finite feature takes
    its documented default. Unknown model types use the default heuristic,
    75 plus a uniform draw on [-10, 10] from ``rng``.
    """
    features = features or {}
    if isinstance(model_type, ModelType):
        model_type = model_type.value
    kind = ModelType.resolve(model_type)

    if kind is ModelType.DEFAULT:
        rng = rng if rng is not None else np.random.default_rng()
        raw = DEFAULT_BASELINE + float(rng.uniform(-DEFAULT_JITTER, DEFAULT_JITTER))
    else:
        scores = np.clip(sub_scores(features, kind), -_FINITE_LIMIT, _FINITE_LIMIT)
        raw = float(scores.sum() / len(scores))

    value = _clamp(raw)
    confidence = MODEL_CONFIDENCE[kind]
    logger.debug(
        "prediction computed",
        extra={"model_type": kind.value, "value": value, "confidence": confidence},
    )
    return PredictionResult(
        value=value,
        confidence=confidence,
        model=model_type if model_type is not None else kind.value,
        timestamp=utc_timestamp(),
    )


_RISK_ORDER = ("low", "medium", "high")


def _escalate(current: str, to: str) -> str:
    return max(current, to, key=_RISK_ORDER.index)


def analyze_risk_factors(
    test_results: Mapping[str, Any], domain: str | None = None
) -> RiskAssessment:
    """
    Apply the compliance and variability threshold rules in order.

    Overall risk starts at "low" and only escalates. A metric that is missing
    from ``test_results`` does not fire its rule. ``domain`` is accepted for
    context and logged; no rule depends on it yet.
    """
    factors: list[RiskFactor] = []
    overall = "low"

    compliance = coerce_number(test_results.get("complianceRate"))
    if compliance is not None and compliance < 90:
        factors.append(
            RiskFactor(
                type="compliance",
                severity="high",
                message="Compliance rate below threshold",
            )
        )
        overall = _escalate(overall, "high")

    variability = coerce_number(test_results.get("performanceVariability"))
    if variability is not None and variability > 15:
        factors.append(
            RiskFactor(
                type="variability",
                severity="medium",
                message="High performance variability detected",
            )
        )
        overall = _escalate(overall, "medium")

    recommendations = [
        RiskRecommendation(action=f"Address {f.type} issues", priority=f.severity)
        for f in factors
    ]
    logger.debug(
        "risk analyzed",
        extra={"domain": domain, "risk": overall, "factor_count": len(factors)},
    )
    return RiskAssessment(
        overall_risk=overall, factors=factors, recommendations=recommendations
    )


def estimated_improvement(current: float, target: float) -> str:
    if current == 0:
        return "N/A"
    # + 0.0 folds -0.0 into 0.0
    return f"{(target - current) / current * 100 + 0.0:.1f}%"


def generate_recommendations(
    performance_gaps: Iterable[PerformanceGap | Mapping[str, Any]],
    test_data: Mapping[str, Any] | None = None,
) -> list[DesignRecommendation]:
    """One design recommendation per performance gap, in input order."""
    out: list[DesignRecommendation] = []
    for gap in performance_gaps:
        if not isinstance(gap, PerformanceGap):
            gap = PerformanceGap.model_validate(gap)
        out.append(
            DesignRecommendation(
                area=gap.area,
                current_value=gap.current,
                target_value=gap.target,
                suggestion=f"Optimize {gap.area} parameters to improve performance",
                estimated_improvement=estimated_improvement(gap.current, gap.target),
            )
        )
    return out
