"""
FastAPI REST service for the decision checkpoint engine.

Endpoints:
  GET  /health          Health check + augmentation status
  GET  /questions       Checkpoint question catalog (?stage=1..7)
  GET  /risk-questions  Risk questionnaire (?language=en|zh)
  POST /validate        Required-field and answer-kind check, no scoring
  POST /evaluate        Score a decision (augmented when an API key is set)
  POST /insights        Cross-stage consistency insights
  POST /risk-profile    Score the risk questionnaire
  GET  /sample          Evaluate the bundled sample decision

Run with:
  uvicorn decision_checkpoint.api:app --reload --port 8080

Missing required answers come back as HTTP 422 with the offending field ids
in "fields". External analysis failures never surface as errors; the
response's "augmented" flag is false instead.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from decision_checkpoint import __version__
from decision_checkpoint.errors import AnswerValidationError
from decision_checkpoint.logging_config import get_logger, setup_logging
from decision_checkpoint.pipeline import DecisionEvaluationPipeline
from decision_checkpoint.questions import QUESTIONS, InvestmentDecision, questions_for_stage, validate_answer_types
from decision_checkpoint.risk_profile import RISK_QUESTIONS
from decision_checkpoint.samples import load_sample_decision

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    get_pipeline()
    yield


app = FastAPI(
    title="Decision Checkpoint API",
    description="Rubric scoring, rating and advice for investment decision questionnaires",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Singleton pipeline, built from settings on first use
_pipeline: Optional[DecisionEvaluationPipeline] = None


def get_pipeline() -> DecisionEvaluationPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = DecisionEvaluationPipeline.from_settings()
    return _pipeline


@app.exception_handler(AnswerValidationError)
async def answer_validation_handler(request: Request, exc: AnswerValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc), "fields": exc.fields})


# ─── Request / Response Models ────────────────────────────────────────────────

class DecisionRequest(BaseModel):
    name: str = Field("", max_length=200, description="Decision name (required for scoring)")
    answers: Dict[str, Any] = Field(default_factory=dict, description="Question id -> answer")
    language: Optional[str] = Field(None, description="en or zh")

    @field_validator("answers")
    @classmethod
    def validate_answers(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        for key, value in v.items():
            if value is None or isinstance(value, str):
                continue
            if isinstance(value, list) and all(isinstance(item, str) for item in value):
                continue
            raise ValueError(f"answers[{key!r}] must be a string or a list of strings")
        return v

    def to_decision(self) -> InvestmentDecision:
        return InvestmentDecision(name=self.name.strip(), answers=self.answers)


class RiskProfileRequest(BaseModel):
    answers: Dict[str, Any] = Field(default_factory=dict)
    language: Optional[str] = None


class ValidationResponse(BaseModel):
    valid: bool
    missing: List[str]
    mismatched: List[str]


class StageScoreResponse(BaseModel):
    score: int
    strengths: List[str]
    weaknesses: List[str]
    augmentation_details: Optional[Dict[str, Any]] = None


class EvaluationResponse(BaseModel):
    decision_name: str
    total_score: int
    rating: str
    base_rating: str
    stage_scores: Dict[str, StageScoreResponse]
    overall_strengths: List[str]
    overall_weaknesses: List[str]
    recommendations: List[str]
    augmented: bool
    adjustments: List[str]
    language: str


class InsightsResponse(BaseModel):
    consistency_score: float
    potential_biases: List[str]
    conflict_points: List[str]
    advanced_recommendations: List[str]


class RiskProfileResponse(BaseModel):
    score: int
    profile_type: str
    name: str
    description: str
    recommendation: str
    needs_verification: bool
    needs_warning: bool
    components: Dict[str, Any]


class HealthResponse(BaseModel):
    status: str
    version: str
    augmentation: bool


# ─── Endpoints ─────────────────────────────────────────────────────────────────

@app.get("/health", response_model=HealthResponse, tags=["meta"])
async def health(pipeline: DecisionEvaluationPipeline = Depends(get_pipeline)):
    return HealthResponse(status="ok", version=__version__, augmentation=pipeline.client is not None)


@app.get("/questions", tags=["meta"])
async def questions(stage: Optional[int] = None) -> List[dict]:
    """The checkpoint questionnaire, in stage order (?stage=1..7 for one stage)."""
    if stage is None:
        return [q.to_dict() for q in QUESTIONS]
    try:
        selected = questions_for_stage(stage)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return [q.to_dict() for q in selected]


@app.get("/risk-questions", tags=["meta"])
async def risk_questions(language: str = "en") -> List[dict]:
    return [q.to_dict(language) for q in RISK_QUESTIONS]


@app.post("/validate", response_model=ValidationResponse, tags=["evaluation"])
async def validate(request: DecisionRequest, pipeline: DecisionEvaluationPipeline = Depends(get_pipeline)):
    """Report missing required fields and answers that do not fit their question. Never scores."""
    decision = request.to_decision()
    missing = pipeline.validate(decision)
    mismatched = validate_answer_types(decision.answers)
    return ValidationResponse(valid=not missing, missing=missing, mismatched=mismatched)


@app.post("/evaluate", response_model=EvaluationResponse, tags=["evaluation"])
async def evaluate(request: DecisionRequest, pipeline: DecisionEvaluationPipeline = Depends(get_pipeline)):
    """
    Score a decision.

    Returns per-stage scores with strengths and weaknesses, the weighted
    total, the rating (after dynamic adjustments) and up to seven
    recommendations.
    """
    result = await pipeline.evaluate(request.to_decision(), request.language)
    return EvaluationResponse(**result.to_dict())


@app.post("/insights", response_model=InsightsResponse, tags=["evaluation"])
async def insights(request: DecisionRequest, pipeline: DecisionEvaluationPipeline = Depends(get_pipeline)):
    return InsightsResponse(**pipeline.insights(request.to_decision(), request.language).to_dict())


@app.post("/risk-profile", response_model=RiskProfileResponse, tags=["risk"])
async def risk_profile(request: RiskProfileRequest, pipeline: DecisionEvaluationPipeline = Depends(get_pipeline)):
    result = pipeline.assess_risk_profile(request.answers, request.language)
    return RiskProfileResponse(**result.to_dict())


@app.get("/sample", response_model=EvaluationResponse, tags=["demo"])
async def sample(pipeline: DecisionEvaluationPipeline = Depends(get_pipeline)):
    """Evaluate the bundled sample decision with local rules only (no input required)."""
    return EvaluationResponse(**pipeline.evaluate_sync(load_sample_decision()).to_dict())
