"""
FastAPI Backend - HTTP surface over the IRT assessment engine.

Endpoints:
    GET  /                                  - Health/status
    POST /responses                         - Record an answered problem
    GET  /learners/{id}/ability             - Current ability estimate
    GET  /learners/{id}/report              - Diagnostic report
    GET  /learners/{id}/report/summary      - Markdown digest of the report
    GET  /learners/{id}/profile             - Longitudinal student profile
    GET  /learners/{id}/next-item           - Next most informative item
    POST /calibration                       - Run batch item calibration
"""

import logging
import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from assessment_service import AssessmentService
from redis_store import RedisStore
from teaching.ability_levels import age_level_from_ability, describe_ability
from teaching.report_builder import generate_report_summary

# Load environment variables from .env
load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

# ==================== Initialize ====================

app = FastAPI(
    title="IRT Assessment API",
    description="Ability estimation, item calibration and diagnostic reports for arithmetic practice",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache()
def get_service() -> AssessmentService:
    return AssessmentService(RedisStore())


# ==================== Request/Response Models ====================

class ResponseRequest(BaseModel):
    learner_id: str
    item_id: str
    operand1: int = Field(ge=0)
    operand2: int = Field(ge=0)
    is_correct: bool
    response_time_ms: int = Field(ge=0)
    submitted_answer: Optional[int] = None
    timestamp: Optional[int] = None
    skill_tags: Optional[List[str]] = None
    problem_type: Optional[str] = None


class AbilityUpdate(BaseModel):
    theta: float
    percentile: int
    standard_error: float
    response_count: int


class AbilityResponse(BaseModel):
    learner_id: str
    theta: float
    standard_error: float
    confidence95: List[float]
    response_count: int
    percentile: int
    level: dict
    age_level: dict


class NextItemResponse(BaseModel):
    item_id: str
    difficulty: float
    discrimination: float
    skill_tags: List[str]
    problem_type: str


class SummaryResponse(BaseModel):
    learner_id: str
    summary: str


class CalibrationRequest(BaseModel):
    now: Optional[int] = None


class CalibrationItem(BaseModel):
    item_id: str
    sample_size: int
    discrimination: float
    difficulty: float
    infit: float
    outfit: float
    rmse: float


class CalibrationResponse(BaseModel):
    calibrated: List[CalibrationItem]


# ==================== Endpoints ====================

@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "IRT Assessment API is running",
        "version": "1.0.0",
    }


@app.post("/responses", response_model=AbilityUpdate)
def record_response(request: ResponseRequest, service: AssessmentService = Depends(get_service)):
    result = service.record_response(
        learner_id=request.learner_id,
        item_id=request.item_id,
        operand1=request.operand1,
        operand2=request.operand2,
        is_correct=request.is_correct,
        response_time_ms=request.response_time_ms,
        submitted_answer=request.submitted_answer,
        timestamp=request.timestamp,
        skill_tags=frozenset(request.skill_tags) if request.skill_tags else None,
        problem_type=request.problem_type
    )
    return AbilityUpdate(**result)


@app.get("/learners/{learner_id}/ability", response_model=AbilityResponse)
def get_ability(learner_id: str, actual_age: Optional[float] = None,
                service: AssessmentService = Depends(get_service)):
    ability = service.ability(learner_id)
    level = describe_ability(ability.theta)

    return AbilityResponse(
        learner_id=learner_id,
        theta=ability.theta,
        standard_error=ability.standard_error,
        confidence95=list(ability.confidence95),
        response_count=ability.response_count,
        percentile=level["percentile"],
        level=level,
        age_level=age_level_from_ability(ability.theta, actual_age)
    )


@app.get("/learners/{learner_id}/report")
def get_report(learner_id: str, service: AssessmentService = Depends(get_service)):
    report = service.diagnostic_report(learner_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Not enough responses for a report")
    return report.to_dict()


@app.get("/learners/{learner_id}/report/summary", response_model=SummaryResponse)
def get_report_summary(learner_id: str, service: AssessmentService = Depends(get_service)):
    report = service.diagnostic_report(learner_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Not enough responses for a report")
    return SummaryResponse(learner_id=learner_id, summary=generate_report_summary(report))


@app.get("/learners/{learner_id}/profile")
def get_profile(learner_id: str, service: AssessmentService = Depends(get_service)):
    profile = service.student_profile(learner_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Not enough responses for a profile")
    return profile.to_dict()


@app.get("/learners/{learner_id}/next-item", response_model=NextItemResponse)
def get_next_item(learner_id: str, service: AssessmentService = Depends(get_service)):
    item = service.next_item(learner_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Item pool exhausted")

    return NextItemResponse(
        item_id=item.item_id,
        difficulty=item.difficulty,
        discrimination=item.discrimination,
        skill_tags=sorted(item.skill_tags),
        problem_type=item.problem_type
    )


@app.post("/calibration", response_model=CalibrationResponse)
def run_calibration(request: CalibrationRequest, service: AssessmentService = Depends(get_service)):
    results = service.recalibrate(now=request.now)

    return CalibrationResponse(calibrated=[
        CalibrationItem(
            item_id=r.item_id,
            sample_size=r.sample_size,
            discrimination=r.new_parameters.discrimination,
            difficulty=r.new_parameters.difficulty,
            infit=r.fit_statistics.infit,
            outfit=r.fit_statistics.outfit,
            rmse=r.fit_statistics.rmse
        )
        for r in results
    ])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=True)
