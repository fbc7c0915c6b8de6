"""
FastAPI REST API for the SME Risk Engine

Provides the wizard endpoints for risk calculations, smart recommendations
and manual likelihood x severity ratings.
"""

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import Dict, List, Optional, Union
from datetime import datetime
from functools import lru_cache
import logging
import sys
import os

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.reference_data import (
    CachedReferenceRepository,
    InMemoryReferenceRepository,
    load_reference_data,
)
from src.risk_scoring import (
    RecommendationEngine,
    RecommendationResponse,
    RiskAssessment,
    RiskCalculationResponse,
)
from src.risk_scoring.characteristics import SimplifiedAnswers, convert_simplified_inputs
from src.risk_scoring.risk_scorer import ScoreSource

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_DATA = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "sample_reference.json"
)

app = FastAPI(
    title="SME Disaster Risk API",
    description="Risk scoring and mitigation strategy recommendations for small businesses",
    version="1.0.0"
)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_engine() -> RecommendationEngine:
    """Engine over the configured reference data, built once per process"""
    path = os.getenv("REFERENCE_DATA_PATH", DEFAULT_REFERENCE_DATA)
    max_strategies = os.getenv("MAX_STRATEGIES")

    logger.info(f"Loading reference data from {path}")
    repository = CachedReferenceRepository(
        InMemoryReferenceRepository(load_reference_data(path))
    )
    return RecommendationEngine(
        repository,
        max_strategies=int(max_strategies) if max_strategies else None,
    )


# Pydantic models
class AssessmentInput(BaseModel):
    business_type_id: str = Field(..., min_length=1, description="Business type being assessed")
    location_id: Optional[str] = Field(None, description="Location (parish) id")
    characteristics: Dict[str, Union[bool, int, float]] = Field(
        default_factory=dict, description="Characteristic values keyed by characteristic type"
    )
    simplified_answers: Optional[SimplifiedAnswers] = Field(
        None, description="Plain-language wizard answers, converted to characteristics"
    )
    score_source: ScoreSource = "automated"
    month: Optional[int] = Field(
        None, ge=1, le=12, description="Current month, used to flag hazards in peak season"
    )

    def merged_characteristics(self) -> Dict[str, Union[bool, int, float]]:
        """Explicit characteristics override values derived from simplified answers"""
        merged = {}
        if self.simplified_answers is not None:
            merged.update(convert_simplified_inputs(self.simplified_answers))
        merged.update(self.characteristics)
        return merged


class ManualRatingInput(BaseModel):
    likelihood: int
    severity: int


class RiskCalculationInput(AssessmentInput):
    hazard_ids: List[str] = Field(..., min_length=1, description="Hazards selected by the user")
    manual_ratings: Dict[str, ManualRatingInput] = Field(default_factory=dict)


class ManualRatingRequest(ManualRatingInput):
    hazard_id: str = Field(..., min_length=1)
    assessment: Optional[RiskAssessment] = None


# API Endpoints

@app.get("/")
async def root():
    """API root endpoint"""
    return {
        "message": "SME Disaster Risk API",
        "version": "1.0.0",
        "endpoints": {
            "health": "/health",
            "smart_recommendations": "/api/v1/wizard/smart-recommendations",
            "risk_calculations": "/api/v1/wizard/risk-calculations",
            "manual_rating": "/api/v1/wizard/manual-rating",
            "invalidate_cache": "/api/v1/admin/reference-data/invalidate"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat()
    }


@app.post("/api/v1/wizard/smart-recommendations", response_model=RecommendationResponse)
async def smart_recommendations(
    request: AssessmentInput, engine: RecommendationEngine = Depends(get_engine)
):
    """
    Assess every hazard known for the location and business type

    Returns the scored risks and ranked mitigation strategies.
    """
    try:
        return engine.get_smart_recommendations(
            request.business_type_id,
            request.location_id,
            request.merged_characteristics(),
            score_source=request.score_source,
            month=request.month,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Smart recommendations failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/wizard/risk-calculations", response_model=RiskCalculationResponse)
async def risk_calculations(
    request: RiskCalculationInput, engine: RecommendationEngine = Depends(get_engine)
):
    """Score the selected hazards and rank strategies for them"""
    try:
        return engine.get_risk_calculations(
            request.hazard_ids,
            request.business_type_id,
            request.location_id,
            request.merged_characteristics(),
            score_source=request.score_source,
            manual_ratings={
                hazard_id: (rating.likelihood, rating.severity)
                for hazard_id, rating in request.manual_ratings.items()
            },
            month=request.month,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Risk calculation failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/wizard/manual-rating", response_model=RiskAssessment)
async def manual_rating(
    request: ManualRatingRequest, engine: RecommendationEngine = Depends(get_engine)
):
    """Record a likelihood x severity rating (each 1-4) for one hazard"""
    try:
        return engine.set_manual_rating(
            request.hazard_id,
            request.likelihood,
            request.severity,
            assessment=request.assessment,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/admin/reference-data/invalidate")
async def invalidate_reference_data(engine: RecommendationEngine = Depends(get_engine)):
    """Drop cached reference lookups after an admin write"""
    repository = engine.repository
    if not isinstance(repository, CachedReferenceRepository):
        return {"invalidated": False}

    repository.invalidate()
    return {
        "invalidated": True,
        "timestamp": datetime.now().isoformat()
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
