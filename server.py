"""FastAPI frontend for the solar assessor."""

from __future__ import annotations

import base64
import binascii
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from solar_assessor.assessor import get_orchestrator
from solar_assessor.models.assessment import AssessmentRequest
from solar_assessor.orchestration.pipeline import AssessmentOrchestrator
from solar_assessor.utils.errors import AssessmentNotFound, InvalidRequest


APP_TITLE = "Solar Assessor"

logger = logging.getLogger(__name__)


class AssessmentBody(BaseModel):
    address: str
    monthly_bill_usd: Optional[float] = None
    roof_age_years: Optional[float] = None
    utility_provider: Optional[str] = None
    homeowner_type: str = "owner"
    imagery_base64: Optional[str] = None


class ProposalBody(BaseModel):
    include_battery: bool = False
    include_financing: bool = False
    panel_type: Optional[str] = None
    inverter_type: Optional[str] = None


def orchestrator_dependency() -> AssessmentOrchestrator:
    return get_orchestrator()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    provider = app.dependency_overrides.get(orchestrator_dependency, orchestrator_dependency)
    orchestrator = provider()
    await orchestrator.start()
    try:
        yield
    finally:
        await orchestrator.close()


app = FastAPI(title=APP_TITLE, lifespan=lifespan)


def _decode_imagery(encoded: Optional[str]) -> Optional[bytes]:
    if not encoded:
        return None
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="imagery_base64 is not valid base64.")


@app.post("/api/assessments")
async def create_assessment(
    body: AssessmentBody,
    orchestrator: AssessmentOrchestrator = Depends(orchestrator_dependency),
) -> JSONResponse:
    request = AssessmentRequest(
        address=body.address,
        monthly_bill_usd=body.monthly_bill_usd,
        roof_age_years=body.roof_age_years,
        utility_provider=body.utility_provider,
        homeowner_type=body.homeowner_type,
    )
    imagery = _decode_imagery(body.imagery_base64)
    try:
        response = await orchestrator.run_assessment(request, imagery=imagery)
    except InvalidRequest as exc:
        logger.info(f"Rejected assessment request: {exc}")
        raise HTTPException(status_code=400, detail=exc.context.message)
    return JSONResponse(jsonable_encoder(response.to_dict()))


@app.get("/api/assessments/{assessment_id}")
async def read_assessment(
    assessment_id: str,
    orchestrator: AssessmentOrchestrator = Depends(orchestrator_dependency),
) -> JSONResponse:
    try:
        assessment = orchestrator.get_assessment(assessment_id)
    except AssessmentNotFound:
        raise HTTPException(status_code=404, detail="Assessment not found.")
    return JSONResponse(jsonable_encoder(assessment.to_dict()))


@app.post("/api/assessments/{assessment_id}/proposal")
async def create_proposal(
    assessment_id: str,
    body: Optional[ProposalBody] = None,
    orchestrator: AssessmentOrchestrator = Depends(orchestrator_dependency),
) -> JSONResponse:
    customizations: Dict[str, Any] = body.model_dump(exclude_none=True) if body else {}
    try:
        proposal = orchestrator.generate_proposal(assessment_id, customizations)
    except AssessmentNotFound:
        raise HTTPException(status_code=404, detail="Assessment not found.")
    return JSONResponse(jsonable_encoder({"assessment_id": assessment_id, "proposal": proposal.to_dict()}))


@app.get("/health")
async def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
