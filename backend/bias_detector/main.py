# -*- coding: utf-8 -*-

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from bias_detector import __version__
from bias_detector.analyzers.circularity_analyzer import CircularityAnalyzer
from bias_detector.api.dependencies import get_analyzer
from bias_detector.api.endpoints.batch import router as batch_router
from bias_detector.config import cors_origins, load_settings
from bias_detector.constants import EXAMPLE_GENERATED_TEXT, EXAMPLE_REFERENCE_TEXT
from bias_detector.errors import AnalysisFailure
from bias_detector.models import AnalysisResult, AnalyzeRequest
from bias_detector.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A missing API key aborts startup before any request is served.
    settings = load_settings()
    configure_logging(settings.log_level)
    app.state.settings = settings
    app.state.analyzer = CircularityAnalyzer.from_settings(settings)
    logger.info("Circular Bias Detector hazır (provider=%s)", settings.llm_provider)
    yield


app = FastAPI(title="Circular Bias Detector", version=__version__, lifespan=lifespan)

# CORS - React frontend için
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(batch_router)


@app.get("/")
async def root():
    return {"message": "Circular Bias Detector API", "version": __version__}


@app.get("/api/example")
async def get_example():
    """Sample text pair for trying the analyzer."""
    return {
        "generated_text": EXAMPLE_GENERATED_TEXT,
        "reference_text": EXAMPLE_REFERENCE_TEXT,
    }


@app.post("/api/analyze", response_model=AnalysisResult)
async def analyze_texts(
    payload: AnalyzeRequest,
    analyzer: CircularityAnalyzer = Depends(get_analyzer),
):
    """Analyze one generated/reference text pair."""
    if not payload.generated_text.strip() or not payload.reference_text.strip():
        raise HTTPException(status_code=400, detail="Both text fields must be filled.")

    try:
        return await analyzer.analyze(payload.generated_text, payload.reference_text)
    except AnalysisFailure as exc:
        logger.warning("Tekil analiz başarısız oldu: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
