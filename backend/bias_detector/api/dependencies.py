"""FastAPI dependencies shared by the routers."""

from fastapi import HTTPException, Request

from bias_detector.analyzers.circularity_analyzer import CircularityAnalyzer


def get_analyzer(request: Request) -> CircularityAnalyzer:
    analyzer = getattr(request.app.state, "analyzer", None)
    if analyzer is None:
        raise HTTPException(status_code=503, detail="Analysis client is not configured.")
    return analyzer
