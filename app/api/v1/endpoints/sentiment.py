import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse

from app.schemas.data_ingestion import ProxyRequest, ErrorResponse
from app.services.llm_service import ModelClient, get_model_client, build_prompt

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])

INTERNAL_ERROR_MESSAGE = "An error occurred inside the function."


@router.post(
    "/analyze",
    response_class=PlainTextResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def analyze(request: ProxyRequest, model: ModelClient = Depends(get_model_client)):
    """
    Wrap the request in the matching prompt and forward it to the model.
    The model's reply is returned verbatim; the caller extracts the JSON.
    """
    prompt = build_prompt(request)
    try:
        text = model.generate(prompt)
    except Exception:
        logger.exception("Error during model call")
        return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR_MESSAGE})
    return PlainTextResponse(text, status_code=200)
