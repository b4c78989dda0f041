import logging
from typing import Any, Dict, Union

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError as PayloadValidationError
from fastapi.responses import JSONResponse, Response, StreamingResponse

# Local imports
import config
import ppt_generator
from errors import PresentationServiceError, RequestValidationError
from generation import GenerationOrchestrator
from llm import get_text_model
from models import EditSlideRequest, EditSlideResponse, ExportRequest, GenerateRequest, Presentation
from slide_editor import edit_slide

# Logging configuration
logging.basicConfig(level=config.LOG_LEVEL)

# --- FastAPI App ---
app = FastAPI(
    title="AI Slides Service",
    description="Generates slide decks from a topic with Gemini, edits single slides and exports to PowerPoint.",
    version="1.0.0"
)


# --- Error Handlers --- #
@app.exception_handler(PresentationServiceError)
async def service_error_handler(request: Request, exc: PresentationServiceError):
    if exc.status_code >= 500:
        logging.error(f"{request.url.path} failed: {exc.message}")
    else:
        logging.warning(f"{request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(PayloadValidationError)
async def payload_error_handler(request: Request, exc: PayloadValidationError):
    errors = exc.errors()
    if errors and errors[0].get("type") == "json_invalid":
        message = "Invalid JSON payload"
    else:
        message = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ()) if p != 'body')}: {e.get('msg')}" for e in errors
        ) or "Invalid request"
    logging.warning(f"{request.url.path} rejected: {message}")
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logging.error(f"An error occurred in {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})


# --- Endpoints --- #
@app.post("/api/generate", summary="Stream a presentation generated from a topic")
async def generate_endpoint(payload: GenerateRequest, model=Depends(get_text_model)):
    """Streams reasoning/progress events, then the presentation, as server-sent events."""
    topic = (payload.prompt or "").strip()
    if not topic:
        raise RequestValidationError("Prompt is required")

    orchestrator = GenerationOrchestrator(model)
    return StreamingResponse(
        orchestrator.stream_frames(topic),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@app.post("/api/edit-slide", response_model=EditSlideResponse, response_model_exclude_none=True,
          summary="Rewrite one slide following an instruction")
async def edit_slide_endpoint(payload: EditSlideRequest, model=Depends(get_text_model)):
    presentation = await edit_slide(model, payload.presentation, payload.slideIndex, payload.instruction)
    return EditSlideResponse(presentation=presentation)


def _export_target(payload: Union[ExportRequest, Presentation]) -> Presentation:
    # Export bodies may wrap the deck as {"presentation": ...} or send it bare
    if isinstance(payload, ExportRequest):
        return payload.presentation
    return payload


@app.post("/api/export", summary="Download a presentation as .pptx")
async def export_endpoint(payload: Union[ExportRequest, Presentation]):
    presentation = _export_target(payload)
    data = ppt_generator.presentation_to_bytes(presentation)
    file_name = f"{ppt_generator.safe_file_stem(presentation.title)}.pptx"
    return Response(
        content=data,
        media_type=ppt_generator.PPTX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


@app.post("/api/export/upload", summary="Upload a presentation as .pptx to Cloud Storage")
async def export_upload_endpoint(payload: Union[ExportRequest, Presentation]) -> Dict[str, Any]:
    file_url = ppt_generator.upload_presentation(_export_target(payload))
    return {
        "status": "success",
        "message": "Presentation uploaded to GCS successfully.",
        "file_url": file_url,
    }


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/")
async def root():
    return {"message": "AI Slides API is running."}
