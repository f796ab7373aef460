import logging
from typing import Any, Dict

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import load_settings
from .errors import (
    AnalysisError,
    ConfigurationError,
    RateLimitExceeded,
    RequestValidationFailure,
    UpstreamFailure,
)
from .profiles import legacy_profile, live_profile, speaker_profile
from .prompts import OutputMode
from .schemas import SpeakerIdentificationRequest, now_iso
from .service import AnalysisService, ProfiledService
from .speakers import SpeakerIdentificationService
from .validation import RequestValidator, decode_body

load_dotenv()
settings = load_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="AI Co-Facilitator API", version="1.0.0")

if settings.frontend_origin:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )

live_service = AnalysisService(
    live_profile(settings),
    validator=RequestValidator(settings.max_transcript_chars),
)
legacy_service = AnalysisService(
    legacy_profile(settings),
    validator=RequestValidator(settings.max_transcript_chars),
)
speaker_service = SpeakerIdentificationService(
    speaker_profile(settings),
    validator=RequestValidator(
        settings.max_transcript_chars, model=SpeakerIdentificationRequest
    ),
)


def _error_response(service: ProfiledService, exc: Exception) -> JSONResponse:
    profile = service.profile
    if isinstance(exc, AnalysisError):
        status = profile.status_for(exc)
        message = exc.public_message
    else:
        status = 500
        message = "AI analysis failed"

    body: Dict[str, Any] = {"success": False, "error": message}
    headers: Dict[str, str] = {}

    if isinstance(exc, RequestValidationFailure):
        body["issues"] = exc.issues
        return JSONResponse(body, status_code=status)

    if isinstance(exc, RateLimitExceeded):
        body["retryAfter"] = exc.retry_after
        headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(body, status_code=status, headers=headers)

    if not settings.is_production:
        body["details"] = str(exc)
    if profile.output_mode is OutputMode.TEXT:
        body["metadata"] = {
            "timestamp": now_iso(),
            "tokensUsed": 0,
            "sessionTopic": "",
            "transcriptLength": 0,
        }
    return JSONResponse(body, status_code=status)


async def _run(service: ProfiledService, request: Request) -> JSONResponse:
    name = service.profile.name
    try:
        payload = decode_body(await request.body())
        result = await service.handle(payload)
    except RequestValidationFailure as exc:
        logger.info(f"[{name}] rejected request: {exc.issues}")
        return _error_response(service, exc)
    except RateLimitExceeded as exc:
        return _error_response(service, exc)
    except ConfigurationError as exc:
        logger.error(f"[{name}] configuration error: {exc}")
        return _error_response(service, exc)
    except UpstreamFailure as exc:
        logger.warning(f"[{name}] upstream failure ({exc.kind.value}): {exc}")
        return _error_response(service, exc)
    except Exception as exc:
        # Always answer with JSON instead of letting the worker die.
        logger.exception(f"[{name}] unexpected analysis error: {exc}")
        return _error_response(service, exc)
    return JSONResponse(result)


@app.get("/")
def health():
    return {"status": "ok"}


@app.post("/analyze-live")
async def analyze_live(request: Request):
    return await _run(live_service, request)


@app.get("/analyze-live")
def analyze_live_health():
    return live_service.health()


@app.post("/analyze")
async def analyze(request: Request):
    return await _run(legacy_service, request)


@app.get("/analyze")
def analyze_health():
    return legacy_service.health()


@app.post("/identify-speakers")
async def identify_speakers(request: Request):
    return await _run(speaker_service, request)


@app.get("/identify-speakers")
def identify_speakers_health():
    return speaker_service.health()
