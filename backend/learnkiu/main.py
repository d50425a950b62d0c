import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .db import init_db
from .errors import LearnKIUError
from .settings import settings
from .routers import health
from .routers import auth
from .routers import profile
from .routers import assessment
from .routers import transcript
from .routers import certificates
from .routers import materials

logger = logging.getLogger(__name__)

app = FastAPI(title="LearnKIU API")
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(assessment.router)
app.include_router(transcript.router)
app.include_router(certificates.router)
app.include_router(materials.router)


@app.exception_handler(LearnKIUError)
async def learnkiu_error_handler(request: Request, exc: LearnKIUError):
	if exc.status_code >= 500:
		logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
	return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/info")
def root():
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"searchapi_configured": bool(settings.searchapi_api_key),
	}


@app.on_event("startup")
async def startup_event():
	init_db()
