from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from functools import lru_cache

from app.errors import EncodingError, PreviewReleaseError, SessionConflictError
from app.presenter import View, render_page
from app.schemas import ImageUrlRequest, ViewRequest
from app.services.gemini_client import GeminiClient
from app.services.image_intake import fetch_image
from app.services.session_manager import SessionManager, session_manager
from app.session import Session
from app.utils.logging import get_logger


app = FastAPI(title="Switchboard Audit API", version="0.1.0")
logger = get_logger("app")


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache
def get_gemini_client() -> GeminiClient:
    return GeminiClient()


def get_session_manager() -> SessionManager:
    return session_manager


@app.on_event("startup")
async def on_startup():
    logger.info("API starting up")
    # Built eagerly so a missing key shows up in the logs at boot
    get_gemini_client()


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("API shutting down")
    session_manager.close_all()


@app.get("/health")
async def health():
    return {"status": "ok"}


def _session_or_404(manager: SessionManager, session_id: str) -> Session:
    session = manager.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="session_id not found")
    return session


@app.post("/v1/sessions")
async def create_session(manager: SessionManager = Depends(get_session_manager)):
    return manager.create().snapshot()


@app.get("/v1/sessions/{session_id}")
async def get_session(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    return _session_or_404(manager, session_id).snapshot()


@app.delete("/v1/sessions/{session_id}")
async def delete_session(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    if not manager.drop(session_id):
        raise HTTPException(status_code=404, detail="session_id not found")
    return {"session_id": session_id, "status": "closed"}


def _select(session: Session, data: bytes, filename: str | None, content_type: str | None) -> dict:
    try:
        session.select_image(data, filename, content_type)
    except SessionConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.snapshot()


@app.post("/v1/sessions/{session_id}/image")
async def upload_image(
    session_id: str,
    file: UploadFile = File(...),
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Load an image into the session (any file type is accepted)
    """
    session = _session_or_404(manager, session_id)
    data = await file.read()
    return _select(session, data, file.filename, file.content_type)


@app.post("/v1/sessions/{session_id}/image-url")
async def upload_image_url(
    session_id: str,
    body: ImageUrlRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    session = _session_or_404(manager, session_id)
    try:
        data, content_type = await fetch_image(body.image_url)
    except EncodingError as e:
        raise HTTPException(status_code=400, detail=e.message)
    filename = body.image_url.rstrip("/").rsplit("/", 1)[-1] or None
    return _select(session, data, filename, content_type)


@app.post("/v1/sessions/{session_id}/analyze")
async def analyze(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
    gemini: GeminiClient = Depends(get_gemini_client),
):
    """
    Run the audit for the loaded image.

    Returns:
        Session state after the call: ``ready`` with the result, or ``failed``
        with a message. Analysis failures are session states, not HTTP errors.
    """
    session = _session_or_404(manager, session_id)
    try:
        await session.submit(gemini.analyze)
    except SessionConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.snapshot()


@app.post("/v1/sessions/{session_id}/reset")
async def reset_session(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    session = _session_or_404(manager, session_id)
    try:
        session.reset()
    except SessionConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.snapshot()


@app.post("/v1/sessions/{session_id}/view")
async def select_view(
    session_id: str,
    body: ViewRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    session = _session_or_404(manager, session_id)
    try:
        view = View(body.view)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown view: {body.view}")
    try:
        session.select_view(view)
    except SessionConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.snapshot()


@app.get("/v1/previews/{preview_id}")
async def get_preview(preview_id: str, manager: SessionManager = Depends(get_session_manager)):
    preview = manager.previews.get(preview_id)
    if not preview:
        raise HTTPException(status_code=404, detail="preview not found")
    return Response(content=preview.data, media_type=preview.media_type)


@app.get("/")
async def index(manager: SessionManager = Depends(get_session_manager)):
    session = manager.create()
    return RedirectResponse(url=f"/sessions/{session.id}", status_code=303)


@app.get("/sessions/{session_id}", response_class=HTMLResponse)
async def session_page(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    session = _session_or_404(manager, session_id)
    return HTMLResponse(render_page(session.snapshot()))


@app.exception_handler(PreviewReleaseError)
async def preview_release_handler(request, exc: PreviewReleaseError):
    logger.error(f"Preview ownership violated: {exc}")
    return Response(status_code=500, content="Preview ownership error")


if __name__ == "__main__":
    import uvicorn
    from app.config import settings

    uvicorn.run("app.main:app", host=settings.api_host, port=settings.api_port)
