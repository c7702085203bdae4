"""Per-tab session state.

The state is a tagged union; every state past ``Empty`` carries the loaded
image, so "in flight without an image" cannot be expressed. The preview
resource of an image is released exactly once, when the image is replaced,
reset or the session is closed.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Union
import time
import uuid

from app.errors import AnalysisError, SessionConflictError
from app.presenter import DEFAULT_VIEW, View, present
from app.schemas import AnalysisResult
from app.services.image_intake import ImageHandle, PreviewStore, encode, select_image
from app.utils.logging import get_logger

logger = get_logger("session")

Analyzer = Callable[[str, str], Awaitable[AnalysisResult]]


@dataclass(frozen=True)
class Empty:
    status = "empty"


@dataclass(frozen=True)
class Loaded:
    image: ImageHandle
    status = "loaded"


@dataclass(frozen=True)
class InFlight:
    image: ImageHandle
    status = "in_flight"


@dataclass(frozen=True)
class Ready:
    image: ImageHandle
    result: AnalysisResult
    view: View = DEFAULT_VIEW
    status = "ready"


@dataclass(frozen=True)
class Failed:
    image: ImageHandle
    message: str
    retryable: bool = True
    status = "failed"


SessionState = Union[Empty, Loaded, InFlight, Ready, Failed]


@dataclass
class Session:
    previews: PreviewStore
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: SessionState = field(default_factory=Empty)
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())
    closed: bool = False

    def _set(self, state: SessionState) -> None:
        logger.info(f"Session {self.id} {self.state.status} -> {state.status}")
        self.state = state
        self.updated_at = time.time()

    def _release_current(self) -> None:
        match self.state:
            case Empty():
                return
            case Loaded(image=image) | Ready(image=image) | Failed(image=image):
                self.previews.release(image.preview_id)
            case InFlight():
                raise SessionConflictError("Analysis in progress")

    def select_image(self, data: bytes, filename: str | None, content_type: str | None) -> ImageHandle:
        if isinstance(self.state, InFlight):
            raise SessionConflictError("Analysis in progress")
        # New preview first, so a failed intake leaves the old image in place
        handle = select_image(self.previews, data, filename, content_type)
        self._release_current()
        self._set(Loaded(image=handle))
        return handle

    async def submit(self, analyze: Analyzer) -> SessionState:
        match self.state:
            case Empty():
                raise SessionConflictError("No image loaded")
            case InFlight():
                raise SessionConflictError("Analysis already in progress")
            case Loaded(image=image) | Ready(image=image) | Failed(image=image):
                pass

        self._set(InFlight(image=image))
        try:
            payload, media_type = await encode(image)
            result = await analyze(payload, media_type)
        except AnalysisError as e:
            if self._settle_closed():
                return self.state
            logger.warning(f"Session {self.id} analysis failed: {type(e).__name__}: {e.message}")
            self._set(Failed(image=image, message=e.message, retryable=e.retryable))
        except Exception:
            # Bugs still propagate, but the session must not stay in flight
            if not self._settle_closed():
                self._set(Failed(image=image, message=AnalysisError.default_message))
            raise
        else:
            if self._settle_closed():
                return self.state
            self._set(Ready(image=image, result=result))
        return self.state

    def _settle_closed(self) -> bool:
        if self.closed:
            logger.info(f"Session {self.id} closed while in flight; result discarded")
        return self.closed

    def reset(self) -> None:
        self._release_current()
        self._set(Empty())

    def select_view(self, view: View) -> None:
        match self.state:
            case Ready():
                self._set(Ready(image=self.state.image, result=self.state.result, view=view))
            case _:
                raise SessionConflictError("No result to display")

    def close(self) -> None:
        self.closed = True
        if isinstance(self.state, InFlight):
            # The pending call finishes on its own; only the preview goes away
            self.previews.release(self.state.image.preview_id)
            self.state = Empty()
            return
        self._release_current()
        self.state = Empty()

    def snapshot(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"session_id": self.id, "status": self.state.status}
        match self.state:
            case Empty():
                pass
            case Loaded(image=image) | InFlight(image=image):
                data["preview_url"] = image.preview_url
            case Failed(image=image, message=message, retryable=retryable):
                data["preview_url"] = image.preview_url
                data["error"] = message
                data["retryable"] = retryable
            case Ready(image=image, result=result, view=view):
                data["preview_url"] = image.preview_url
                data["view"] = view.value
                data["result"] = result.to_wire()
                data["presentation"] = present(result, image.preview_url, view)
        return data
