from __future__ import annotations
from typing import Any, Callable
import base64
import binascii
import json

from google import genai
from google.genai import errors, types
from pydantic import ValidationError

from app.config import settings
from app.errors import (
    EmptyResponseError,
    EncodingError,
    InvalidCredentialError,
    MalformedResponseError,
    MissingCredentialError,
    ServiceError,
)
from app.schemas import AnalysisResult, RESPONSE_SCHEMA
from app.utils.logging import get_logger

logger = get_logger("gemini")

SYSTEM_INSTRUCTION = (
    "Jesteś doświadczonym inżynierem elektrykiem i audytorem instalacji niskiego napięcia w Polsce. "
    "Na podstawie zdjęcia rozdzielnicy elektrycznej:\n"
    "1. Zidentyfikuj aparaturę modułową (wyłączniki nadprądowe, różnicowoprądowe, ograniczniki przepięć, "
    "rozłączniki, bezpieczniki) wraz z producentem i modelem, jeśli są czytelne.\n"
    "2. Oceń stan techniczny, jakość montażu i opisanie obwodów.\n"
    "3. Oceń zgodność z normami PN-HD 60364 (w szczególności PN-HD 60364-4-41) i wskaż braki.\n"
    "4. Wyszukaj aktualne ceny rynkowe zidentyfikowanych lub zalecanych komponentów w Polsce (PLN, brutto) "
    "i podaj źródło, jeśli je znasz.\n"
    "5. Przygotuj ofertę modernizacji (punkty kluczowe i rekomendacje inżynierskie).\n"
    "6. Napisz uprzejmy, profesjonalny e-mail do klienta podsumowujący audyt i ofertę.\n"
    "Zawsze dołącz klauzulę bezpieczeństwa: ocena na podstawie zdjęcia nie zastępuje pomiarów "
    "ani oględzin wykonanych przez osobę z uprawnieniami SEP.\n"
    "Odpowiadaj wyłącznie po polsku, zgodnie z zadeklarowanym schematem JSON."
)

ANALYSIS_PROMPT = (
    "Przeprowadź audyt techniczny rozdzielnicy. Zidentyfikuj bezpieczniki, ochronniki i ich stan. "
    "Wyszukaj aktualne ceny rynkowe dla tych komponentów w Polsce. "
    "Przygotuj ofertę modernizacji i e-mail do klienta."
)

_CREDENTIAL_MARKERS = ("API_KEY_INVALID", "API key not valid")


def _is_invalid_credential(error: errors.APIError) -> bool:
    text = f"{error}"
    if any(marker in text for marker in _CREDENTIAL_MARKERS):
        return True
    return getattr(error, "code", None) in (401, 403)


class GeminiClient:
    """Single-shot switchboard analysis against the Gemini API.

    ``client_factory`` builds the SDK client from an API key; tests pass a fake.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        client_factory: Callable[[str], Any] | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model_name = model_name or settings.gemini_model
        self._client_factory = client_factory or (lambda key: genai.Client(api_key=key))
        self._client: Any = None

        if not self.api_key:
            logger.warning("GEMINI_API_KEY is not set; analysis requests will be refused")

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = self._client_factory(self.api_key)
        return self._client

    def _build_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=SYSTEM_INSTRUCTION,
            tools=[types.Tool(google_search=types.GoogleSearch())],
            response_mime_type="application/json",
            response_schema=RESPONSE_SCHEMA,
        )

    def _build_contents(self, payload: str, media_type: str) -> types.Content:
        return types.Content(
            role="user",
            parts=[
                # SDK takes raw bytes and base64-encodes them on the wire itself
                types.Part.from_bytes(data=base64.b64decode(payload), mime_type=media_type),
                types.Part(text=ANALYSIS_PROMPT),
            ],
        )

    async def analyze(self, payload: str, media_type: str) -> AnalysisResult:
        """
        Send the base64 image with the fixed audit prompt and parse the structured answer.

        Args:
            payload: base64 image bytes, without the data URL prefix
            media_type: image media type, e.g. ``image/jpeg``

        Returns:
            Validated AnalysisResult. One attempt only, nothing is retried.
        """
        if not self.api_key:
            raise MissingCredentialError()

        try:
            contents = self._build_contents(payload, media_type)
        except (binascii.Error, ValueError) as e:
            raise EncodingError() from e

        client = self._get_client()
        logger.info(f"[Gemini] analyze model={self.model_name} type={media_type} payload_chars={len(payload)}")

        try:
            response = await client.aio.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=self._build_config(),
            )
        except errors.APIError as e:
            logger.warning(f"[Gemini] API error code={getattr(e, 'code', None)}: {e}")
            if _is_invalid_credential(e):
                raise InvalidCredentialError() from e
            raise ServiceError(f"Błąd usługi Gemini: {e}") from e
        except Exception as e:
            logger.exception("[Gemini] request failed")
            raise ServiceError(f"Błąd połączenia z usługą Gemini: {e}") from e

        content_text = getattr(response, "text", None)
        if not content_text or not content_text.strip():
            logger.warning("[Gemini] empty response")
            raise EmptyResponseError()

        return self.parse_result(content_text)

    @staticmethod
    def parse_result(content_text: str) -> AnalysisResult:
        try:
            data = json.loads(content_text)
        except json.JSONDecodeError as e:
            logger.warning(f"[Gemini] JSON parse failed: {e}")
            logger.warning(f"[Gemini] Raw response: {content_text[:1000]}...")
            raise MalformedResponseError() from e

        try:
            return AnalysisResult.model_validate(data)
        except ValidationError as ve:
            logger.warning(f"[Gemini] response schema mismatch: {ve}")
            raise MalformedResponseError() from ve
