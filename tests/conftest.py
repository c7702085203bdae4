import io
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from PIL import Image


class FakeModels:
    def __init__(self, text: str | None = None, error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


class FakeGenAI:
    """Stands in for google.genai.Client; records every request."""

    def __init__(self, text: str | None = None, error: Exception | None = None) -> None:
        self.models = FakeModels(text=text, error=error)
        self.aio = SimpleNamespace(models=self.models)

    @property
    def calls(self) -> List[Dict[str, Any]]:
        return self.models.calls


@pytest.fixture
def fake_genai():
    return FakeGenAI


@pytest.fixture
def jpeg_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), "white").save(buf, "JPEG")
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), "black").save(buf, "PNG")
    return buf.getvalue()


@pytest.fixture
def analysis_payload() -> Dict[str, Any]:
    return {
        "tytul": "Audyt rozdzielnicy",
        "opis": "Rozdzielnica mieszkaniowa, 3 rzędy aparatury.",
        "detale": ["Obudowa natynkowa", "Brak opisów obwodów"],
        "ocena_techniczna": "Aparatura w dobrym stanie.",
        "jakosc_budowy": "Przewody ułożone starannie.",
        "komponenty": [{"nazwa": "S301", "typ": "wylacznik", "opis": "sprawny"}],
        "ceny_szacunkowe": [{"element": "S301", "cena": "120 PLN"}],
        "oferta": {
            "punkty_kluczowe": ["Wymiana ogranicznika przepięć"],
            "rekomendacje": ["Montaż wyłącznika różnicowoprądowego 30 mA"],
        },
        "email_draft": "Szanowni Państwo,\n\nw załączeniu przesyłamy wyniki audytu.",
        "zgodnosc_z_normami": "Brak ochrony RCD wymaganej przez PN-HD 60364-4-41.",
        "klauzula_bezpieczenstwa": "Ocena na podstawie zdjęcia nie zastępuje pomiarów.",
    }
