"""Error taxonomy of the analysis flow.

Every error carries a human readable (Polish) message that is shown to the
user as-is. ``retryable`` tells the page whether resubmitting or reselecting
an image can help; nothing in the service retries automatically.
"""


class AnalysisError(Exception):
    retryable: bool = True
    default_message: str = "Wystąpił nieoczekiwany błąd podczas analizy technicznej."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingCredentialError(AnalysisError):
    retryable = False
    default_message = "Brak klucza API Gemini. Skonfiguruj klucz w ustawieniach środowiska."


class EncodingError(AnalysisError):
    default_message = "Błąd konwersji pliku."


class EmptyResponseError(AnalysisError):
    default_message = "Nie udało się uzyskać analizy od modelu AI."


class MalformedResponseError(AnalysisError):
    default_message = "Odpowiedź modelu AI nie odpowiada oczekiwanemu formatowi raportu."


class InvalidCredentialError(AnalysisError):
    retryable = False
    default_message = (
        "Twój klucz API jest nieprawidłowy dla modelu Gemini. "
        "Pamiętaj, że klucze OpenAI nie działają z modelem Gemini."
    )


class ServiceError(AnalysisError):
    pass


class SessionConflictError(Exception):
    """Transition not allowed in the current session state."""


class PreviewReleaseError(Exception):
    """Preview resource released twice or never acquired."""
