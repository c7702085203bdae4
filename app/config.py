import os
from dataclasses import dataclass


@dataclass
class Settings:
	api_host: str = os.getenv("API_HOST", "0.0.0.0")
	api_port: int = int(os.getenv("API_PORT", "8000"))

	# Gemini API settings. API_KEY is accepted for parity with the web build.
	gemini_api_key: str | None = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
	gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-3-pro-preview")

	# Timeout for the "image by URL" intake path, seconds
	image_fetch_timeout: float = float(os.getenv("IMAGE_FETCH_TIMEOUT", "20.0"))
	# Largest body accepted from the "image by URL" intake path, bytes
	image_fetch_max_bytes: int = int(os.getenv("IMAGE_FETCH_MAX_BYTES", str(20 * 1024 * 1024)))

	log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
