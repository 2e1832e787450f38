import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    def __init__(self):
        # Remote catalog API
        self.API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:5000").rstrip("/")
        self.REQUEST_TIMEOUT = float(os.environ.get("REQUEST_TIMEOUT", "10"))

        # Retry configuration (caller-side policy, the fetcher never retries)
        self.MAX_RETRIES = int(os.environ.get("MAX_RETRIES", "3"))
        self.RETRY_BACKOFF = float(os.environ.get("RETRY_BACKOFF", "1.5"))

        # Catalog views
        self.SUGGESTION_DEBOUNCE = float(os.environ.get("SUGGESTION_DEBOUNCE", "0.25"))
        self.SUGGESTION_LIMIT = int(os.environ.get("SUGGESTION_LIMIT", "8"))
        self.RELATED_LIMIT = int(os.environ.get("RELATED_LIMIT", "4"))
        self.FEATURED_LIMIT = int(os.environ.get("FEATURED_LIMIT", "4"))

        # Error tracking
        self.SENTRY_DSN = os.environ.get("SENTRY_DSN", "")
        self.ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")

        # Application settings
        self.DEBUG = os.environ.get("DEBUG", "false").lower() == "true"
        self.LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
        self.PORT = int(os.environ.get("PORT", "8000"))

    @property
    def has_sentry(self) -> bool:
        return bool(self.SENTRY_DSN)


# Create an instance
config = Config()
