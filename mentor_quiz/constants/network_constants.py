"""Network configuration constants for the quiz application."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
API_WORKER_COUNT: int = 1
FETCH_WORKER_COUNT: int = 8
