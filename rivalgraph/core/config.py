import os
from dotenv import load_dotenv


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Application configuration loaded from environment variables.

    Pull values from .env file or set as environment variables.
    """

    def __init__(self) -> None:
        load_dotenv()

        # Inputs
        self.COMPETITOR_SEARCH_DIR = os.getenv("COMPETITOR_SEARCH_DIR", "./competitor_searches")
        self.FINANCIALS_FILE = os.getenv("FINANCIALS_FILE", "./competitor_financials.json")

        # Outputs
        self.OUTPUT_DIR = os.getenv("OUTPUT_DIR", "./data")
        self.LEGACY_BUNDLE_FILE = os.getenv("LEGACY_BUNDLE_FILE", "./data.js")

        # Behaviour
        self.SKIP_INVALID_SNAPSHOTS = _env_flag("SKIP_INVALID_SNAPSHOTS")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
