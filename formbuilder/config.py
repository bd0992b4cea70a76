import logging
import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    def __init__(self) -> None:
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./formbuilder.db")
        self.CORS_ORIGINS = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.SCHEMA_ID_SIZE = int(os.getenv("SCHEMA_ID_SIZE", "10"))


settings = Settings()


def configure_logging(level: str = None) -> None:
    logging.basicConfig(
        level=level or settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
