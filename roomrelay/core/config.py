# roomrelay/core/config.py
import os
from typing import List

from dotenv import load_dotenv


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """
    Setup environment variables.
        - HOST / PORT where uvicorn binds the relay
        - ROOM_ID_PREFIX the namespace tag in front of every room id
        - ROOM_ID_BYTES how many random bytes make up the hex suffix
        - CORS_ORIGINS comma separated list of allowed origins
    """

    def __init__(self) -> None:
        # Load environment variables from the .env file
        load_dotenv()

        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = int(os.getenv("PORT", "8080"))

        self.ROOM_ID_PREFIX: str = os.getenv("ROOM_ID_PREFIX", "twl-server-")
        self.ROOM_ID_BYTES: int = int(os.getenv("ROOM_ID_BYTES", "4"))

        self.CORS_ORIGINS: List[str] = _split_csv(os.getenv("CORS_ORIGINS", "*"))


settings = Settings()
