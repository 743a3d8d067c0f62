import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

API_URL = os.getenv("MDLOADER_API_URL", "https://api.mangadex.org")
UPLOADS_URL = os.getenv("MDLOADER_UPLOADS_URL", "https://uploads.mangadex.org")
USER_AGENT = os.getenv("MDLOADER_USER_AGENT", "mdloader/0.3")

REQUEST_TIMEOUT = (
    float(os.getenv("MDLOADER_CONNECT_TIMEOUT", "5")),
    float(os.getenv("MDLOADER_READ_TIMEOUT", "30")),
)

SETTINGS_PATH = Path(
    os.getenv("MDLOADER_SETTINGS_PATH", Path.home() / ".config" / "mdloader" / "settings.json")
)

SETTINGS_DEFAULTS = {
    "refreshToken": "",
    "username": "",
    "contentRating": ["safe", "suggestive"],
    "locale": "en",
    "mangaLimit": 30,
    "chapterLimit": 100,
}
