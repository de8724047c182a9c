import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("GYMSHEETS_DATABASE_URL", "sqlite:///gymsheets.db")

# Seconds the projection waits for a first push before giving up on loading
LOAD_TIMEOUT = float(os.getenv("GYMSHEETS_LOAD_TIMEOUT", "5"))

LOG_LEVEL = os.getenv("GYMSHEETS_LOG_LEVEL", "INFO")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
EXTRACTION_MODEL = os.getenv("GYMSHEETS_EXTRACTION_MODEL", "gpt-4o-mini")
ADVICE_MODEL = os.getenv("GYMSHEETS_ADVICE_MODEL", "gpt-5-mini")

# Seconds an owner's session may sit unused before its live queries are closed
SESSION_IDLE_TIMEOUT = float(os.getenv("GYMSHEETS_SESSION_IDLE_TIMEOUT", "900"))
