import os

from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Published price file  (hospital standard-charge JSON)
# ---------------------------------------------------------------------------
CHARGES_DATA_PATH = os.getenv("CHARGES_DATA_PATH", "data/charges.json")

# ---------------------------------------------------------------------------
# Pricing / search defaults
# ---------------------------------------------------------------------------
DEFAULT_PRICE_TYPE = os.getenv("DEFAULT_PRICE_TYPE", "gross_charge")
SEARCH_MIN_QUERY_LENGTH = int(os.getenv("SEARCH_MIN_QUERY_LENGTH", "2"))
SEARCH_RESULT_LIMIT = int(os.getenv("SEARCH_RESULT_LIMIT", "100"))

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]
