import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Defaults to a local SQLite file so the engine can run without a database server
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./propertyquote.db")

# CORS - comma separated list of dashboard origins
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")

# Imagery edge-detection provider
# When EDGE_DETECTION_URL is unset the simulated detector is used (development only)
EDGE_DETECTION_URL = os.getenv("EDGE_DETECTION_URL")
EDGE_DETECTION_API_KEY = os.getenv("EDGE_DETECTION_API_KEY")
EDGE_DETECTION_TIMEOUT_SECONDS = float(os.getenv("EDGE_DETECTION_TIMEOUT_SECONDS", "15"))
# Seed for the simulated detector so repeated requests return the same edges
SIMULATED_EDGE_SEED = int(os.getenv("SIMULATED_EDGE_SEED", "42"))
