import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables in priority order:
# 1. backend/.env (lowest priority)
# 2. repo_root/.env (overrides backend)
# 3. repo_root/.env.local (highest priority - overrides everything)
repo_root = Path(__file__).parent.parent
env_local = repo_root / ".env.local"
env_file = repo_root / ".env"
backend_env = Path(__file__).parent / ".env"

if backend_env.exists():
    load_dotenv(dotenv_path=backend_env, override=False)
if env_file.exists():
    load_dotenv(dotenv_path=env_file, override=True)
if env_local.exists():
    load_dotenv(dotenv_path=env_local, override=True)

# SQLite database backing people, links and feature requests
PEOPLE_WEB_DB_PATH = os.getenv(
    "PEOPLE_WEB_DB_PATH",
    str(Path(__file__).parent / "people_web.db"),
)

# Browser origin allowed by CORS (the canvas frontend)
CORS_ORIGIN = os.getenv("CORS_ORIGIN", "http://localhost:5173")

# Base URL clients use to reach this server
API_BASE_URL = os.getenv("PEOPLE_WEB_API_URL", "http://127.0.0.1:3001")

# Per-subscriber queue size for the broadcast stream; 0 means unbounded
EVENTS_QUEUE_MAXSIZE = int(os.getenv("EVENTS_QUEUE_MAXSIZE", "1000") or 1000)

# Seconds between SSE keepalive comments on an idle broadcast stream
EVENTS_KEEPALIVE_SECONDS = float(os.getenv("EVENTS_KEEPALIVE_SECONDS", "30") or 30)

# Port for `python main.py`; the canvas expects 3001
PORT = int(os.getenv("PORT", "3001") or 3001)
