import os

# Load .env.dev for tests if present; it may point DATABASE_URL at a local
# Postgres for the SQL store tests.
from dotenv import load_dotenv

env_dev_path = os.path.join(os.path.dirname(__file__), ".env.dev")
if os.path.exists(env_dev_path):
    load_dotenv(env_dev_path, override=True)

# Tests always run against the in-memory store and local auth, without
# rate limits, whatever the developer's .env says.
os.environ["ENVIRONMENT"] = "local"
os.environ["DOCUMENT_STORE_BACKEND"] = "memory"
os.environ["AUTH_BACKEND"] = "local"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from libs.common.config import get_settings  # noqa: E402

# Clear cached settings to reload with new env vars
get_settings.cache_clear()
settings = get_settings()
