"""
KB Search - service entry point

Wires YAML-backed repositories, settings and logging into the FastAPI app.

Run:
    kb-search                      # console script
    uvicorn kbsearch.main:app      # any ASGI server
"""

import logging
import os
from pathlib import Path

# Load environment variables from .env.local (local dev) or .env (production)
from dotenv import load_dotenv

project_root = Path(__file__).parent.parent
env_local = project_root / ".env.local"
env_file = project_root / ".env"

if env_local.exists():
    load_dotenv(env_local, override=True)
elif env_file.exists():
    load_dotenv(env_file, override=True)

# Configure logging: console (brief) + file (detailed)
from .logging_config import setup_logging

log_level = os.getenv("LOG_LEVEL", "INFO").upper()
console_level = getattr(logging, log_level, logging.INFO)
setup_logging(
    log_file=os.getenv("LOG_FILE", "logs/kb-search.log") or None,
    console_level=console_level,
    file_level=logging.DEBUG  # Always DEBUG in file for troubleshooting
)

logger = logging.getLogger(__name__)

from .api import create_app
from .config import Settings
from .repositories import YamlArticleRepository, YamlPatternRepository
from .service import KnowledgeBaseService

PORT = int(os.getenv("PORT", "8080"))

settings = Settings.from_env()
logger.info(f"Articles: {settings.articles_path}, patterns: {settings.patterns_path}, stemming={settings.stemming}")

service = KnowledgeBaseService(
    article_repository=YamlArticleRepository(settings.articles_path),
    pattern_repository=YamlPatternRepository(settings.patterns_path),
    settings=settings,
)
app = create_app(service)


def run():
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    run()
