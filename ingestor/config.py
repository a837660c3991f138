"""Process-level configuration for the ingestor server."""

import os

from common.constants import EXTRACTOR_TIMEOUT_SECONDS, SHUTDOWN_GRACE_SECONDS


DATABASE_PATH = os.environ.get("INGEST_DATABASE_PATH", "/app/data/ingest.db")

WATCH_DIR = os.environ.get("INGEST_WATCH_DIR", "/app/data/inbox")

SETTINGS_PATH = os.environ.get("INGEST_SETTINGS_PATH", "/app/data/pipeline_settings.json")

INGEST_HOST = os.environ.get("INGEST_HOST", "0.0.0.0")

INGEST_PORT = int(os.environ.get("INGEST_PORT", "8000"))

EXTRACTOR_URL = os.environ.get("INGEST_EXTRACTOR_URL", "http://extractor:8080/extract")

EXTRACTOR_TIMEOUT = float(os.environ.get("INGEST_EXTRACTOR_TIMEOUT", str(EXTRACTOR_TIMEOUT_SECONDS)))

EXTRACTOR_API_KEY = os.environ.get("INGEST_EXTRACTOR_API_KEY")

SHUTDOWN_GRACE = float(os.environ.get("INGEST_SHUTDOWN_GRACE_SECONDS", str(SHUTDOWN_GRACE_SECONDS)))
