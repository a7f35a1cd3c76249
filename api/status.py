"""Vercel Serverless Function for the liveness probe (/api/status, /api/test)."""

from reefscout.config import get_config
from reefscout.server import make_handler
from reefscout.store import DocumentStore

_config = get_config()

handler = make_handler(DocumentStore(_config.data_dir), _config.env)
