"""Vercel Serverless Function for alliance tables (/api/alliances, /api/alliances/<eventKey>)."""

from reefscout.config import get_config
from reefscout.server import make_handler
from reefscout.store import DocumentStore

_config = get_config()

handler = make_handler(DocumentStore(_config.data_dir), _config.env)
