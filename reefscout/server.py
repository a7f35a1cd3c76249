"""HTTP API for team records and alliance tables.

The same handler class serves the local dev server (``reefscout serve``)
and the serverless entry points in ``api/``. The document store is bound
to the class by ``make_handler`` rather than looked up from a global.

Routes:
    GET  /api/teams                 all team records
    GET  /api/teams/<teamNumber>    one team record
    POST /api/teams                 upsert a scouting submission
    GET  /api/alliances/<eventKey>  saved alliance table
    POST /api/alliances             upsert an alliance table
    GET  /api/status                liveness / store connectivity
    GET  /api/test                  connectivity check
"""

import json
import re
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import urlparse

from .errors import ConflictError, StoreUnavailable, ValidationFailed
from .logging_config import get_logger
from .store import DocumentStore, check_event_key

logger = get_logger('reefscout.server')

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET, POST, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type, Authorization, X-Requested-With, Accept',
}

TEAM_PATH = re.compile(r'^/api/teams/([^/]+)$')
ALLIANCE_PATH = re.compile(r'^/api/alliances/([^/]+)$')


class ScoutingHandler(BaseHTTPRequestHandler):
    """Request handler; ``store`` is set on subclasses built by make_handler."""

    store: Optional[DocumentStore] = None
    env: str = 'development'

    def do_OPTIONS(self):
        """Handle CORS preflight."""
        self.send_response(200)
        for name, value in CORS_HEADERS.items():
            self.send_header(name, value)
        self.send_header('Access-Control-Max-Age', '86400')
        self.send_header('Content-Length', '0')
        self.end_headers()

    def do_GET(self):
        path = self._path()
        try:
            if path == '/api/teams':
                teams = self.store.list_teams()
                return self._send_json(200, [t.model_dump(mode='json') for t in teams])

            match = TEAM_PATH.match(path)
            if match:
                team = self.store.get_team(match.group(1))
                if team is None:
                    return self._send_json(404, {'error': f'Team {match.group(1)} not found'})
                return self._send_json(200, team.model_dump(mode='json'))

            match = ALLIANCE_PATH.match(path)
            if match:
                event_key = check_event_key(match.group(1))
                table = self.store.get_alliances(event_key)
                if table is None:
                    return self._send_json(404, {'error': f'No alliances found for {event_key}'})
                return self._send_json(200, table.model_dump(mode='json'))

            if path == '/api/status':
                return self._send_status()

            if path == '/api/test':
                return self._send_json(200, {'message': 'API server is working correctly!'})

            return self._send_json(404, {'error': f'Not found: {path}'})
        except ValidationFailed as e:
            return self._send_json(400, {'error': str(e)})
        except StoreUnavailable as e:
            logger.error(f'GET {path} failed: {e}')
            return self._send_json(500, {'error': 'Internal Server Error', 'details': str(e)})
        except Exception as e:
            logger.exception(f'Unhandled error on GET {path}')
            return self._send_json(500, {'error': 'Internal Server Error', 'details': str(e)})

    def do_POST(self):
        path = self._path()
        try:
            if path not in ('/api/teams', '/api/alliances'):
                if TEAM_PATH.match(path) or ALLIANCE_PATH.match(path) or path == '/api/status':
                    return self._send_json(405, {'error': 'Method not allowed'})
                return self._send_json(404, {'error': f'Not found: {path}'})

            data = self._read_json()

            if path == '/api/teams':
                record, created = self.store.upsert_team(data)
                return self._send_json(201 if created else 200, record.model_dump(mode='json'))

            table, created = self.store.upsert_alliances(data)
            return self._send_json(201 if created else 200, table.model_dump(mode='json'))
        except (json.JSONDecodeError, UnicodeDecodeError):
            return self._send_json(400, {'error': 'Invalid JSON'})
        except ValidationFailed as e:
            return self._send_json(400, {'error': str(e)})
        except ConflictError as e:
            return self._send_json(409, {'error': str(e), 'currentVersion': e.current})
        except StoreUnavailable as e:
            logger.error(f'POST {path} failed: {e}')
            return self._send_json(500, {'error': 'Internal Server Error', 'details': str(e)})
        except Exception as e:
            logger.exception(f'Unhandled error on POST {path}')
            return self._send_json(500, {'error': 'Internal Server Error', 'details': str(e)})

    def do_PUT(self):
        self._send_json(405, {'error': 'Method not allowed'})

    def do_DELETE(self):
        self._send_json(405, {'error': 'Method not allowed'})

    def _path(self) -> str:
        path = urlparse(self.path).path
        return path.rstrip('/') or '/'

    def _read_json(self) -> dict:
        try:
            content_length = int(self.headers.get('Content-Length') or 0)
        except ValueError:
            raise ValidationFailed('Invalid Content-Length header') from None
        if content_length < 0:
            raise ValidationFailed('Invalid Content-Length header')
        body = self.rfile.read(content_length) if content_length else b''
        if not body.strip():
            raise ValidationFailed('Empty request body')
        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValidationFailed('Request body must be a JSON object')
        return data

    def _send_status(self):
        timestamp = datetime.now(timezone.utc).isoformat()
        if self.store is not None and self.store.ping():
            return self._send_json(200, {
                'status': 'OK',
                'message': 'API is running',
                'storeConnected': True,
                'env': self.env,
                'timestamp': timestamp,
            })
        return self._send_json(500, {
            'status': 'ERROR',
            'message': 'Document store unavailable',
            'storeConnected': False,
            'env': self.env,
            'timestamp': timestamp,
        })

    def _send_json(self, status_code: int, data: Any):
        """Send JSON response with CORS headers."""
        payload = json.dumps(data).encode('utf-8')
        self.send_response(status_code)
        self.send_header('Content-Type', 'application/json')
        for name, value in CORS_HEADERS.items():
            self.send_header(name, value)
        self.send_header('Content-Length', str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def log_message(self, format, *args):
        """Route access logs through the reefscout logger instead of stderr."""
        logger.debug(f'{self.address_string()} - {format % args}')


def make_handler(store: DocumentStore, env: str = 'development') -> type[ScoutingHandler]:
    """Build a handler class bound to one document store."""
    return type('BoundScoutingHandler', (ScoutingHandler,), {'store': store, 'env': env})


def create_server(store: DocumentStore, host: str = '127.0.0.1', port: int = 5000,
                  env: str = 'development') -> ThreadingHTTPServer:
    """Create (but do not start) a threaded API server. Port 0 picks a free port."""
    return ThreadingHTTPServer((host, port), make_handler(store, env))


def serve(store: DocumentStore, host: str = '127.0.0.1', port: int = 5000,
          env: str = 'development') -> None:
    """Run the API until interrupted."""
    server = create_server(store, host, port, env)
    bound_host, bound_port = server.server_address[:2]
    logger.info(f'Serving reefscout API on http://{bound_host}:{bound_port} (data: {store.data_dir})')
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info('Shutting down')
    finally:
        server.server_close()
