"""Health check endpoint. Reports store configuration without calling the store."""

from http.server import BaseHTTPRequestHandler
import json

from matchdesk.utils.config import StoreConfig
from matchdesk.utils.errors import StoreUnavailable


def health_status() -> dict:
    try:
        StoreConfig.validate()
        store_configured = True
    except StoreUnavailable:
        store_configured = False

    return {
        "status": "ok" if store_configured else "degraded",
        "service": "matchdesk",
        "store_configured": store_configured,
        "store_timeout_seconds": StoreConfig.STORE_TIMEOUT_SECONDS,
    }


class handler(BaseHTTPRequestHandler):

    def do_GET(self):
        body = health_status()
        self.send_response(200 if body["status"] == "ok" else 503)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(body).encode('utf-8'))
