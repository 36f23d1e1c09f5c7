"""
Key-Value Store Server
Exposes a KeyValueStore over HTTP and runs the background reporter.

Endpoints:
- POST   /data        store a {"key", "value"} pair
- GET    /data        snapshot of every key and value
- DELETE /data/<key>  remove a key
- GET    /stats       number of successful writes and deletes
"""

import json
import logging
import sys
from typing import Optional, Tuple

from flask import Flask, jsonify, request
from werkzeug.serving import make_server

from kv_store import KeyValueStore
from reporter import Reporter

logger = logging.getLogger(__name__)

# =============================================================================
# CONFIGURATION
# =============================================================================

HOST = '0.0.0.0'
PORT = 8000

# Seconds between two background reports
REPORT_INTERVAL = 5.0

TEXT_HEADERS = {'Content-Type': 'text/plain; charset=utf-8'}

_decoder = json.JSONDecoder()


class PayloadError(ValueError):
    """Raised when a write request body is not a {"key", "value"} object."""


def read_json_value(raw: bytes):
    """
    Decode the first JSON value in a request body.

    Bytes after that value are ignored.

    Raises:
        PayloadError: if the body does not start with a valid JSON value
    """
    try:
        text = raw.decode('utf-8')
        return _decoder.raw_decode(text.lstrip())[0]
    except (ValueError, RecursionError) as e:
        raise PayloadError("Body is not valid JSON") from e


def decode_payload(data) -> Tuple[str, str]:
    """
    Extract the key and value from a decoded JSON body.

    Field names match case-insensitively and the last match wins. Missing
    or null fields default to the empty string, a null body counts as an
    empty object, and unknown fields are ignored. Anything else that is not
    an object with string fields is rejected.

    Raises:
        PayloadError: if the body does not have the expected shape
    """
    if data is None:
        return '', ''
    if not isinstance(data, dict):
        raise PayloadError("Body must be a JSON object")
    fields = {'key': '', 'value': ''}
    for name, item in data.items():
        name = name.casefold()
        if name not in fields or item is None:
            continue
        if not isinstance(item, str):
            raise PayloadError("Key and value must be strings")
        fields[name] = item
    return fields['key'], fields['value']


def text_response(message: str, status: int):
    return message, status, TEXT_HEADERS


def create_app(store: Optional[KeyValueStore] = None) -> Flask:
    """
    Build the Flask application around a store.

    The store is shared by every request thread; pass the same instance to
    the Reporter.
    """
    app = Flask(__name__)
    store = store if store is not None else KeyValueStore()
    # exposed for inspection only; views use the closed-over store
    app.extensions['kv_store'] = store

    # =========================================================================
    # HTTP API ENDPOINTS
    # =========================================================================

    @app.route('/data', methods=['POST'])
    def post_data():
        """
        Store a key-value pair.

        Request body (JSON):
            - key: The key to set (non-empty)
            - value: The value to set

        Returns:
            - 201 with "Stored Key: <key>"
            - 400 if the body is not valid JSON of the expected shape
            - 400 if the key is empty
        """
        try:
            key, value = decode_payload(read_json_value(request.get_data()))
        except PayloadError:
            return text_response("Invalid JSON format", 400)

        if not key:
            return text_response("Key cannot be empty", 400)

        store.set(key, value)

        logger.info("Saved to map: Key=%s, Value=%s", key, value)
        return text_response(f"Stored Key: {key}", 201)

    @app.route('/data', methods=['GET'])
    def get_data():
        """Return every key-value pair as a JSON object."""
        snapshot = store.get_all()
        try:
            return jsonify(snapshot)
        except (TypeError, ValueError):
            logger.exception("Failed to encode response")
            return text_response("Failed to encode response", 500)

    @app.route('/data/', methods=['DELETE'])
    @app.route('/data/<key>', methods=['DELETE'])
    def delete_data(key: str = ''):
        """
        Delete a key from the store.

        Returns:
            - 200 with "Deleted Key: <key>"
            - 400 if no key is given
            - 404 if the key does not exist
        """
        if not key:
            return text_response("Key is required", 400)

        if not store.delete(key):
            return text_response("Key is not found", 404)

        logger.info("Key %s was deleted", key)
        return text_response(f"Deleted Key: {key}", 200)

    @app.route('/stats', methods=['GET'])
    def stats():
        """Return the number of successful writes and deletes."""
        count = store.total_requests()
        try:
            return jsonify({'total_requests': count})
        except (TypeError, ValueError):
            logger.exception("Failed to encode stats")
            return text_response("Failed to encode stats", 500)

    return app


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main() -> int:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

    store = KeyValueStore()
    app = create_app(store)
    reporter = Reporter(store, interval=REPORT_INTERVAL)

    try:
        http_server = make_server(HOST, PORT, app, threaded=True)
    except (OSError, SystemExit) as e:
        # werkzeug exits instead of raising on some bind errors
        logger.error("Server failed to start: %s", e)
        return 1

    reporter.start()
    logger.info("Server starting on :%d", http_server.server_address[1])

    # werkzeug's serve_forever returns on Ctrl+C and closes the socket itself
    try:
        http_server.serve_forever()
    finally:
        logger.info("Server shutting down...")
        reporter.stop()
    return 0


if __name__ == '__main__':
    sys.exit(main())
