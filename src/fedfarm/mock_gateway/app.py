"""Flask application emulating the administrative gateway.

Routes mirror what ``RestProvider`` calls, below a URL prefix that matches
the default ``provider.base_url`` path:

    GET    /health                    (outside the prefix)
    GET    /certificates?store=My
    GET    /certificates/<thumbprint>
    POST   /<kind>
    GET    /<kind>/<key...>
    PATCH  /<kind>/<key...>
    DELETE /<kind>/<key...>

Requests that match no route, name an unknown kind or carry the wrong
number of key segments get a 404 whose JSON body has ``"code": "no_route"``,
so clients can tell them from a missing resource.

State lives in the ``InMemoryProvider`` handed to ``create_app``; its call
journal records every request the gateway served.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from flask import Blueprint, Flask, Response, jsonify, request
from werkzeug.exceptions import NotFound

from fedfarm.models.resources import ResourceKind
from fedfarm.providers.memory import InMemoryProvider
from fedfarm.providers.rest import NO_ROUTE_CODE
from fedfarm.resources.registry import get_descriptor
from fedfarm.utils.exceptions import ConfigurationError, ConflictError, NotFoundError, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_URL_PREFIX = "/adfs/admin"


def _error(status: int, message: str, code: Optional[str] = None) -> Tuple[Response, int]:
    logger.warning(f"Responding {status}: {message}")
    body = {"error": message}
    if code is not None:
        body["code"] = code
    return jsonify(body), status


def _kind(name: str) -> Optional[ResourceKind]:
    try:
        return ResourceKind(name)
    except ValueError:
        return None


def _key(kind: ResourceKind, key_path: str) -> Optional[Dict[str, Any]]:
    descriptor = get_descriptor(kind)
    values = key_path.split("/")
    if len(values) != len(descriptor.key_fields):
        return None
    return dict(zip(descriptor.key_fields, values))


def _json_body() -> Optional[Dict[str, Any]]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else None


def create_app(
    provider: Optional[InMemoryProvider] = None,
    url_prefix: str = DEFAULT_URL_PREFIX,
) -> Flask:
    """Build the gateway application.

    Args:
        provider: Backing store. A fresh, empty provider when omitted.
        url_prefix: Path the administrative routes are mounted under

    Returns:
        Flask application; ``app.config["PROVIDER"]`` holds the provider

    Example:
        >>> app = create_app(InMemoryProvider())
        >>> app.test_client().get("/health").status_code
        200
    """
    app = Flask(__name__)
    provider = provider if provider is not None else InMemoryProvider()
    app.config["PROVIDER"] = provider
    started = datetime.now(timezone.utc)
    api = Blueprint("gateway", __name__)

    @app.before_request
    def log_request() -> None:
        logger.info(f"{request.method} {request.full_path.rstrip('?')}")

    @app.errorhandler(NotFound)
    def no_route(error: NotFound):
        return _error(404, f"No route for {request.path}", NO_ROUTE_CODE)

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify(
            {
                "status": "healthy",
                "uptime_seconds": int((datetime.now(timezone.utc) - started).total_seconds()),
                "request_count": len(provider.calls),
            }
        )

    @api.route("/certificates", methods=["GET"])
    def list_certificates():
        store = request.args.get("store", "My")
        return jsonify([cert.to_dict() for cert in provider.list_certificates(store)])

    @api.route("/certificates/<thumbprint>", methods=["GET"])
    def get_certificate(thumbprint: str):
        try:
            return jsonify(provider.resolve_certificate(thumbprint).to_dict())
        except NotFoundError as e:
            return _error(404, str(e))

    @api.route("/<kind_name>", methods=["POST"])
    def create(kind_name: str):
        kind = _kind(kind_name)
        if kind is None:
            return _error(404, f"Unknown resource kind: {kind_name}", NO_ROUTE_CODE)
        body = _json_body()
        if body is None:
            return _error(400, "Request body must be a JSON object")
        try:
            provider.create(kind, body)
        except ConflictError as e:
            return _error(409, str(e))
        except ProviderError as e:
            return _error(400, str(e))
        return jsonify(body), 201

    @api.route("/<kind_name>/<path:key_path>", methods=["GET", "PATCH", "DELETE"])
    def resource(kind_name: str, key_path: str):
        kind = _kind(kind_name)
        key = _key(kind, key_path) if kind is not None else None
        if key is None:
            return _error(404, f"No route for /{kind_name}/{key_path}", NO_ROUTE_CODE)

        try:
            if request.method == "GET":
                return jsonify(provider.get_current(kind, key))
            if request.method == "DELETE":
                provider.delete(kind, key)
                return "", 204
            body = _json_body()
            if body is None:
                return _error(400, "Request body must be a JSON object")
            provider.update(kind, key, body)
            return jsonify(provider.get_current(kind, key))
        except NotFoundError as e:
            return _error(404, str(e))
        except ConflictError as e:
            return _error(409, str(e))

    app.register_blueprint(api, url_prefix=url_prefix.rstrip("/") or None)
    return app


def load_seed_file(path: Path) -> Dict[ResourceKind, List[Dict[str, Any]]]:
    """Read initial gateway state.

    The file maps resource kinds to lists of property dictionaries::

        {"RelyingPartyTrust": [{"name": "Portal", "identifier": ["urn:portal"]}]}

    Raises:
        ConfigurationError: If the file is unreadable or malformed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigurationError(f"Failed to read seed file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Seed file {path} must contain a JSON object keyed by resource kind")

    seed: Dict[ResourceKind, List[Dict[str, Any]]] = {}
    for kind_name, items in data.items():
        kind = _kind(kind_name)
        if kind is None or not isinstance(items, list):
            raise ConfigurationError(
                f"Seed file {path}: '{kind_name}' must be a resource kind mapped to a list. "
                f"Kinds: {', '.join(k.value for k in ResourceKind)}"
            )
        seed[kind] = items
    return seed


def run_gateway(
    provider: InMemoryProvider,
    host: str = "127.0.0.1",
    port: int = 8443,
    url_prefix: str = DEFAULT_URL_PREFIX,
    debug: bool = False,
) -> None:
    """Serve the gateway until interrupted.

    Args:
        provider: Backing store
        host: Host address
        port: Port number
        url_prefix: Path the administrative routes are mounted under
        debug: Enable Flask debug mode
    """
    app = create_app(provider, url_prefix)
    logger.info(f"Starting mock gateway on http://{host}:{port}{url_prefix}")
    logger.info(f"Health check available at: http://{host}:{port}/health")
    app.run(host=host, port=port, debug=debug, use_reloader=False)
