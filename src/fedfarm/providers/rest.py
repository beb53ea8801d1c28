"""Provider adapter for an HTTP administrative gateway.

Resources live at ``{base_url}/{kind}/{key...}`` where the key values are
appended in the kind's key-field order:

    GET    {base_url}/RelyingPartyTrust/Portal        -> current properties
    POST   {base_url}/RelyingPartyTrust               -> create (full payload)
    PATCH  {base_url}/RelyingPartyTrust/Portal        -> update (changed fields)
    DELETE {base_url}/RelyingPartyTrust/Portal        -> remove
    GET    {base_url}/certificates?store=My           -> certificate inventory
    GET    {base_url}/certificates/{thumbprint}       -> one certificate

Status mapping: 404 -> NotFoundError, 409 -> ConflictError, 5xx and
connection failures -> ProviderUnavailableError, other 4xx -> ProviderError.

A 404 only counts as "resource not found" when the gateway answered it with
its JSON error object. A 404 without one, or with ``"code": "no_route"``,
means the URL matched no route (usually a wrong base_url) and raises
ProviderError so a misconfigured endpoint is never read as a missing resource.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from fedfarm.config.schema import ProviderConfig
from fedfarm.models.certificate import CertificateDescriptor
from fedfarm.models.resources import ResourceKind
from fedfarm.providers.base import ProviderAdapter
from fedfarm.reconcile.comparator import normalize
from fedfarm.resources.registry import get_descriptor
from fedfarm.transport.http_client import build_session, request_timeout
from fedfarm.utils.exceptions import (
    ConflictError,
    NotFoundError,
    ProviderError,
    ProviderUnavailableError,
)

logger = logging.getLogger(__name__)

CERTIFICATES_PATH = "certificates"
NO_ROUTE_CODE = "no_route"


class RestProvider(ProviderAdapter):
    """Provider adapter speaking JSON over HTTP(S).

    Args:
        config: Provider configuration (base URL, TLS, timeouts, retries)
        session: Pre-built session, mainly for tests. Built from ``config``
                 when omitted.

    Example:
        >>> with RestProvider(ProviderConfig(base_url="https://adfs01/admin")) as provider:
        ...     provider.get_current(ResourceKind.RELYING_PARTY_TRUST, {"name": "Portal"})
    """

    name = "rest"

    def __init__(self, config: ProviderConfig, session: Optional[requests.Session] = None) -> None:
        self.config = config
        self.session = session if session is not None else build_session(config)
        self.timeout = request_timeout(config)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "RestProvider":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ----- URLs -----------------------------------------------------------
    def _collection_url(self, kind: ResourceKind) -> str:
        return f"{self.config.base_url}/{kind.value}"

    def _resource_url(self, kind: ResourceKind, key: Dict[str, Any]) -> str:
        descriptor = get_descriptor(kind)
        try:
            parts = [quote(str(normalize(key[name])), safe="") for name in descriptor.key_fields]
        except KeyError as e:
            raise ProviderError(f"{kind.value}: key lacks field {e.args[0]!r}") from e
        return "/".join([self._collection_url(kind), *parts])

    # ----- transport ------------------------------------------------------
    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            raise ProviderUnavailableError(
                f"{method} {url} timed out after {self.timeout} (connect, read) seconds"
            ) from e
        except requests.exceptions.SSLError as e:
            raise ProviderUnavailableError(
                f"TLS handshake with {self.config.base_url} failed: {e}. "
                f"Fix: Trust the gateway certificate or set verify_tls=false for test environments"
            ) from e
        except requests.ConnectionError as e:
            raise ProviderUnavailableError(f"Cannot reach {self.config.base_url}: {e}") from e

        status = response.status_code
        if status == 404:
            if _is_missing_resource(response):
                raise NotFoundError(f"{method} {url}: not found")
            raise ProviderError(
                f"{method} {url}: no such route on the gateway: {_error_detail(response)}. "
                f"Fix: Check provider.base_url ({self.config.base_url})"
            )
        if status == 409:
            raise ConflictError(f"{method} {url}: conflict: {_error_detail(response)}")
        if status >= 500:
            raise ProviderUnavailableError(
                f"{method} {url}: gateway returned {status}: {_error_detail(response)}"
            )
        if status >= 400:
            raise ProviderError(f"{method} {url}: rejected with {status}: {_error_detail(response)}")
        return response

    def _json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"{response.url}: response is not valid JSON") from e

    # ----- ProviderAdapter ------------------------------------------------
    def get_current(self, kind: ResourceKind, key: Dict[str, Any]) -> Dict[str, Any]:
        payload = self._json(self._send("GET", self._resource_url(kind, key)))
        if not isinstance(payload, dict):
            raise ProviderError(f"{kind.value} {key}: expected a JSON object")
        return payload

    def create(self, kind: ResourceKind, properties: Dict[str, Any]) -> None:
        self._send("POST", self._collection_url(kind), json=properties)
        logger.info(f"Created {kind.value} via {self.config.base_url}")

    def update(self, kind: ResourceKind, key: Dict[str, Any], properties: Dict[str, Any]) -> None:
        self._send("PATCH", self._resource_url(kind, key), json=properties)
        logger.info(f"Updated {kind.value} {key}: {sorted(properties)}")

    def delete(self, kind: ResourceKind, key: Dict[str, Any]) -> None:
        self._send("DELETE", self._resource_url(kind, key))
        logger.info(f"Deleted {kind.value} {key}")

    def list_certificates(self, store: str) -> List[CertificateDescriptor]:
        url = f"{self.config.base_url}/{CERTIFICATES_PATH}"
        payload = self._json(self._send("GET", url, params={"store": store}))
        if not isinstance(payload, list):
            raise ProviderError(f"{url}: expected a JSON array of certificates")
        return [_certificate(item, store) for item in payload]

    def resolve_certificate(self, thumbprint: str) -> CertificateDescriptor:
        url = f"{self.config.base_url}/{CERTIFICATES_PATH}/{quote(thumbprint, safe='')}"
        return _certificate(self._json(self._send("GET", url)))


def _certificate(item: Any, store: Optional[str] = None) -> CertificateDescriptor:
    try:
        cert = CertificateDescriptor.from_dict(item)
    except (KeyError, TypeError, ValueError) as e:
        raise ProviderError(f"Malformed certificate entry from provider: {e}") from e
    if cert.store is None and store is not None:
        cert = replace(cert, store=store)
    return cert


def _error_detail(response: requests.Response) -> str:
    text = response.text or ""
    return text[:200] if text else response.reason or "no detail"


def _is_missing_resource(response: requests.Response) -> bool:
    try:
        body = response.json()
    except ValueError:
        return False
    return isinstance(body, dict) and "error" in body and body.get("code") != NO_ROUTE_CODE
