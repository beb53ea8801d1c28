"""Provider adapter contract.

A provider adapter executes retrieve/create/update/delete calls against the
administrative surface of the federation farm. The reconciliation engine only
talks to this interface; success or failure of each call is the whole
observable contract.

Adapters signal outcomes with the exceptions of ``fedfarm.utils.exceptions``:

- ``NotFoundError`` when the resource (or certificate) does not exist
- ``ConflictError`` when a create collides with an existing resource
- ``ProviderUnavailableError`` when the surface cannot be reached
"""

from typing import Any, Dict, List

from fedfarm.models.certificate import CertificateDescriptor
from fedfarm.models.resources import ResourceKind


class ProviderAdapter:
    """Base class for provider adapters.

    Subclasses implement every method below.
    """

    name: str = "provider"

    def get_current(self, kind: ResourceKind, key: Dict[str, Any]) -> Dict[str, Any]:
        """Return the current properties of the resource identified by ``key``.

        Raises:
            NotFoundError: If no such resource exists
        """
        raise NotImplementedError

    def create(self, kind: ResourceKind, properties: Dict[str, Any]) -> None:
        """Create a resource from its full desired property set (key included).

        Raises:
            ConflictError: If the resource already exists
        """
        raise NotImplementedError

    def update(self, kind: ResourceKind, key: Dict[str, Any], properties: Dict[str, Any]) -> None:
        """Apply ``properties`` to the resource identified by ``key``.

        Raises:
            NotFoundError: If the resource no longer exists
        """
        raise NotImplementedError

    def delete(self, kind: ResourceKind, key: Dict[str, Any]) -> None:
        """Remove the resource identified by ``key``.

        Raises:
            NotFoundError: If the resource is already absent
        """
        raise NotImplementedError

    def list_certificates(self, store: str) -> List[CertificateDescriptor]:
        """Return the certificate inventory of ``store``."""
        raise NotImplementedError

    def resolve_certificate(self, thumbprint: str) -> CertificateDescriptor:
        """Return the certificate with ``thumbprint``.

        Raises:
            NotFoundError: If the certificate is unknown
        """
        raise NotImplementedError
