"""Partner directory contracts and the JSON document adapter implementing them.

Callers depend on retrieval order: ``get_partners_by_role`` must return
records in the store's natural order, since ranking ties are resolved by it.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol

from infrastructure.document_store import JsonDocumentStore
from partners.models import ApplicationStatus, PartnerRecord, ServiceDescriptor

USERS_COLLECTION = 'user'
SERVICES_COLLECTION = 'services'
APPLICATIONS_COLLECTION = 'partnerApplications'


class DirectoryAccessor(Protocol):
    """Read-only view over partner profiles and the service catalog."""

    async def get_partners_by_role(self, role: str) -> List[PartnerRecord]:
        ...

    async def get_service_by_id(self, service_id: str) -> Optional[ServiceDescriptor]:
        ...


class ApplicationStatusStore(Protocol):
    """Read-only access to partner onboarding applications."""

    async def get_application_status(self, user_id: str) -> Optional[ApplicationStatus]:
        ...


class JsonPartnerDirectory:
    """Directory and application store backed by a JSON document file."""

    def __init__(self, store: JsonDocumentStore, *, logger: Optional[Any] = None) -> None:
        self._store = store
        self._logger = logger or logging.getLogger('PartnerDirectory')

    async def get_partners_by_role(self, role: str) -> List[PartnerRecord]:
        documents = await self._store.read(USERS_COLLECTION)
        partners: List[PartnerRecord] = []
        for document in documents:
            if document.get('role') != role:
                continue
            try:
                partners.append(PartnerRecord.from_record(document))
            except (TypeError, ValueError) as exc:
                self._logger.warning(
                    "Skipping malformed partner record %s: %s",
                    document.get('id') or document.get('uid'),
                    exc,
                )
        self._logger.debug("Loaded %s users with role %s", len(partners), role)
        return partners

    async def get_service_by_id(self, service_id: str) -> Optional[ServiceDescriptor]:
        document = await self._store.find(SERVICES_COLLECTION, service_id)
        if document is None:
            return None
        return ServiceDescriptor.from_record(document)

    async def get_application_status(self, user_id: str) -> Optional[ApplicationStatus]:
        for document in await self._store.read(APPLICATIONS_COLLECTION):
            if str(document.get('userId')) == user_id:
                return ApplicationStatus.from_record(document)
        return None
