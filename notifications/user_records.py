"""
User record access for notification endpoints
Stores each user's push tokens on the user document
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import AbstractSet, Any, Dict, FrozenSet, Optional, Protocol

import pytz

from infrastructure.document_store import JsonDocumentStore

USERS_COLLECTION = 'user'
TOKENS_FIELD = 'fcmTokens'


class UserRecordStore(Protocol):
    """Endpoint-token collaborator used by the notification dispatcher.

    ``get_endpoint_tokens`` returns ``None`` for an unknown user.
    ``replace_endpoint_tokens`` writes ``new_tokens`` only if the stored set
    still equals ``expected_prior`` and reports whether it did.
    """

    async def get_endpoint_tokens(self, user_id: str) -> Optional[FrozenSet[str]]:
        ...

    async def replace_endpoint_tokens(
        self,
        user_id: str,
        expected_prior: AbstractSet[str],
        new_tokens: AbstractSet[str],
    ) -> bool:
        ...


class JsonUserRecordStore:
    """
    Endpoint tokens kept on user documents in a JSON document file

    Tokens are stored as a de-duplicated list; order carries no meaning.
    """

    def __init__(self, store: JsonDocumentStore, *, logger: Optional[Any] = None) -> None:
        self._store = store
        self.logger = logger or logging.getLogger('UserRecordStore')

    @staticmethod
    def _find(collections: Dict[str, Any], user_id: str) -> Optional[Dict[str, Any]]:
        for document in collections.get(USERS_COLLECTION, []):
            if str(document.get('id')) == user_id:
                return document
        return None

    @staticmethod
    def _write_tokens(document: Dict[str, Any], tokens: AbstractSet[str]) -> None:
        document[TOKENS_FIELD] = sorted(tokens)
        document['updatedAt'] = datetime.now(pytz.UTC).isoformat()

    async def get_endpoint_tokens(self, user_id: str) -> Optional[FrozenSet[str]]:
        """
        Return the user's registered tokens

        Args:
            user_id: Document id of the user

        Returns:
            Frozen set of tokens (possibly empty), or None if the user does not exist
        """
        document = await self._store.find(USERS_COLLECTION, user_id)
        if document is None:
            self.logger.debug(f"No user record found for user_id: {user_id}")
            return None
        return frozenset(document.get(TOKENS_FIELD) or ())

    async def replace_endpoint_tokens(
        self,
        user_id: str,
        expected_prior: AbstractSet[str],
        new_tokens: AbstractSet[str],
    ) -> bool:
        async with self._store.transaction() as collections:
            document = self._find(collections, user_id)
            if document is None:
                self.logger.warning(f"Token replace skipped; user {user_id} no longer exists")
                return False
            current = frozenset(document.get(TOKENS_FIELD) or ())
            if current != frozenset(expected_prior):
                self.logger.info(f"Token set for user {user_id} changed concurrently; write refused")
                return False
            self._write_tokens(document, new_tokens)
        self.logger.info(f"Replaced endpoint tokens for user {user_id} ({len(new_tokens)} remain)")
        return True

    async def register_endpoint_token(self, user_id: str, token: str) -> bool:
        """
        Add a device token to a user, creating nothing if the user is unknown

        Returns:
            True if the token was newly added, False if already present or user missing
        """
        async with self._store.transaction() as collections:
            document = self._find(collections, user_id)
            if document is None:
                self.logger.warning(f"Cannot register token; user {user_id} does not exist")
                return False
            tokens = set(document.get(TOKENS_FIELD) or ())
            if token in tokens:
                return False
            tokens.add(token)
            self._write_tokens(document, tokens)
        self.logger.info(f"Registered endpoint token for user {user_id}")
        return True
