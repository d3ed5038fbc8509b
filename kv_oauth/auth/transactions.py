"""Store for pending OAuth handshakes.

Each sign-in writes one :class:`~kv_oauth.types.OAuthSession` under a
fresh flow identifier with a short TTL. The callback consumes it with an
atomic take, so a record is observed at most once no matter how many
requests race for it.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import json
import logging

from typing import TYPE_CHECKING

from ..types import OAuthSession


if TYPE_CHECKING:
    from ..store.base import Key, KeyValueStore


logger = logging.getLogger("kv_oauth.auth")

OAUTH_SESSIONS_PREFIX = "oauth_sessions"
DEFAULT_TRANSACTION_TTL = 600


def _key(flow_id: str) -> Key:
    return (OAUTH_SESSIONS_PREFIX, flow_id)


def _serialize(oauth_session: OAuthSession) -> bytes:
    return json.dumps(oauth_session.to_dict()).encode("utf-8")


def _deserialize(data: bytes) -> OAuthSession:
    return OAuthSession.from_dict(json.loads(data))


class OAuthTransactionStore:
    """Short-lived mapping from flow id to pending handshake state.

    Parameters
    ----------
    kv : KeyValueStore
        The backing key-value store.
    ttl : float
        Seconds a pending handshake survives (default ``600``).
    """

    def __init__(self, kv: KeyValueStore, ttl: float = DEFAULT_TRANSACTION_TTL) -> None:
        self.kv = kv
        self.ttl = ttl

    async def start_transaction(self, flow_id: str, oauth_session: OAuthSession) -> None:
        """Persist a pending handshake.

        Parameters
        ----------
        flow_id : str
            Fresh random flow identifier.
        oauth_session : OAuthSession
            State and PKCE verifier for this flow.

        Raises
        ------
        StoreUnavailable
            If the store cannot be written.
        """
        await self.kv.set(_key(flow_id), _serialize(oauth_session), ttl=self.ttl)
        logger.debug("Started OAuth transaction for provider %s", oauth_session.provider)

    async def consume_transaction(self, flow_id: str) -> OAuthSession | None:
        """Take the pending handshake for a flow id, deleting it.

        Returns
        -------
        OAuthSession or None
            The stored handshake, or None when it never existed, expired,
            or was already consumed.
        """
        data = await self.kv.take(_key(flow_id))
        if data is None:
            logger.debug("No pending OAuth transaction for flow id")
            return None
        return _deserialize(data)

    async def get_transaction(self, flow_id: str) -> OAuthSession | None:
        """Read a pending handshake without consuming it."""
        data = await self.kv.get(_key(flow_id))
        return _deserialize(data) if data is not None else None
