"""Push gateway contract.

Only the request/response shape is defined here; the transport behind it
belongs to the host application.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from notifications.models import SendResponse


class PushGateway(Protocol):
    """Multicast sender whose responses align positionally with ``tokens``."""

    async def send_multicast(
        self,
        tokens: Sequence[str],
        title: str,
        body: str,
        link: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> Sequence[SendResponse]:
        ...
