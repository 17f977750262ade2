"""
Admin Directory Client
======================

Looks up the admin identities of a room from an external HTTP endpoint.

Contract:
---------
    GET <ADMIN_DIRECTORY_URL>?room=<room>
    200 -> {"admins": ["alice", "bob"]}

The lookup only seeds a new room's admin set. Every failure (timeout,
network error, non-2xx status, payload that is not the expected shape) is
logged and treated as "no additional admins"; it never fails room creation.
"""

import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger("relay.directory.client")


class AdminDirectoryResponse(BaseModel):
    """Expected directory payload."""
    admins: List[str] = Field(default_factory=list, description="Admin identities for the room")


class AdminDirectory:
    """
    Async client for the admin directory endpoint.

    Args:
        url: Directory endpoint
        timeout: Request timeout in seconds
        client: Optional preconfigured httpx.AsyncClient (owned by the caller)
    """

    def __init__(self, url: str, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def fetch_admins(self, room: str) -> List[str]:
        """
        Fetch the admin list for a room.

        Args:
            room: Room name

        Returns:
            List of admin identities, empty on any failure
        """
        try:
            response = await self._get_client().get(
                self.url,
                params={"room": room},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = AdminDirectoryResponse.model_validate(response.json())
        except httpx.TimeoutException:
            logger.warning("Admin directory lookup timed out", extra={"room": room})
            return []
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"Admin directory returned {e.response.status_code}",
                extra={"room": room}
            )
            return []
        except httpx.HTTPError as e:
            logger.warning(f"Admin directory request failed: {str(e)}", extra={"room": room})
            return []
        except (ValueError, ValidationError) as e:
            logger.warning(f"Admin directory returned malformed payload: {str(e)}", extra={"room": room})
            return []

        logger.debug(
            "Fetched room admins from directory",
            extra={"room": room, "admin_count": len(payload.admins)}
        )
        return payload.admins

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
