"""
Bridge Transport - Talking to the server through an HTTP relay
==============================================================

The relay holds the actual voice server connection. It posts
incoming events to the bot's web app (see ``ui.web``) and accepts
outbound operations on these endpoints:

- ``POST /connect``     ``{address, name, channel, key_file}`` -> ``{client_id}``
- ``POST /send``        ``{target, client_id, text}``
- ``POST /poke``        ``{client_id, text}``
- ``POST /disconnect``  ``{message}``
"""

from typing import Any, Dict, Optional, TYPE_CHECKING

import httpx

from core.exceptions import TransportError
from core.logging import get_logger
from rules.engine import TargetContext

from .transport import Transport

if TYPE_CHECKING:
    from core.config import BridgeConfig, Settings

logger = get_logger("services.bridge")


class BridgeTransport(Transport):
    """
    Transport that forwards all outbound operations to the relay.

    Example:
        transport = BridgeTransport(settings.bridge)
        transport.connect(settings)
        transport.send_text(TargetContext.CHANNEL, "Hello")
    """

    def __init__(self, config: "BridgeConfig", client: Optional[httpx.Client] = None):
        """
        Initialize the transport.

        Args:
            config: Bridge settings (relay url, timeout, headers)
            client: HTTP client to use instead of a new one
        """
        self.config = config
        self._client = client

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.config.url,
                headers=self.config.headers,
                timeout=self.config.timeout,
            )
        return self._client

    def connect(self, settings: "Settings") -> None:
        data = self._post("/connect", {
            "address": settings.address,
            "name": settings.name,
            "channel": settings.channel,
            "key_file": str(settings.resolve_path(settings.key_file)),
        })
        try:
            self.own_client_id = int(data["client_id"])
        except (KeyError, TypeError, ValueError):
            raise TransportError("Bridge did not report a client id", {"response": data})
        logger.info(
            f"Connected to {settings.address} as {settings.name}",
            extra={"client_id": self.own_client_id}
        )

    def send_text(self, target: TargetContext, text: str, client_id: Optional[int] = None) -> None:
        self._post("/send", {"target": target.label, "client_id": client_id, "text": text})

    def poke(self, client_id: int, text: str) -> None:
        self._post("/poke", {"client_id": client_id, "text": text})

    def disconnect(self, message: str) -> None:
        if self.own_client_id is None:
            return
        try:
            self._post("/disconnect", {"message": message})
        finally:
            self.own_client_id = None
            self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.client.post(path, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(f"Bridge request {path} failed: {e}", {"url": self.config.url})

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}
