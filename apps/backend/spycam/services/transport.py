from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Union

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TxSprite:
    """Bitmap message for the display: one opcode byte followed by the PNG bytes."""

    msg_code: int
    png_bytes: bytes

    def pack(self) -> bytes:
        return bytes([self.msg_code]) + self.png_bytes


@dataclass(frozen=True, slots=True)
class TxCode:
    msg_code: int
    value: int

    def pack(self) -> bytes:
        return bytes([self.msg_code, self.value])


TxMessage = Union[TxSprite, TxCode]


class DisplayTransport(ABC):
    @abstractmethod
    async def send_message(self, message: TxMessage) -> int:
        """Send one message; returns how many display links received it."""
        ...


class WebSocketDisplayTransport(DisplayTransport):
    """Fans packed messages out to every display client connected on ``/ws/display``.

    No retries: a client whose send fails is detached and the message is not replayed.
    """

    def __init__(self) -> None:
        self._clients: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def attach(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._clients.add(websocket)
        logger.info("display connected (%d linked)", len(self._clients))

    async def detach(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(websocket)
        logger.info("display disconnected (%d linked)", len(self._clients))

    async def client_count(self) -> int:
        async with self._lock:
            return len(self._clients)

    async def send_message(self, message: TxMessage) -> int:
        packed = message.pack()
        async with self._lock:
            clients = list(self._clients)

        if not clients:
            logger.info("no display linked, dropping message 0x%02x", message.msg_code)
            return 0

        delivered = 0
        for client in clients:
            try:
                await client.send_bytes(packed)
            except Exception as error:
                logger.warning("display send failed, detaching client: %s", error)
                await self.detach(client)
                continue
            delivered += 1

        logger.info(
            "sent message 0x%02x (%d bytes) to %d display(s)", message.msg_code, len(packed), delivered
        )
        return delivered
