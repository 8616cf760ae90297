# messaging layer: send / fetch / edit over opaque message ids.
#
# The reconciler only knows the MessagingClient protocol below. The Discord
# implementation posts through a channel webhook with discord.py, reusing
# the aiohttp session the feed client already owns.
#
# Every platform failure is translated into the errors module:
#   discord.NotFound            → MessageNotFound   (reconciler recreates)
#   other HTTP / network / timeout → MessagingError (incident fails, pass continues)

import asyncio
import logging
from typing import Awaitable, Protocol, TypeVar, runtime_checkable

import aiohttp
import discord

from incident_mirror.errors import MessageNotFound, MessagingError
from incident_mirror.models import Payload, PayloadField, RemoteMessage, as_utc

log = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class MessagingClient(Protocol):
    """Capability to create, read back and edit one message per incident."""

    async def send(self, payload: Payload) -> str: ...
    async def fetch(self, message_id: str) -> RemoteMessage | None: ...
    async def edit(self, message_id: str, payload: Payload) -> None: ...


def to_embed(payload: Payload) -> discord.Embed:
    embed = discord.Embed(
        title=payload.title,
        url=payload.url or None,
        colour=discord.Colour.from_str(payload.color),
        description=payload.description,
        timestamp=payload.timestamp,
    )
    embed.set_footer(text=payload.footer)
    for f in payload.fields:
        embed.add_field(name=f.name, value=f.value, inline=False)
    return embed


def from_embed(embed: discord.Embed) -> Payload:
    return Payload(
        title=embed.title or "",
        url=embed.url or "",
        color=str(embed.colour) if embed.colour is not None else "",
        footer=embed.footer.text or "",
        timestamp=as_utc(embed.timestamp),
        description=embed.description or "",
        fields=tuple(PayloadField(name=f.name or "", value=f.value or "") for f in embed.fields),
    )


class DiscordWebhookClient:
    """
    MessagingClient backed by a Discord channel webhook.

    Message ids are Discord snowflakes, carried as strings so the mapping
    file stays a plain string → string document.
    """

    def __init__(self, webhook_url: str, session: aiohttp.ClientSession, timeout_seconds: float = 10) -> None:
        self._webhook = discord.Webhook.from_url(webhook_url, session=session)
        self._timeout = timeout_seconds

    async def _call(self, what: str, aw: Awaitable[T], message_id: str | None = None) -> T:
        try:
            return await asyncio.wait_for(aw, timeout=self._timeout)
        except discord.NotFound as exc:
            if message_id is None:
                raise MessagingError(f"{what}: webhook not found") from exc
            raise MessageNotFound(message_id) from exc
        except discord.HTTPException as exc:
            raise MessagingError(f"{what}: HTTP {exc.status} {exc.text}") from exc
        except asyncio.TimeoutError as exc:
            raise MessagingError(f"{what}: timed out after {self._timeout}s") from exc
        except aiohttp.ClientError as exc:
            raise MessagingError(f"{what}: {exc}") from exc

    @staticmethod
    def _snowflake(message_id: str) -> int:
        try:
            return int(message_id)
        except ValueError:
            # not something Discord ever issued, so there is no such message
            raise MessageNotFound(message_id) from None

    async def send(self, payload: Payload) -> str:
        message = await self._call("send", self._webhook.send(embed=to_embed(payload), wait=True))
        return str(message.id)

    async def fetch(self, message_id: str) -> RemoteMessage | None:
        snowflake = self._snowflake(message_id)
        message = await self._call("fetch", self._webhook.fetch_message(snowflake), message_id)
        if message is None:
            return None
        return RemoteMessage(
            message_id=str(message.id),
            embeds=tuple(from_embed(e) for e in message.embeds),
        )

    async def edit(self, message_id: str, payload: Payload) -> None:
        snowflake = self._snowflake(message_id)
        await self._call("edit", self._webhook.edit_message(snowflake, embed=to_embed(payload)), message_id)
