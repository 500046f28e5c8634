"""Pydantic models for the Discord webhook message schema."""

from pydantic import BaseModel


class EmbedField(BaseModel):
    name: str
    value: str
    inline: bool = False


class EmbedFooter(BaseModel):
    text: str


class Embed(BaseModel):
    title: str | None = None
    description: str | None = None
    color: int | None = None
    fields: list[EmbedField] = []
    footer: EmbedFooter | None = None
    timestamp: str | None = None  # RFC3339


class DiscordMessage(BaseModel):
    content: str | None = None
    embeds: list[Embed] = []
