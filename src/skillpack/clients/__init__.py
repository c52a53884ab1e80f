"""
clients:
    Registry of supported clients and their handler tables
"""

from __future__ import annotations

from skillpack.clients import claude_code, codex, cursor, gemini, github_copilot
from skillpack.clients.base import Client
from skillpack.handlers import BaseHandler
from skillpack.models import Metadata

CLIENTS: dict[str, Client] = {
    claude_code.CLIENT.id: claude_code.CLIENT,
    cursor.CLIENT.id: cursor.CLIENT,
    gemini.CLIENT.id: gemini.CLIENT,
    codex.CLIENT.id: codex.CLIENT,
    github_copilot.CLIENT.id: github_copilot.CLIENT,
}


def get_client(client_id: str) -> Client:
    """
    Get a client by id.

    Raises:
        ValueError: If the id is not a supported client.
    """
    if client_id not in CLIENTS:
        raise ValueError(f"Unknown client: {client_id}. Supported: {list(CLIENTS.keys())}")
    return CLIENTS[client_id]


def get_handler(client_id: str, metadata: Metadata) -> BaseHandler:
    """Handler for an asset on a client."""
    return get_client(client_id).get_handler(metadata)
