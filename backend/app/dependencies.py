"""
FastAPI dependencies that hand routers their collaborators.

The collaborators are built once in app.main's startup hook and kept on
``app.state``. A collaborator that could not be configured is left as None
and the dependency answers 503, the same way /health/db reports a missing
database client. Tests replace these with ``app.dependency_overrides``.
"""

from typing import Callable

from fastapi import HTTPException, Request

from app.services.deal_store import DealStore
from app.services.gmail_client import GmailClient
from app.services.notifier import ExpiryNotifier


def _require(request: Request, name: str, description: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=503,
            detail=f"{description} unavailable: check server configuration",
        )
    return value


def get_store(request: Request) -> DealStore:
    return _require(request, "store", "Database client")


def get_extraction_client(request: Request):
    return _require(request, "extraction_client", "Extraction client")


def get_notifier(request: Request) -> ExpiryNotifier:
    return _require(request, "notifier", "Notifier")


def get_gmail_factory(request: Request) -> Callable[[dict], GmailClient]:
    """Factory turning a user's stored tokens into a GmailClient."""
    factory = getattr(request.app.state, "gmail_factory", None)
    return factory or GmailClient.from_tokens
