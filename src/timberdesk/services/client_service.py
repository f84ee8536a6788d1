from __future__ import annotations

import logging
from typing import Optional

from timberdesk.application.store import DomainStore
from timberdesk.domain import state
from timberdesk.domain.errors import NotFoundError, ValidationError
from timberdesk.domain.models import CLIENT_CASH, CLIENT_TYPES, Client, User, new_id
from timberdesk.services.auth_service import AuthService
from timberdesk.services.inputs import clean_text

log = logging.getLogger(__name__)


class ClientService:
    def __init__(self, store: DomainStore, auth: AuthService):
        self.store = store
        self.auth = auth

    def list_clients(self) -> list[Client]:
        return list(self.store.state.clients)

    def search(self, term: str) -> list[Client]:
        needle = clean_text(term).lower()
        if not needle:
            return self.list_clients()
        return [c for c in self.store.state.clients if needle in c.name.lower() or needle in c.phone.lower()]

    def save_client(
        self,
        actor: User,
        name: str,
        phone: str = "",
        address: str = "",
        type: str = CLIENT_CASH,
        client_id: Optional[str] = None,
    ) -> Client:
        """Clients are keyed by name: saving an existing name replaces that client."""
        self.auth.require_action(actor, "manage_clients")
        name = clean_text(name)
        if not name:
            raise ValidationError("Client name is required.")
        kind = clean_text(type).upper() or CLIENT_CASH
        if kind not in CLIENT_TYPES:
            raise ValidationError(f"Client type must be one of {', '.join(CLIENT_TYPES)}.")

        existing = next((c for c in self.store.state.clients if c.name == name), None)
        if client_id is not None and existing and existing.id != client_id:
            raise ValidationError(f"Client name {name} is already used by another client.")
        client = Client(
            id=client_id or (existing.id if existing else new_id()),
            name=name,
            phone=clean_text(phone),
            address=clean_text(address),
            type=kind,
        )
        self.store.apply(state.save_client, client)
        self.store.sync(self.store.gateway.clients.save, client)
        log.info("client_saved client_id=%s type=%s", client.id, kind)
        return client

    def delete_client(self, actor: User, client_id: str) -> None:
        self.auth.require_action(actor, "delete_record")
        if not any(c.id == client_id for c in self.store.state.clients):
            raise NotFoundError("Client not found.")
        self.store.apply(state.delete_client, client_id)
        self.store.sync(self.store.gateway.clients.delete, client_id)
        log.info("client_deleted client_id=%s actor=%s", client_id, actor.name)
