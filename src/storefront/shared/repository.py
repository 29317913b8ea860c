"""Lookup helpers used by command handlers and services."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.shared.errors import NotFound


def fetch(aggregate_cls, identifier, message: str | None = None):
    """Load an aggregate by id, raising ``NotFound`` with a readable message."""
    if not identifier:
        raise NotFound(message or f"{aggregate_cls.__name__} not found")
    try:
        return current_domain.repository_for(aggregate_cls).get(str(identifier))
    except ObjectNotFoundError as exc:
        raise NotFound(message or f"{aggregate_cls.__name__} not found") from exc


def find_all(aggregate_cls, **filters) -> list:
    return current_domain.repository_for(aggregate_cls)._dao.query.filter(**filters).all().items
