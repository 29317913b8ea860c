"""Audit trail queries for administrators."""

import math

from protean.utils.globals import current_domain

from storefront.audit.audit_log import AuditLog
from storefront.identity.context import RequestContext
from storefront.shared.errors import InvalidRequest
from storefront.shared.results import ok, with_error_handling

DEFAULT_PAGE_SIZE = 50


def pagination_meta(page: int, page_size: int, total: int) -> dict:
    total_pages = math.ceil(total / page_size) if total else 0
    return {
        "page": page,
        "page_size": page_size,
        "total": total,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }


@with_error_handling
def get_audit_logs(ctx: RequestContext, entity_type, entity_id):
    ctx.require_admin()
    logs = current_domain.repository_for(AuditLog).for_entity(entity_type, entity_id)
    return ok([log.to_dict_view() for log in logs])


@with_error_handling
def list_audit_logs(ctx: RequestContext, page=1, page_size=DEFAULT_PAGE_SIZE):
    ctx.require_admin()
    if page < 1 or page_size < 1:
        raise InvalidRequest("Page and page size must be positive")
    result = current_domain.repository_for(AuditLog).page(page, page_size)
    return ok(
        {
            "logs": [log.to_dict_view() for log in result.items],
            "meta": pagination_meta(page, page_size, result.total),
        }
    )
