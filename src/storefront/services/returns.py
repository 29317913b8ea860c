"""Online returns: customers request, staff review, admins refund."""

import json
from typing import Literal

from protean.utils.globals import current_domain
from pydantic import BaseModel, Field

from storefront.identity.context import RequestContext
from storefront.returns.return_request import ReturnRequest
from storefront.returns.workflow import ApproveReturn, ProcessReturnRefund, RejectReturn, RequestReturn
from storefront.services.audit import pagination_meta
from storefront.shared.errors import InvalidRequest
from storefront.shared.results import ok, with_error_handling


class ReturnLine(BaseModel):
    order_item_id: str
    quantity: int = Field(ge=1)
    reason: str = Field(min_length=10, max_length=500)


def _page(results, page, page_size) -> dict:
    return {
        "returns": [return_request.to_dict_view() for return_request in results.items],
        "meta": pagination_meta(page, page_size, results.total),
    }


def _check_page(page, page_size):
    if page < 1 or page_size < 1:
        raise InvalidRequest("Page and page size must be positive")


@with_error_handling
def request_return(
    ctx: RequestContext,
    order_id,
    items,
    return_method: Literal["refund", "exchange", "store_credit"] = "refund",
    additional_notes=None,
):
    actor = ctx.require_actor()
    lines = [ReturnLine.model_validate(item) for item in items]
    if not lines:
        raise InvalidRequest("Select at least one item to return")
    if return_method not in ("refund", "exchange", "store_credit"):
        raise InvalidRequest(f"Unknown return method: {return_method}")

    result = current_domain.process(
        RequestReturn(
            order_id=order_id,
            customer_id=actor.user_id,
            items=json.dumps([line.model_dump() for line in lines]),
            return_method=return_method,
            additional_notes=additional_notes,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok(result, "Return request submitted successfully")


@with_error_handling
def get_my_returns(ctx: RequestContext, page=1, page_size=10):
    actor = ctx.require_actor()
    _check_page(page, page_size)
    results = current_domain.repository_for(ReturnRequest).for_customer(actor.user_id, page, page_size)
    return ok(_page(results, page, page_size))


@with_error_handling
def get_pending_returns(ctx: RequestContext, page=1, page_size=20):
    ctx.require_staff()
    _check_page(page, page_size)
    results = current_domain.repository_for(ReturnRequest).pending(page, page_size)
    return ok(_page(results, page, page_size))


@with_error_handling
def approve_return(ctx: RequestContext, return_id, notes=None):
    actor = ctx.require_staff()
    current_domain.process(
        ApproveReturn(return_id=return_id, approved_by=actor.user_id, notes=notes, ip_address=ctx.ip_address),
        asynchronous=False,
    )
    return ok(None, "Return approved")


@with_error_handling
def reject_return(ctx: RequestContext, return_id, reason):
    actor = ctx.require_staff()
    current_domain.process(
        RejectReturn(return_id=return_id, rejected_by=actor.user_id, reason=reason, ip_address=ctx.ip_address),
        asynchronous=False,
    )
    return ok(None, "Return rejected")


@with_error_handling
def process_return_refund(
    ctx: RequestContext,
    return_id,
    refund_method: Literal["original", "store_credit", "cash"] = "original",
    amount=None,
):
    actor = ctx.require_admin()
    if refund_method not in ("original", "store_credit", "cash"):
        raise InvalidRequest(f"Unknown refund method: {refund_method}")

    result = current_domain.process(
        ProcessReturnRefund(
            return_id=return_id,
            refund_method=refund_method,
            amount=amount,
            refunded_by=actor.user_id,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok(result, "Refund processed successfully")
