"""Clock in / clock out — commands and handler."""

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.audit.audit_log import AuditAction, AuditEntityType, record_audit
from storefront.domain import logger, storefront
from storefront.pos.shift import StaffShift
from storefront.shared.errors import Conflict, NotFound
from storefront.shared.repository import fetch


@storefront.command(part_of="StaffShift")
class ClockIn:
    staff_id = Identifier(required=True)
    register_id = String(required=True, max_length=100)
    opening_cash = Float(required=True)


@storefront.command(part_of="StaffShift")
class ClockOut:
    shift_id = Identifier(required=True)
    staff_id = Identifier(required=True)
    closing_cash = Float(required=True)
    notes = Text()


@storefront.command_handler(part_of=StaffShift)
class StaffShiftHandler:
    @handle(ClockIn)
    def clock_in(self, command):
        repo = current_domain.repository_for(StaffShift)
        if repo.open_for(command.staff_id) is not None:
            raise Conflict("Already clocked in")

        shift = StaffShift.open(command.staff_id, command.register_id, command.opening_cash)
        repo.add(shift)
        logger.info("Shift opened", shift_id=str(shift.id), staff_id=str(command.staff_id))
        return shift.to_dict_view()

    @handle(ClockOut)
    def clock_out(self, command):
        shift = fetch(StaffShift, command.shift_id, "Shift not found")
        if str(shift.staff_id) != str(command.staff_id):
            raise NotFound("Shift not found")

        shift.close(command.closing_cash, notes=command.notes)
        record_audit(
            AuditAction.UPDATE,
            AuditEntityType.SHIFT,
            entity_id=shift.id,
            user_id=command.staff_id,
            new_value={
                "expected_cash": shift.expected_cash,
                "closing_cash": shift.closing_cash,
                "cash_difference": shift.cash_difference,
            },
        )
        current_domain.repository_for(StaffShift).add(shift)
        logger.info("Shift closed", shift_id=str(shift.id), cash_difference=shift.cash_difference)
        return shift.to_dict_view()
