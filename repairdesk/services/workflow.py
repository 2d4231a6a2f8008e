"""
Service lifecycle: creation, technician assignment, status changes and visit outcomes.

There is no transition table; any authorized caller may move a service to
any known status. Database writes for a change happen in one transaction,
notifications are sent afterwards and never undo the change.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction
from django.utils import timezone

from repairdesk.core.permissions import is_admin_user
from repairdesk.core.utils import create_audit_log
from repairdesk.notifications import dispatcher
from repairdesk.notifications.dispatcher import DispatchReport
from .models import Service, ServiceStatusHistory, STATUS_DESCRIPTIONS

logger = logging.getLogger(__name__)

STATUS_UPDATE_FIELDS = ('technician_notes', 'cost', 'used_parts', 'machine_notes', 'is_completely_fixed')


class ServiceWorkflowError(Exception):
    status_code = 400


class InvalidStatusError(ServiceWorkflowError):
    pass


class InvalidAssignmentError(ServiceWorkflowError):
    pass


class ServicePermissionError(ServiceWorkflowError):
    status_code = 403


@dataclass
class StatusChangeResult:
    service: Service
    old_status: str
    new_status: str
    dispatch: Optional[DispatchReport] = None

    @property
    def changed(self):
        return self.old_status != self.new_status


def validate_status(new_status):
    if new_status not in STATUS_DESCRIPTIONS:
        valid = ', '.join(STATUS_DESCRIPTIONS)
        raise InvalidStatusError(f"Nevažeći status '{new_status}'. Dozvoljeni statusi: {valid}")


def ensure_can_change_status(service, user):
    """Admins may change any service, technicians only their own"""
    if is_admin_user(user):
        return
    if getattr(user, 'role', None) == 'technician':
        if service.technician_id != user.id:
            raise ServicePermissionError('Nemate dozvolu da menjate ovaj servis.')
        return
    raise ServicePermissionError('Samo administrator ili serviser mogu menjati status servisa.')


def change_service_status(service, new_status, user, request=None, notify=True, **fields):
    """
    Move a service to `new_status` and record optional work details.

    Accepted fields: technician_notes, cost, used_parts, machine_notes,
    is_completely_fixed. Entering `completed` stamps completed_date.
    """
    validate_status(new_status)
    ensure_can_change_status(service, user)

    with transaction.atomic():
        service = Service.objects.select_for_update().get(pk=service.pk)
        old_status = service.status

        changes = {}
        for field in STATUS_UPDATE_FIELDS:
            value = fields.get(field)
            if value is not None:
                setattr(service, field, value)
                changes[field] = str(value)

        service.status = new_status
        if new_status == Service.STATUS_COMPLETED and old_status != Service.STATUS_COMPLETED:
            service.completed_date = timezone.now()
        if new_status == Service.STATUS_SCHEDULED:
            service.needs_rescheduling = False
        service.save()

        if old_status != new_status:
            ServiceStatusHistory.objects.create(
                service=service,
                old_status=old_status,
                new_status=new_status,
                changed_by=user,
                notes=fields.get('technician_notes'),
            )
            changes['status'] = {'old': old_status, 'new': new_status}

        create_audit_log(request=request, user=user, action='status_change', model_name='Service',
                         object_id=service.id, object_name=str(service), changes=changes)

    result = StatusChangeResult(service=service, old_status=old_status, new_status=new_status)
    if notify and result.changed:
        result.dispatch = dispatcher.notify_status_changed(service, old_status, new_status, changed_by=user)
    logger.info(f"Service #{service.id} status {old_status} -> {new_status} by {user}")
    return result


def assign_technician(service, technician, user, request=None, scheduled_date=None, notify=True):
    """Assign a technician; a pending service becomes assigned"""
    if technician is None or technician.role != 'technician' or not technician.is_active:
        raise InvalidAssignmentError('Izabrani korisnik nije aktivan serviser.')
    if service.is_closed:
        raise InvalidAssignmentError('Servis je zatvoren i ne može biti dodeljen.')

    with transaction.atomic():
        service = Service.objects.select_for_update().get(pk=service.pk)
        previous_technician_id = service.technician_id
        old_status = service.status

        service.technician = technician
        if scheduled_date is not None:
            service.scheduled_date = scheduled_date
            service.needs_rescheduling = False
        if service.status == Service.STATUS_PENDING:
            service.status = Service.STATUS_ASSIGNED
        service.save()

        if old_status != service.status:
            ServiceStatusHistory.objects.create(
                service=service,
                old_status=old_status,
                new_status=service.status,
                changed_by=user,
                notes=f"Dodeljen serviseru {technician.display_name}",
            )

        create_audit_log(request=request, user=user, action='technician_assign', model_name='Service',
                         object_id=service.id, object_name=str(service),
                         changes={'technician': {'old': previous_technician_id, 'new': technician.id}})

    report = None
    if notify and previous_technician_id != technician.id:
        report = dispatcher.notify_technician_assigned(service, assigned_by=user)
    return service, report


def register_new_service(service, user, request=None, notify=True):
    """Bookkeeping after a service row has been inserted"""
    ServiceStatusHistory.objects.create(
        service=service,
        old_status='',
        new_status=service.status,
        changed_by=user,
        notes='Servis kreiran',
    )
    create_audit_log(request=request, user=user, action='create', model_name='Service',
                     object_id=service.id, object_name=str(service),
                     changes={'client': service.client_id, 'status': service.status})
    if notify:
        return dispatcher.notify_service_created(service, created_by=user)
    return None


def ensure_open(service):
    if service.is_closed:
        raise InvalidStatusError('Servis je zatvoren.')


def report_client_unavailable(service, reason, user, request=None, notify=True):
    """
    Record a visit where the client could not be reached.

    The appointment is dropped and the service goes back to `assigned`
    (or `pending` without a technician) until it is scheduled again.
    """
    ensure_can_change_status(service, user)
    ensure_open(service)

    with transaction.atomic():
        service = Service.objects.select_for_update().get(pk=service.pk)
        old_status = service.status

        service.client_unavailable_reason = reason
        service.needs_rescheduling = True
        service.scheduled_date = None
        if service.status in (Service.STATUS_SCHEDULED, Service.STATUS_IN_PROGRESS):
            service.status = Service.STATUS_ASSIGNED if service.technician_id else Service.STATUS_PENDING
        service.save()

        if old_status != service.status:
            ServiceStatusHistory.objects.create(
                service=service,
                old_status=old_status,
                new_status=service.status,
                changed_by=user,
                notes=f"Klijent nedostupan: {reason}",
            )

        create_audit_log(request=request, user=user, action='update', model_name='Service',
                         object_id=service.id, object_name=str(service),
                         changes={'client_unavailable_reason': reason, 'status': service.status})

    result = StatusChangeResult(service=service, old_status=old_status, new_status=service.status)
    if notify:
        result.dispatch = dispatcher.notify_client_unavailable(service, reason, reported_by=user)
    logger.info(f"Service #{service.id}: client unavailable, reported by {user}")
    return result


def refuse_repair(service, reason, user, request=None, notify=True):
    """The customer declined the repair; the service is closed as cancelled"""
    ensure_can_change_status(service, user)
    ensure_open(service)

    with transaction.atomic():
        Service.objects.filter(pk=service.pk).update(
            customer_refused_repair=True,
            repair_refusal_reason=reason,
            needs_rescheduling=False,
        )
        result = change_service_status(service, Service.STATUS_CANCELLED, user, request=request,
                                       notify=False, technician_notes=reason)

    if notify:
        result.dispatch = dispatcher.notify_repair_refused(result.service, reason, refused_by=user)
    logger.info(f"Service #{service.id}: repair refused by the customer, recorded by {user}")
    return result
