"""
Full-table JSON backups.

A backup file holds every row of the business tables as serialized by
django.core.serializers, keyed by model label, plus per-table counts.
Restore replaces the contents of each table found in the file inside a
single transaction.
"""
import json
import logging
from pathlib import Path

from django.apps import apps
from django.core import serializers
from django.core.serializers.json import DjangoJSONEncoder
from django.core.management.color import no_style
from django.db import connection, transaction
from django.utils import timezone

from .cache_signals import suspend_cache_signals, invalidate_service_stats_cache, invalidate_catalog_stats_cache

logger = logging.getLogger(__name__)

BACKUP_VERSION = '1.0.0'

# Parents before children; restore deletes in reverse order
BACKUP_MODELS = [
    'core.user',
    'core.setting',
    'clients.client',
    'clients.appliancecategory',
    'clients.manufacturer',
    'clients.appliance',
    'services.service',
    'services.servicestatushistory',
    'catalog.sparepartscatalog',
    'catalog.sparepartorder',
]

NOTIFICATION_MODELS = [
    'notifications.notification',
    'notifications.pushsubscription',
]


class BackupError(Exception):
    pass


def backup_models(include_notifications=False):
    labels = BACKUP_MODELS + (NOTIFICATION_MODELS if include_notifications else [])
    return [apps.get_model(label) for label in labels]


def build_backup(include_notifications=False):
    """Serialize every backed-up table into a plain dict"""
    tables = {}
    counts = {}
    for model in backup_models(include_notifications):
        label = model._meta.label_lower
        rows = serializers.serialize('python', model._default_manager.order_by('pk'))
        tables[label] = rows
        counts[label] = len(rows)

    return {
        'version': BACKUP_VERSION,
        'created_at': timezone.now().isoformat(),
        'tables': tables,
        'counts': counts,
    }


def write_backup(output_dir, include_notifications=False):
    """Write backup-<timestamp>.json into output_dir; returns (path, counts)"""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    data = build_backup(include_notifications)
    path = output_dir / f"backup-{timezone.now().strftime('%Y-%m-%dT%H-%M-%S')}.json"
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, cls=DjangoJSONEncoder, ensure_ascii=False, indent=2)
    logger.info(f"Backup written to {path}: {sum(data['counts'].values())} rows")
    return path, data['counts']


def load_backup(path):
    path = Path(path)
    if not path.exists():
        raise BackupError(f"Backup file not found: {path}")
    try:
        with open(path, encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise BackupError(f"Backup file is not valid JSON: {str(e)}")

    if not isinstance(data, dict) or not isinstance(data.get('tables'), dict):
        raise BackupError("Backup file has no 'tables' section")
    if data.get('version') != BACKUP_VERSION:
        raise BackupError(f"Unsupported backup version: {data.get('version')}")
    return data


def _snapshot_dependents(present):
    """
    Capture rows outside the backup that the table wipe would cascade into.

    Notifications and push subscriptions not carried by the backup are deleted
    together with their user, and audit rows lose their user reference.
    """
    snapshot = {'rows': [], 'audit_users': {}}
    for label in NOTIFICATION_MODELS:
        if label not in present:
            snapshot['rows'].extend(apps.get_model(label)._default_manager.order_by('pk'))

    if 'core.user' in present:
        audit_log = apps.get_model('core.auditlog')
        for pk, user_id in audit_log._default_manager.filter(user__isnull=False).values_list('pk', 'user_id'):
            snapshot['audit_users'].setdefault(user_id, []).append(pk)
    return snapshot


def _reattach_dependents(snapshot):
    """Put snapshotted rows back for users and services that survived the restore"""
    user_ids = set(apps.get_model('core.user')._default_manager.values_list('pk', flat=True))
    service_ids = set(apps.get_model('services.service')._default_manager.values_list('pk', flat=True))

    dropped = 0
    for obj in snapshot['rows']:
        if obj.user_id not in user_ids:
            dropped += 1
            continue
        # only notifications carry related_* references
        if hasattr(obj, 'related_service_id') and obj.related_service_id not in service_ids:
            obj.related_service_id = None
        if hasattr(obj, 'related_user_id') and obj.related_user_id not in user_ids:
            obj.related_user_id = None
        obj.save()

    audit_log = apps.get_model('core.auditlog')
    for user_id, pks in snapshot['audit_users'].items():
        if user_id in user_ids:
            audit_log._default_manager.filter(pk__in=pks).update(user_id=user_id)

    if dropped:
        logger.warning(f"Restore dropped {dropped} notification rows of users missing from the backup")


def restore_backup(data):
    """
    Replace the contents of every table present in the backup.

    Runs in one transaction: any failure rolls back all deletes and inserts.
    Notifications, push subscriptions and audit entries that are not part of
    the backup are kept for every user the backup still contains.
    Returns the number of restored rows per table.
    """
    tables = data['tables']
    known = BACKUP_MODELS + NOTIFICATION_MODELS
    unknown = [label for label in tables if label not in known]
    if unknown:
        raise BackupError(f"Unknown tables in backup: {', '.join(unknown)}")

    present = [label for label in known if label in tables]
    counts = {}

    with suspend_cache_signals():
        with transaction.atomic():
            snapshot = _snapshot_dependents(present)

            for label in reversed(present):
                apps.get_model(label)._default_manager.all().delete()

            for label in present:
                restored = 0
                for obj in serializers.deserialize('python', tables[label]):
                    obj.save()
                    restored += 1
                counts[label] = restored

            _reattach_dependents(snapshot)

            # rows keep their ids; move PostgreSQL sequences past them
            models = [apps.get_model(label) for label in present]
            with connection.cursor() as cursor:
                for statement in connection.ops.sequence_reset_sql(no_style(), models):
                    cursor.execute(statement)

    invalidate_service_stats_cache()
    invalidate_catalog_stats_cache()
    logger.info(f"Restore finished: {sum(counts.values())} rows in {len(counts)} tables")
    return counts
