"""
Cache invalidation signals
Automatically invalidate dashboard caches when services or parts change
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_cache_pattern

logger = logging.getLogger(__name__)

_thread_locals = threading.local()


@contextmanager
def suspend_cache_signals():
    """
    Temporarily suspend cache invalidation signals.
    Used by bulk operations (restore, scraping); invalidate manually afterwards.
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


def invalidate_service_stats_cache():
    """Drop cached service dashboard numbers"""
    from repairdesk.services.stats import get_service_stats
    from django.core.cache import cache

    cache.delete(get_service_stats.cache_key())
    invalidate_cache_pattern("service_stats")
    logger.debug("Invalidated service stats cache")


def invalidate_catalog_stats_cache():
    """Drop cached spare-parts catalog numbers"""
    from repairdesk.catalog.stats import get_catalog_stats
    from django.core.cache import cache

    cache.delete(get_catalog_stats.cache_key())
    invalidate_cache_pattern("catalog_stats")
    logger.debug("Invalidated catalog stats cache")


@receiver([post_save, post_delete])
def invalidate_services_cache(sender, instance, **kwargs):
    """Invalidate service stats when services change"""
    if is_suspended():
        return

    if sender.__name__ in ['Service', 'SparePartOrder']:
        try:
            from repairdesk.services.models import Service
            from repairdesk.catalog.models import SparePartOrder
            if isinstance(instance, (Service, SparePartOrder)):
                transaction.on_commit(invalidate_service_stats_cache)
        except Exception as e:
            logger.warning(f"Error in invalidate_services_cache signal: {e}")


@receiver([post_save, post_delete])
def invalidate_catalog_cache(sender, instance, **kwargs):
    """Invalidate catalog stats when catalog entries change"""
    if is_suspended():
        return

    if sender.__name__ == 'SparePartsCatalog':
        try:
            from repairdesk.catalog.models import SparePartsCatalog
            if isinstance(instance, SparePartsCatalog):
                transaction.on_commit(invalidate_catalog_stats_cache)
        except Exception as e:
            logger.warning(f"Error in invalidate_catalog_cache signal: {e}")
