"""Django signals for cache invalidation."""

from django.core.cache import cache
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from registrations.models import Category, Event
from registrations.stores.django_store import event_cache_key


@receiver([post_save, post_delete], sender=Event)
def invalidate_event_cache(sender, instance, **kwargs):
    """Invalidate the cached event when it is saved or deleted."""
    cache.delete(event_cache_key(instance.pk))


@receiver([post_save, post_delete], sender=Category)
def invalidate_category_cache(sender, instance, **kwargs):
    """Categories are cached inside their event."""
    cache.delete(event_cache_key(instance.event_id))
