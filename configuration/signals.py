from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from configuration.models import Configuration
from configuration.utils import cache_configuration_value, uncache_configuration_value


@receiver(post_save, sender=Configuration)
def update_cached_configuration_value(
    sender: type[Configuration], *, instance: Configuration, **kwargs
) -> None:
    """
    Refresh the cached value after a Configuration row is saved.

    Values which cannot be parsed (invalid JSON, for instance) are evicted from
    the cache instead, so readers fall back to the database and surface the
    error there.
    """
    try:
        value = instance.get_value()
    except ValueError:
        uncache_configuration_value(instance.key)
        return
    cache_configuration_value(instance.key, value)


@receiver(post_delete, sender=Configuration)
def remove_cached_configuration_value(
    sender: type[Configuration], *, instance: Configuration, **kwargs
) -> None:
    uncache_configuration_value(instance.key)
