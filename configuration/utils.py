import copy
from contextlib import contextmanager
from typing import Any, Iterator

from django.conf import settings
from django.core.cache import caches
from django.db import transaction

from configuration.models import Configuration, Option

CONFIGURATION_KEY_PREFIX = "config"

_MISSING = object()


def configuration_value(key: str, default: Any = _MISSING) -> Any:
    """
    Retrieve a configuration value by key with caching and type casting.

    Behavior:
        - Look up the value in the ``configuration_cache`` using a namespaced
          cache key.
        - If the value is missing, delegate to
          ``cache_configuration_value(key)`` to fetch, cast, cache, and return
          the value.
        - If no ``Configuration`` row exists and a ``default`` was given, the
          default is returned without being cached.

    Args:
        key (str): The configuration key to resolve.
        default (Any): Value returned when the key is not configured.

    Returns:
        Any: The resolved and type-cast configuration value.

    Raises:
        Configuration.DoesNotExist: If the key is not present in the database
            and no default was given.
    """
    config_cache = caches["configuration_cache"]
    cache_key = f"{CONFIGURATION_KEY_PREFIX}_{key}"
    value = config_cache.get(cache_key)

    if value is None:
        try:
            value = cache_configuration_value(key)
        except Configuration.DoesNotExist:
            if default is _MISSING:
                raise
            return default

    return value


def cache_configuration_value(key: str, value: Any | None = None) -> Any:
    """
    Populate or refresh the cached value for a configuration key.

    If ``value`` is ``None`` the ``Configuration`` row is loaded and cast via
    ``get_value()``; otherwise ``value`` is cached as given.

    Raises:
        Configuration.DoesNotExist: If ``value`` is ``None`` and there is no
            ``Configuration`` row with the given key.
    """
    config_cache = caches["configuration_cache"]
    cache_key = f"{CONFIGURATION_KEY_PREFIX}_{key}"

    if value is None:
        config = Configuration.objects.get(key=key)
        value = config.get_value()

    config_cache.set(cache_key, value, timeout=settings.CONFIGURATION_CACHE_TIMEOUT)
    return value


def uncache_configuration_value(key: str) -> None:
    caches["configuration_cache"].delete(f"{CONFIGURATION_KEY_PREFIX}_{key}")


def get_option(name: str, default: Any = None) -> Any:
    """
    Return the stored value of the option ``name``, or ``default`` when the
    option has never been saved.
    """
    value = (
        Option.objects.filter(name=name).values_list("value", flat=True).first()
    )
    if value is None:
        return default
    return value


def update_option(name: str, value: Any) -> None:
    Option.objects.update_or_create(name=name, defaults={"value": value})


@contextmanager
def locked_option(name: str) -> Iterator[Option]:
    """
    Lock the option row ``name`` for a read-modify-write cycle.

    The row is created if needed and locked with ``select_for_update`` inside
    a transaction, so concurrent callers serialize on it. Changes made to
    ``option.value`` inside the block are saved when the block exits without
    an exception.

    Usage:
        with locked_option("backup_restore") as option:
            option.value["enabled_since"] = 1700000000
    """
    with transaction.atomic():
        Option.objects.get_or_create(name=name)
        option = Option.objects.select_for_update().get(name=name)
        if not isinstance(option.value, dict):
            option.value = {}
        original = copy.deepcopy(option.value)
        yield option
        if option.value != original:
            option.save(update_fields=["value", "modified"])
