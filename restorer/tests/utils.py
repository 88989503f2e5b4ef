from django.core.cache import cache, caches

from configuration.models import Configuration
from restorer.exceptions import BackupClientError
from restorer.jobs import ImportJob, JobStore
from restorer.models import RestoredEntry
from restorer.transients import IMPORTED_ENTRIES


class FakeBackupClient:
    # Class level so that every client built from settings sees the same data
    records = []
    error = None

    @classmethod
    def configure(cls, records=(), error=None):
        cls.records = list(records)
        cls.error = error

    def count_entries(self):
        if self.error is not None:
            raise self.error
        return len(self.records)

    def fetch_entries(self, after=None, limit=100):
        if self.error is not None:
            raise self.error
        ids = [str(record["id"]) for record in self.records]
        start = ids.index(after) + 1 if after is not None else 0
        return self.records[start : start + limit]


def make_records(count, start=1, form_id="7"):
    return [
        {
            "id": f"{number:05d}",
            "form_id": form_id,
            "fields": {"name": f"Entry {number}"},
            "date": 1700000000 + number,
        }
        for number in range(start, start + count)
    ]


def unreachable_client_error():
    return BackupClientError("Backup service is unreachable")


def save_job(store=None, **kwargs):
    # Writes the job record directly, skipping the status checks
    store = store or JobStore()
    job = ImportJob(**kwargs)
    store.clear()
    if job.to_dict():
        store.compare_and_set({None}, **kwargs)
    return store.load()


def set_imported_entries(count):
    cache.set(IMPORTED_ENTRIES, [f"{number:05d}" for number in range(1, count + 1)])


def create_restored_entries(count, start=1):
    return [
        RestoredEntry.objects.create(backup_id=f"{number:05d}", form_id="7")
        for number in range(start, start + count)
    ]


def clear_caches():
    cache.clear()
    caches["configuration_cache"].clear()


def set_configuration(key, value):
    # Saving refreshes the cached value through the post_save signal
    Configuration.objects.update_or_create(
        key=key,
        defaults={"value": str(value), "data_type": Configuration.DataType.NUMBER},
    )
