from unittest import mock

from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase

from restorer.jobs import ImportJob, JobStatus, JobStore
from restorer.reset import ResetEngine
from restorer.transients import (
    ACCESS_TOKEN_LOCK,
    BACKED_UP_COUNT,
    IMPORT_TASK_LOCK,
    IMPORTED_ENTRIES,
    LAST_ERROR,
    RESET_KEYS,
    SITE_KEY_LOCK,
)

from .utils import save_job


class ResetEngineTests(TestCase):
    def setUp(self):
        cache.clear()
        self.store = JobStore()
        self.engine = ResetEngine(self.store)
        save_job(self.store, status=JobStatus.DONE, user_notified=True)
        cache.set(SITE_KEY_LOCK, "1")
        cache.set(ACCESS_TOKEN_LOCK, "1")
        cache.set(IMPORTED_ENTRIES, ["00001", "00002"])
        cache.set(LAST_ERROR, {"count": 2, "message": "boom"})
        cache.set(BACKED_UP_COUNT, 12)

    def assertCleared(self):
        self.assertEqual(self.store.load(), ImportJob())
        for key in RESET_KEYS:
            self.assertIsNone(cache.get(key), key)

    def test_reset_clears_job_and_transients(self):
        self.engine.reset()

        self.assertCleared()

    def test_reset_leaves_import_task_lock(self):
        cache.set(IMPORT_TASK_LOCK, "task-1")

        self.engine.reset()

        self.assertEqual(cache.get(IMPORT_TASK_LOCK), "task-1")

    def test_reset_without_state_is_noop(self):
        self.engine.reset()
        self.engine.reset()

        self.assertCleared()

    def test_failed_bulk_delete_falls_back_to_single_deletes(self):
        with mock.patch.object(
            cache, "delete_many", side_effect=ConnectionError("redis down")
        ):
            self.engine.reset()

        self.assertCleared()

    def test_single_delete_failures_do_not_stop_the_reset(self):
        original_delete = cache.delete

        def flaky_delete(key, *args, **kwargs):
            if key == SITE_KEY_LOCK:
                raise ConnectionError("redis down")
            return original_delete(key, *args, **kwargs)

        with (
            mock.patch.object(cache, "delete_many", side_effect=ConnectionError),
            mock.patch.object(cache, "delete", side_effect=flaky_delete),
        ):
            failed = self.engine.clear_transients()

        self.assertEqual(failed, [SITE_KEY_LOCK])
        self.assertEqual(cache.get(SITE_KEY_LOCK), "1")
        for key in RESET_KEYS:
            if key != SITE_KEY_LOCK:
                self.assertIsNone(cache.get(key), key)

    def test_database_failure_still_clears_transients(self):
        with mock.patch.object(
            self.store, "clear", side_effect=DatabaseError("locked")
        ):
            self.engine.reset()

        for key in RESET_KEYS:
            self.assertIsNone(cache.get(key), key)
        self.assertEqual(self.store.load().status, JobStatus.DONE)
