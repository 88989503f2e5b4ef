from unittest import mock

from django.test import TestCase, override_settings

from restorer.integration import BackupIntegration
from restorer.jobs import JobStatus, JobStore
from restorer.notices import DismissPolicy, NoticeKind, Notifier
from restorer.transients import record_failure

from .utils import (
    clear_caches,
    create_restored_entries,
    save_job,
    set_configuration,
    set_imported_entries,
)


class NotifierTestCase(TestCase):
    def setUp(self):
        clear_caches()
        self.store = JobStore()
        self.integration = BackupIntegration(store=self.store)
        self.notifier = Notifier(self.integration)

        usable = mock.patch.object(
            BackupIntegration, "is_task_engine_usable", return_value=True
        )
        self.mock_usable = usable.start()
        self.addCleanup(usable.stop)


class CompletionNoticeTests(NotifierTestCase):
    def test_completion_notice_counts_only_new_entries(self):
        job = save_job(self.store, status=JobStatus.DONE, previous_import_count=3)
        set_imported_entries(12)
        create_restored_entries(12)

        notice = self.notifier.render("", JobStatus.DONE, 0, job)

        self.assertEqual(notice.kind, NoticeKind.COMPLETED)
        self.assertEqual(notice.body, "9 entries have been successfully imported.")
        self.assertEqual(notice.slug, "restore_import_success_notice_12")
        self.assertEqual(notice.dismiss_policy, DismissPolicy.GLOBAL)
        self.assertEqual(notice.level, "success")
        self.assertTrue(self.store.load().user_notified)

    def test_singular_body(self):
        job = save_job(self.store, status=JobStatus.DONE)
        set_imported_entries(1)

        notice = self.notifier.render("", JobStatus.DONE, 0, job)

        self.assertEqual(notice.body, "1 entry has been successfully imported.")

    def test_completion_notice_is_shown_once(self):
        job = save_job(self.store, status=JobStatus.DONE)
        set_imported_entries(4)

        first = self.notifier.render("", JobStatus.DONE, 0, job)
        # A second render racing on the same stale job record
        second = self.notifier.render("", JobStatus.DONE, 0, job)
        third = self.notifier.render("", JobStatus.DONE, 0, self.store.load())

        self.assertIsNotNone(first)
        self.assertIsNone(second)
        self.assertIsNone(third)

    def test_no_completion_notice_without_new_entries(self):
        for previous in (5, 50):
            with self.subTest(previous=previous):
                job = save_job(
                    self.store, status=JobStatus.DONE, previous_import_count=previous
                )
                set_imported_entries(5)

                self.assertEqual(self.notifier.imported_delta(job), 0)
                self.assertIsNone(self.notifier.render("", JobStatus.DONE, 0, job))
                self.assertFalse(self.store.load().user_notified)

    def test_done_beats_import_action(self):
        job = save_job(self.store, status=JobStatus.DONE, user_notified=True)

        self.assertIsNone(self.notifier.render("import", JobStatus.DONE, 4, job))


class ProgressAndRestoreNoticeTests(NotifierTestCase):
    def test_in_progress_for_running_jobs(self):
        for status in (JobStatus.SCHEDULED, JobStatus.RUNNING):
            job = save_job(self.store, status=status)
            notice = self.notifier.render("", status, 10, job)
            self.assertEqual(notice.kind, NoticeKind.IN_PROGRESS)
            self.assertIsNone(notice.action_url)

    def test_in_progress_for_import_action(self):
        notice = self.notifier.render("import", None, 0, self.store.load())

        self.assertEqual(notice.kind, NoticeKind.IN_PROGRESS)

    def test_call_to_action(self):
        notice = self.notifier.render("", None, 5, self.store.load())

        self.assertEqual(notice.kind, NoticeKind.RESTORE)
        self.assertEqual(notice.body, "5 form entries have been backed up.")
        self.assertEqual(notice.action_url, "?restore_action=import")
        self.assertEqual(notice.action_title, "Restore Entries Now")

    @override_settings(TIME_ZONE="UTC")
    def test_call_to_action_mentions_enabled_since(self):
        # 2023-11-14 22:13:20 UTC
        self.store.mark_enabled(1700000000)

        notice = self.notifier.render("", None, 1, self.store.load())

        self.assertEqual(
            notice.body,
            "1 form entry has been backed up since you enabled backups on "
            "Nov 14, 2023.",
        )

    def test_no_call_to_action_without_new_entries(self):
        for new_count in (0, -2, None):
            self.assertIsNone(self.notifier.render("", None, new_count, self.store.load()))

    def test_no_call_to_action_when_task_engine_unusable(self):
        self.mock_usable.return_value = False

        self.assertIsNone(self.notifier.render("", None, 5, self.store.load()))


class ErrorNoticeTests(NotifierTestCase):
    def test_no_error_notice_below_limit(self):
        record_failure("boom")

        self.assertIsNone(self.notifier.error_notice())

    def test_error_notice_at_default_limit(self):
        for _ in range(3):
            record_failure("boom")

        notice = self.notifier.error_notice()

        self.assertEqual(notice.kind, NoticeKind.ERROR)
        self.assertEqual(notice.level, "error")
        self.assertEqual(notice.dismiss_policy, DismissPolicy.GLOBAL)
        self.assertEqual(notice.slug, "restore_import_error_alert")

    def test_error_notice_uses_configured_limit(self):
        set_configuration("restore_import_fail_limit", 1)
        record_failure("boom")

        self.assertIsNotNone(self.notifier.error_notice())


class WidgetNoticeTests(NotifierTestCase):
    def test_widget_shows_progress_and_call_to_action(self):
        self.assertEqual(
            self.notifier.widget_notice("", JobStatus.RUNNING, 0).kind,
            NoticeKind.IN_PROGRESS,
        )
        self.assertEqual(
            self.notifier.widget_notice("", None, 3).kind, NoticeKind.RESTORE
        )

    def test_widget_skips_completion(self):
        save_job(self.store, status=JobStatus.DONE)
        set_imported_entries(3)

        self.assertIsNone(self.notifier.widget_notice("", JobStatus.DONE, 3))
        self.assertFalse(self.store.load().user_notified)

    def test_widget_hidden_when_task_engine_unusable(self):
        self.mock_usable.return_value = False

        self.assertIsNone(self.notifier.widget_notice("import", JobStatus.RUNNING, 3))
