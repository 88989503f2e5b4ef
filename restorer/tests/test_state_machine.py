from unittest import TestCase

from restorer.jobs import JobStatus
from restorer.state_machine import Action, Decision, decide, normalize_action


class NormalizeActionTests(TestCase):
    def test_known_actions(self):
        self.assertEqual(normalize_action("import"), Action.IMPORT)
        self.assertEqual(normalize_action(" Reset "), Action.RESET)
        self.assertEqual(normalize_action("count"), Action.COUNT)
        self.assertEqual(normalize_action("restart"), Action.RESTART)
        self.assertEqual(normalize_action(Action.IMPORT), Action.IMPORT)

    def test_unknown_actions_are_ignored(self):
        for value in ("", "delete-everything", None, 42, ["import"]):
            self.assertEqual(normalize_action(value), Action.NONE)


class DecideTests(TestCase):
    def test_import_without_job_starts_import(self):
        decision = decide("import", None)
        self.assertTrue(decision.start_import)
        self.assertFalse(decision.reset_job)

    def test_import_never_starts_over_existing_job(self):
        for status in (JobStatus.SCHEDULED, JobStatus.RUNNING, JobStatus.DONE):
            with self.subTest(status=status):
                self.assertFalse(decide("import", status).start_import)
                self.assertFalse(decide("import", status.value).start_import)

    def test_reset_clears_purges_and_recounts(self):
        self.assertEqual(
            decide("reset", JobStatus.RUNNING),
            Decision(reset_job=True, purge_entries=True, refresh_counts=True),
        )

    def test_count_clears_without_purging(self):
        self.assertEqual(
            decide("count", JobStatus.DONE),
            Decision(reset_job=True, refresh_counts=True),
        )

    def test_restart_repairs_only(self):
        decision = decide("restart", JobStatus.SCHEDULED)
        self.assertTrue(decision.restart_job)
        self.assertTrue(decision.refresh_counts)
        self.assertFalse(decision.reset_job)
        self.assertFalse(decision.start_import)

    def test_no_action_is_noop(self):
        for action in ("", "garbage"):
            for status in (None, JobStatus.SCHEDULED, JobStatus.DONE):
                decision = decide(action, status)
                self.assertEqual(decision, Decision())
                self.assertTrue(decision.is_noop)
