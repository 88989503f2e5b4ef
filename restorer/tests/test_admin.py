from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from restorer.integration import BackupIntegration
from restorer.jobs import JobStatus, JobStore
from restorer.models import RestoredEntry

from .utils import FakeBackupClient, clear_caches, create_restored_entries, save_job


@mock.patch.object(BackupIntegration, "is_task_engine_usable", return_value=True)
class RestoredEntryAdminTests(TestCase):
    def setUp(self):
        clear_caches()
        FakeBackupClient.configure()
        self.user = get_user_model().objects.create_superuser(
            username="admin", email="admin@example.com", password="admin"
        )
        self.client.force_login(self.user)

    def test_reset_restore_job_action(self, mock_usable):
        entries = create_restored_entries(3)
        save_job(status=JobStatus.DONE, user_notified=True)

        response = self.client.post(
            reverse("admin:restorer_restoredentry_changelist"),
            {"action": "reset_restore_job", "_selected_action": [entries[0].pk]},
        )

        self.assertEqual(response.status_code, 302)
        # Every entry is purged, not only the selected one
        self.assertFalse(RestoredEntry.objects.exists())
        self.assertIsNone(JobStore().load().status)
