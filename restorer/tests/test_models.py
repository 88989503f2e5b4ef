from datetime import datetime, timezone

from django.db import IntegrityError
from django.test import TestCase

from restorer.models import RestoredEntry


class RestoredEntryTests(TestCase):
    def test_str(self):
        entry = RestoredEntry(backup_id="00042", form_id="7")

        self.assertEqual(str(entry), "RestoredEntry(backup_id=00042, form_id=7)")

    def test_backup_id_is_unique(self):
        RestoredEntry.objects.create(backup_id="00001")

        with self.assertRaises(IntegrityError):
            RestoredEntry.objects.create(backup_id="00001")

    def test_parse_submitted(self):
        expected = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

        self.assertEqual(RestoredEntry.parse_submitted(1700000000), expected)
        self.assertEqual(
            RestoredEntry.parse_submitted("2023-11-14T22:13:20+00:00"), expected
        )
        self.assertIsNone(RestoredEntry.parse_submitted(None))
        self.assertIsNone(RestoredEntry.parse_submitted(""))
        self.assertIsNone(RestoredEntry.parse_submitted("not a date"))

    def test_defaults_from_record(self):
        defaults = RestoredEntry.defaults_from_record(
            {"id": 3, "form_id": 12, "fields": {"email": "a@example.com"}}
        )

        self.assertEqual(
            defaults,
            {"form_id": "12", "payload": {"email": "a@example.com"}, "submitted": None},
        )
