import json

from django.core.management.base import BaseCommand, CommandError

from restorer.controller import RestoreController
from restorer.state_machine import Action, normalize_action


class Command(BaseCommand):
    help = "Drive the backup restore job and print the notices for its state"

    def add_arguments(self, parser):
        parser.add_argument(
            "action",
            nargs="?",
            default="",
            help="One of: %s. Leave empty to only show the notices."
            % ", ".join(action.value for action in Action if action.value),
        )
        parser.add_argument(
            "--enable",
            action="store_true",
            help="Record that backups are enabled, if not recorded yet",
        )
        parser.add_argument(
            "--json", action="store_true", help="Print the notices as JSON"
        )

    def handle(self, *args, action="", enable=False, **options):
        if action and normalize_action(action) == Action.NONE:
            raise CommandError("Unknown restore action: %s" % action)

        controller = RestoreController()

        if enable:
            enabled_since = controller.integration.mark_enabled()
            self.stdout.write("Backups enabled since %s" % enabled_since)

        result = controller.on_tick(action)

        if result.started:
            self.stdout.write(self.style.SUCCESS("Import task scheduled"))
        if result.restarted:
            self.stdout.write(self.style.SUCCESS("Stalled import restarted"))

        if options["json"]:
            self.stdout.write(
                json.dumps([notice.as_dict() for notice in result.notices], indent=2)
            )
            return

        if not result.notices:
            self.stdout.write("No restore notices")

        for notice in result.notices:
            style = self.style.ERROR if notice.level == "error" else self.style.NOTICE
            self.stdout.write(style(notice.title))
            self.stdout.write("  %s" % notice.body)
            if notice.action_url:
                self.stdout.write("  %s: %s" % (notice.action_title, notice.action_url))
