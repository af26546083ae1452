from io import StringIO

from django.core.management import call_command
from django.test import TestCase


class MigrationStateTest(TestCase):
    """The committed migrations describe every app's current models"""

    def test_models_have_no_pending_migrations(self):
        out = StringIO()
        try:
            call_command('makemigrations', '--check', '--dry-run', stdout=out, stderr=StringIO())
        except SystemExit:
            self.fail(f"Models changed without a migration:\n{out.getvalue()}")
