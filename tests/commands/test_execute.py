import os
import tempfile
import unittest
from pathlib import Path

from refdedup.commands.execute import ActionExecutor
from refdedup.commands.match import DuplicateOf, MatchError, Unique
from refdedup.records import FileRecord
from refdedup.report.action import Action

from ..test_utils import make_tree, snapshot_tree


class ActionExecutorTest(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.base = Path(self._tmpdir.name).resolve()
        self.reference = make_tree(self.base / 'ref', {'a.txt': b'hello'})
        self.target = make_tree(self.base / 'target', {'c.txt': b'hello', 'd.txt': b'other'})
        self.executor = ActionExecutor()

    def tearDown(self):
        self._tmpdir.cleanup()

    def record(self, name: str) -> FileRecord:
        return FileRecord.load(self.target / name)

    def test_unique_is_skipped(self):
        report = self.executor.apply(self.record('d.txt'), Unique(), dry_run=False)

        self.assertIs(Action.SKIPPED, report.action)
        self.assertTrue((self.target / 'd.txt').exists())

    def test_error_is_failed_and_untouched(self):
        report = self.executor.apply(self.record('c.txt'), MatchError("cannot fingerprint"), dry_run=False)

        self.assertIs(Action.FAILED, report.action)
        self.assertEqual("cannot fingerprint", report.reason)
        self.assertTrue((self.target / 'c.txt').exists())

    def test_duplicate_dry_run_would_delete(self):
        before = snapshot_tree(self.target)

        report = self.executor.apply(self.record('c.txt'), DuplicateOf(self.reference / 'a.txt'), dry_run=True)

        self.assertIs(Action.WOULD_DELETE, report.action)
        self.assertEqual(before, snapshot_tree(self.target))

    def test_duplicate_is_deleted(self):
        report = self.executor.apply(self.record('c.txt'), DuplicateOf(self.reference / 'a.txt'), dry_run=False)

        self.assertIs(Action.DELETED, report.action)
        self.assertEqual(self.target / 'c.txt', report.target)
        self.assertFalse((self.target / 'c.txt').exists())
        self.assertTrue((self.reference / 'a.txt').exists())

    def test_reference_itself_is_never_deleted(self):
        record = FileRecord.load(self.reference / 'a.txt')

        report = self.executor.apply(record, DuplicateOf(self.reference / 'a.txt'), dry_run=False)

        self.assertIs(Action.SKIPPED, report.action)
        self.assertTrue((self.reference / 'a.txt').exists())

    def test_reference_reached_through_other_path_is_never_deleted(self):
        (self.base / 'alias').symlink_to(self.reference)
        record = FileRecord.load(self.reference / 'a.txt')

        report = self.executor.apply(record, DuplicateOf(self.base / 'alias' / 'a.txt'), dry_run=False)

        self.assertIs(Action.SKIPPED, report.action)
        self.assertTrue((self.reference / 'a.txt').exists())

    def test_hard_link_to_reference_is_kept_by_default(self):
        os.link(self.reference / 'a.txt', self.target / 'hard')

        report = self.executor.apply(self.record('hard'), DuplicateOf(self.reference / 'a.txt'), dry_run=False)

        self.assertIs(Action.SKIPPED, report.action)
        self.assertEqual("hard link to the reference file", report.reason)
        self.assertTrue((self.target / 'hard').exists())

    def test_hard_link_deleted_when_enabled(self):
        os.link(self.reference / 'a.txt', self.target / 'hard')
        executor = ActionExecutor(delete_hard_links=True)

        report = executor.apply(self.record('hard'), DuplicateOf(self.reference / 'a.txt'), dry_run=False)

        self.assertIs(Action.DELETED, report.action)
        self.assertFalse((self.target / 'hard').exists())
        self.assertEqual(b'hello', (self.reference / 'a.txt').read_bytes())

    def test_vanished_target_is_failed(self):
        record = self.record('c.txt')
        (self.target / 'c.txt').unlink()

        report = self.executor.apply(record, DuplicateOf(self.reference / 'a.txt'), dry_run=False)

        self.assertIs(Action.FAILED, report.action)

    def test_modified_target_is_not_deleted(self):
        record = self.record('c.txt')
        (self.target / 'c.txt').write_bytes(b'hello, changed')

        report = self.executor.apply(record, DuplicateOf(self.reference / 'a.txt'), dry_run=False)

        self.assertIs(Action.FAILED, report.action)
        self.assertEqual("modified since matched", report.reason)
        self.assertTrue((self.target / 'c.txt').exists())

    def test_record_without_identity_is_not_deleted(self):
        record = FileRecord(self.target / 'c.txt', 5)

        report = self.executor.apply(record, DuplicateOf(self.reference / 'a.txt'), dry_run=False)

        self.assertIs(Action.FAILED, report.action)
        self.assertTrue((self.target / 'c.txt').exists())

    def test_missing_reference_prevents_deletion(self):
        record = self.record('c.txt')
        (self.reference / 'a.txt').unlink()

        report = self.executor.apply(record, DuplicateOf(self.reference / 'a.txt'), dry_run=False)

        self.assertIs(Action.FAILED, report.action)
        self.assertTrue((self.target / 'c.txt').exists())

    @unittest.skipIf(os.geteuid() == 0, "root can delete from read-only directories")
    def test_deletion_failure_is_reported(self):
        record = self.record('c.txt')
        os.chmod(self.target, 0o555)
        try:
            report = self.executor.apply(record, DuplicateOf(self.reference / 'a.txt'), dry_run=False)
        finally:
            os.chmod(self.target, 0o755)

        self.assertIs(Action.FAILED, report.action)
        self.assertTrue(report.reason.startswith("cannot delete"))
        self.assertTrue((self.target / 'c.txt').exists())


if __name__ == '__main__':
    unittest.main()
