import asyncio
import os
import tempfile
import unittest
from pathlib import Path

from refdedup.commands.dedup import DedupArgs, do_dedup, overlap_exclusions
from refdedup.commands.match import DuplicateOf, VerdictKind
from refdedup.report.action import Action
from refdedup.report.summary import ReportCollector
from refdedup.settings import DedupPolicy
from refdedup.utils.processor import Processor

from ..test_utils import CountingDigest, make_tree


class OverlapExclusionsTest(unittest.TestCase):
    def test_disjoint_roots(self):
        self.assertEqual((set(), set()), overlap_exclusions(Path('/r'), Path('/t')))

    def test_target_inside_reference(self):
        self.assertEqual(({Path('/r/t')}, set()), overlap_exclusions(Path('/r'), Path('/r/t')))

    def test_reference_inside_target(self):
        self.assertEqual((set(), {Path('/t/r')}), overlap_exclusions(Path('/t/r'), Path('/t')))

    def test_same_root(self):
        self.assertEqual((set(), {Path('/d')}), overlap_exclusions(Path('/d'), Path('/d')))


class DedupProcessorTest(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.base = Path(self._tmpdir.name).resolve()
        self.processor = Processor(2)

    def tearDown(self):
        self.processor.close()
        self._tmpdir.cleanup()

    def run_dedup(self, reference: Path, target: Path, digest=None, dry_run=False, policy=DedupPolicy()):
        collector = ReportCollector()
        index = asyncio.run(do_dedup(
            DedupArgs(self.processor, reference, target, ('sha256', digest or CountingDigest()), policy, dry_run),
            collector))
        return index, collector

    def test_reference_files_of_unmatched_sizes_are_not_hashed(self):
        reference = make_tree(self.base / 'ref', {'a.txt': b'hello', 'big': b'x' * 100})
        target = make_tree(self.base / 'target', {'c.txt': b'hello'})
        digest = CountingDigest()

        index, collector = self.run_dedup(reference, target, digest)

        self.assertNotIn(reference / 'big', digest.calls)
        self.assertEqual(2, index.files_seen)
        self.assertEqual([Action.DELETED], [r.action for r in collector.reports])

    def test_reference_failures_are_recorded_in_collector(self):
        reference = make_tree(self.base / 'ref', {'a.txt': b'hello', 'b.txt': b'world'})
        target = make_tree(self.base / 'target', {'c.txt': b'hello'})

        index, collector = self.run_dedup(reference, target, CountingDigest(failing={reference / 'b.txt'}))

        self.assertEqual(index.failures, collector.index_failures)
        self.assertEqual([reference / 'b.txt'], [failure.path for failure in collector.index_failures])
        self.assertEqual(1, collector.summary().index_errors)

    def test_target_nested_in_reference(self):
        """The nested target is not indexed, so its files match the rest of the reference."""
        reference = make_tree(self.base / 'ref', {
            'a.txt': b'hello',
            'target/copy.txt': b'hello',
            'target/only.txt': b'only here',
        })

        _, collector = self.run_dedup(reference, reference / 'target')

        reports = {r.target.name: r for r in collector.reports}
        self.assertIs(Action.DELETED, reports['copy.txt'].action)
        self.assertEqual(DuplicateOf(reference / 'a.txt'), reports['copy.txt'].verdict)
        self.assertIs(VerdictKind.UNIQUE, reports['only.txt'].verdict.kind)
        self.assertTrue((reference / 'a.txt').exists())

    def test_reference_nested_in_target_is_never_touched(self):
        target = make_tree(self.base / 'target', {
            'ref/a': b'same',
            'ref/b': b'same',
            'copy': b'same',
        })

        _, collector = self.run_dedup(target / 'ref', target)

        self.assertEqual([target / 'copy'], [r.target for r in collector.reports])
        self.assertIs(Action.DELETED, collector.reports[0].action)
        self.assertTrue((target / 'ref' / 'a').exists())
        self.assertTrue((target / 'ref' / 'b').exists())

    def test_same_directory_does_nothing(self):
        tree = make_tree(self.base / 'tree', {'a': b'same', 'b': b'same'})

        _, collector = self.run_dedup(tree, tree)

        self.assertEqual(0, len(collector))
        self.assertTrue((tree / 'a').exists())
        self.assertTrue((tree / 'b').exists())

    def test_unreadable_target_file_does_not_stop_the_run(self):
        reference = make_tree(self.base / 'ref', {'a': b'1111', 'b': b'2222'})
        target = make_tree(self.base / 'target', {'x': b'1111', 'y': b'2222'})

        _, collector = self.run_dedup(reference, target, CountingDigest(failing={target / 'x'}))

        actions = {r.target.name: r.action for r in collector.reports}
        self.assertEqual({'x': Action.FAILED, 'y': Action.DELETED}, actions)
        self.assertTrue((target / 'x').exists())

    @unittest.skipIf(os.geteuid() == 0, "root can list unreadable directories")
    def test_unreadable_target_directory_is_reported(self):
        reference = make_tree(self.base / 'ref', {'a': b'1111'})
        target = make_tree(self.base / 'target', {'locked/x': b'1111', 'y': b'1111'})
        os.chmod(target / 'locked', 0)
        try:
            _, collector = self.run_dedup(reference, target)
        finally:
            os.chmod(target / 'locked', 0o755)

        actions = {r.target.name: r.action for r in collector.reports}
        self.assertEqual({'locked': Action.FAILED, 'y': Action.DELETED}, actions)

    def test_symlinks_in_target_are_unique_by_default(self):
        reference = make_tree(self.base / 'ref', {'a': b'content'})
        target = make_tree(self.base / 'target', {})
        (target / 'link').symlink_to(reference / 'a')

        _, collector = self.run_dedup(reference, target)

        [report] = collector.reports
        self.assertIs(Action.SKIPPED, report.action)
        self.assertEqual("symbolic link", report.reason)
        self.assertTrue((target / 'link').is_symlink())

    def test_followed_symlink_to_outside_copy_is_deleted(self):
        reference = make_tree(self.base / 'ref', {'a': b'content'})
        outside = make_tree(self.base / 'outside', {'copy': b'content'})
        target = make_tree(self.base / 'target', {})
        (target / 'link').symlink_to(outside / 'copy')

        _, collector = self.run_dedup(reference, target, policy=DedupPolicy(follow_symlinks=True))

        [report] = collector.reports
        self.assertIs(Action.DELETED, report.action)
        self.assertFalse((target / 'link').is_symlink())
        self.assertTrue((outside / 'copy').exists())


if __name__ == '__main__':
    unittest.main()
