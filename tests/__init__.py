"""Tests for refdedup.

Test Files and Coverage:
========================

| Test File               | Test Classes            | Tested Constructs                      | Tested Functionalities                       |
|-------------------------|-------------------------|----------------------------------------|----------------------------------------------|
| test_deduplicator.py    | DeduplicatorTest        | Deduplicator                           | End-to-end runs, dry run, convergence        |
|                         | DeduplicatorSetupTest   | Deduplicator, SetupError               | Root validation, hash algorithm selection    |
| test_cli.py             | CliTest                 | refdedup_main()                        | Exit codes, output, report file              |
| test_settings.py        | DedupSettingsTest       | DedupSettings, DedupPolicy             | TOML loading, dot keys, overrides            |
| utils/                  |                         | Processor, walk(), Throttler           | Hashing, traversal, concurrency limits       |
| index/                  |                         | ReferenceIndexBuilder, ReferenceIndex  | Size bucketing, tie-break, failures          |
| commands/               |                         | DuplicateMatcher, ActionExecutor       | Verdicts, deletion policy, run orchestration |
| report/                 |                         | DedupSummary, ReportCollector, store   | Counting, collection, msgpack report files   |
"""
