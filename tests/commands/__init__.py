"""Tests for command implementation modules.

Test Files and Coverage:
========================

| Test File          | Test Classes          | Tested Constructs                 | Tested Functionalities                            |
|--------------------|-----------------------|-----------------------------------|---------------------------------------------------|
| test_match.py      | DuplicateMatcherTest  | DuplicateMatcher, Verdict         | Two-stage comparison, errors, symlinks, verify    |
| test_execute.py    | ActionExecutorTest    | ActionExecutor                    | Dry run, deletion, self-reference, hard links     |
| test_dedup.py      | DedupProcessorTest    | do_dedup(), overlap_exclusions()  | Orchestration, overlapping trees, walk failures   |
"""
