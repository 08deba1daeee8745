"""Tests for utils module.

Test Files and Coverage:
========================

| Test File           | Test Classes     | Tested Constructs               | Tested Functionalities                   |
|---------------------|------------------|---------------------------------|------------------------------------------|
| test_processor.py   | ProcessorTest    | Processor, compute_digest_for_path | Digests, chunking, errors, comparison |
| test_walker.py      | WalkTest         | walk(), WalkPolicy, is_within() | Recursion, symlinks, exclusions, errors  |
| test_throttler.py   | ThrottlerTest    | Throttler                       | Concurrency limit, permit release        |
"""
