"""Tests for index module.

Test Files and Coverage:
========================

| Test File                 | Test Classes              | Tested Constructs                     | Tested Functionalities                        |
|---------------------------|---------------------------|---------------------------------------|-----------------------------------------------|
| test_reference_index.py   | ReferenceIndexBuilderTest | ReferenceIndexBuilder                 | Size bucketing, lazy hashing, tie-break, errors |
|                           | ReferenceIndexTest        | ReferenceIndex                        | Lookups, immutability                         |
"""
