"""Tests for report module.

Test Files and Coverage:
========================

| Test File          | Test Classes                      | Tested Constructs                  | Tested Functionalities              |
|--------------------|-----------------------------------|------------------------------------|-------------------------------------|
| test_summary.py    | DedupSummaryTest                  | DedupSummary                       | Counting, success flag              |
|                    | ReportCollectorTest               | ReportCollector                    | Thread-safe appends, listener, sort |
| test_store.py      | ActionReportTest, ReportFileTest  | ActionReport, ReportWriter, reader | msgpack serialization, report files |
"""
