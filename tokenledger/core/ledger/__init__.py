"""
Ledger merge.

- merge: pure device-partitioned merge arithmetic
- service: the transactional SubmissionMerger and the read-only LedgerReader
"""
