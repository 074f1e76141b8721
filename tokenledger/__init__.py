"""tokenledger.

This package ingests AI-assistant token usage from many CLI installations of
the same user and keeps one correct, query-ready usage ledger per user: per
UTC day, per usage source (opencode, claude, codex, ...), per model.

High-level architecture
-----------------------

Client side, usage events parsed from assistant session logs are priced and
folded into a submission payload. Server side, the payload is validated and
merged into the user's ledger.

Core subpackages
----------------

- ``tokenledger.core.pricing``: model-name resolution against a LiteLLM-format
  pricing table and cost calculation.
- ``tokenledger.core.aggregation``: usage events to days, years and a summary,
  with cost-relative heatmap intensity.
- ``tokenledger.core.validation``: structural and semantic checks of a
  submission and its fingerprint.
- ``tokenledger.core.ledger``: the idempotent, device-partitioned merge and the
  recomputation of the per-user aggregate.
- ``tokenledger.server``: the FastAPI application exposing submit and read
  endpoints.

Typical workflow
----------------

1. Build a ``PricingResolver`` from a pricing table.
2. ``build_submission(events, resolver)`` produces a ``SubmissionPayload``.
3. The CLI posts it to ``POST /api/v1/submit`` with its API token.
4. The server validates it and ``SubmissionMerger.merge`` folds it into the
   ledger; resubmitting the same payload changes nothing.
"""

__version__ = "0.1.0"
