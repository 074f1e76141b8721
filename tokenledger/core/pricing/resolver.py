"""
Model pricing resolution.

Maps raw model identifiers reported by assistant logs (``claude-sonnet-4-5-20250929``,
``gpt-5.1-codex-high``, ``models/gemini-2.5-pro``) onto entries of a
LiteLLM-format pricing table and prices a :class:`TokenBreakdown` with them.

Resolution order, first hit wins:

1. exact key;
2. the key under a vendor prefix (``anthropic/``, ``openai/``, ``google/``, ``bedrock/``);
3. steps 1 and 2 again with the normalized model name;
4. a case-insensitive word-boundary scan over the table keys in sorted order,
   first "key found inside the query", then "query found inside a key".

Step 4 precedence is positional: when several keys match, the first in sorted
order wins regardless of which one is the closer model.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

from pydantic import Field, ValidationError

from ..models.base import BaseSchema, WireSchema
from ..models.domain.usage import TokenBreakdown

logger = logging.getLogger(__name__)

VENDOR_PREFIXES = ("anthropic/", "openai/", "google/", "bedrock/")

TIER_SUFFIXES = ("-low", "-medium", "-high", "-free", ":low", ":medium", ":high", ":free")

_DATE_SUFFIX_RE = re.compile(r"(?:[-@]\d{8}|-\d{4}-\d{2}-\d{2})$")
_SEPARATOR_RE = re.compile(r"[._\s]+")


class ModelPricing(WireSchema):
    """Per-token rates for one model, in currency units per token."""

    input_cost_per_token: float = Field(default=0.0, ge=0)
    output_cost_per_token: float = Field(default=0.0, ge=0)
    cache_read_input_token_cost: Optional[float] = Field(default=None, ge=0)
    cache_creation_input_token_cost: Optional[float] = Field(default=None, ge=0)

    def cost(self, tokens: TokenBreakdown) -> float:
        """Price a token breakdown. Reasoning tokens are billed at the output rate."""
        return (
            tokens.input * self.input_cost_per_token
            + tokens.output * self.output_cost_per_token
            + tokens.cache_read * (self.cache_read_input_token_cost or 0.0)
            + tokens.cache_write * (self.cache_creation_input_token_cost or 0.0)
            + tokens.reasoning * self.output_cost_per_token
        )


class PricingEntry(WireSchema):
    model_id: str
    pricing: ModelPricing


class PricingMatch(BaseSchema):
    """Result of a successful lookup: which table key matched, and its rates."""

    query: str
    matched_key: str
    pricing: ModelPricing


class PricingTable:
    """Immutable mapping of model id to :class:`ModelPricing`."""

    def __init__(self, entries: Mapping[str, ModelPricing]):
        self._entries: Dict[str, ModelPricing] = dict(entries)
        self._sorted_keys: List[str] = sorted(self._entries)

    @classmethod
    def from_entries(cls, entries: Iterable[PricingEntry]) -> "PricingTable":
        return cls({entry.model_id: entry.pricing for entry in entries})

    @classmethod
    def from_litellm(cls, data: Mapping[str, Any]) -> "PricingTable":
        """
        Build a table from LiteLLM's ``model_prices_and_context_window.json`` layout.

        Entries that are not objects, that carry neither an input nor an output
        rate, or whose rates fail validation are skipped.

        Args:
            data: Mapping of model id to the raw LiteLLM pricing object.

        Returns:
            PricingTable: The parsed table.
        """
        entries: Dict[str, ModelPricing] = {}
        skipped = 0
        for model_id, raw in data.items():
            if not isinstance(raw, Mapping):
                skipped += 1
                continue
            if "input_cost_per_token" not in raw and "output_cost_per_token" not in raw:
                skipped += 1
                continue
            try:
                entries[model_id] = ModelPricing.model_validate(raw)
            except ValidationError as exc:
                logger.debug(f"Skipping pricing entry {model_id!r}: {exc.error_count()} invalid field(s)")
                skipped += 1
        logger.debug(f"Loaded {len(entries)} pricing entries ({skipped} skipped)")
        return cls(entries)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._sorted_keys)

    def get(self, model_id: str) -> Optional[ModelPricing]:
        return self._entries.get(model_id)

    @property
    def sorted_keys(self) -> List[str]:
        return list(self._sorted_keys)


def load_pricing_table(path: Union[str, Path]) -> PricingTable:
    """
    Load a LiteLLM-format pricing JSON file from disk.

    Args:
        path: Location of the JSON file.

    Returns:
        PricingTable: The parsed table.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file does not hold a JSON object.
    """
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"Pricing file {path} must contain a JSON object, got {type(data).__name__}")
    table = PricingTable.from_litellm(data)
    logger.info(f"Loaded pricing table from {path} with {len(table)} models")
    return table


def _strip_tier_suffix(name: str) -> str:
    for suffix in TIER_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def _canonical_family(name: str) -> Optional[str]:
    if "opus" in name:
        if "4.5" in name or "4-5" in name:
            return "opus-4-5"
        if "4" in name:
            return "opus-4"
    if "sonnet" in name:
        if "4.5" in name or "4-5" in name:
            return "sonnet-4-5"
        if "4" in name and "3." not in name and "3-" not in name:
            return "sonnet-4"
        if "3.7" in name or "3-7" in name:
            return "sonnet-3-7"
        if "3.5" in name or "3-5" in name:
            return "sonnet-3-5"
    if "haiku" in name and ("4.5" in name or "4-5" in name):
        return "haiku-4-5"
    if name == "o3":
        return "o3"
    if name.startswith("gpt-4o"):
        return "gpt-4o"
    if "gpt-4.1" in name:
        return "gpt-4.1"
    if "gemini-2.5-pro" in name:
        return "gemini-2.5-pro"
    if "gemini-2.5-flash" in name:
        return "gemini-2.5-flash"
    return None


def normalize_model_name(model_id: str) -> str:
    """
    Normalize a raw model identifier for a second round of lookups.

    Lowercases, strips a tier suffix (``-high``, ``:free``) and a trailing
    release date (``-20241022``, ``@20241022``, ``-2024-10-22``), then maps
    well-known Claude / GPT / Gemini families to a canonical short name. Names
    outside those families get ``.``, ``_`` and whitespace replaced by ``-``.

    Args:
        model_id: Identifier as reported by the assistant log.

    Returns:
        str: The normalized name, possibly equal to the lowercased input.
    """
    name = model_id.strip().lower()
    name = _strip_tier_suffix(name)
    name = _DATE_SUFFIX_RE.sub("", name)
    family = _canonical_family(name)
    if family is not None:
        return family
    return _SEPARATOR_RE.sub("-", name)


def is_word_boundary_match(haystack: str, needle: str) -> bool:
    """True when ``needle`` first occurs in ``haystack`` flanked by non-alphanumerics or the string edges."""
    if not needle:
        return False
    pos = haystack.find(needle)
    if pos == -1:
        return False
    end = pos + len(needle)
    before_ok = pos == 0 or not haystack[pos - 1].isalnum()
    after_ok = end == len(haystack) or not haystack[end].isalnum()
    return before_ok and after_ok


class PricingResolver:
    """Resolves model identifiers against a :class:`PricingTable`.

    Results are memoised per instance; the table must not change underneath it.
    """

    def __init__(self, table: PricingTable):
        self.table = table
        self._cache: Dict[str, Optional[PricingMatch]] = {}

    def resolve(self, model_id: str) -> Optional[PricingMatch]:
        """
        Find the pricing entry for a model identifier.

        Args:
            model_id: Identifier as reported by the assistant log.

        Returns:
            Optional[PricingMatch]: The match, or None when nothing resolves.
        """
        if model_id in self._cache:
            return self._cache[model_id]
        match = self._lookup(model_id)
        if match is None:
            logger.debug(f"No pricing found for model {model_id!r}")
        else:
            logger.debug(f"Resolved model {model_id!r} to pricing key {match.matched_key!r}")
        self._cache[model_id] = match
        return match

    def cost_for(
        self,
        model_id: str,
        tokens: TokenBreakdown,
        reported_cost: Optional[float] = None,
    ) -> float:
        """
        Compute the cost of a usage record.

        Falls back to the self-reported cost when the model does not resolve,
        and to 0 when there is no reported cost either.
        """
        match = self.resolve(model_id)
        if match is not None:
            return match.pricing.cost(tokens)
        if reported_cost is not None:
            return reported_cost
        return 0.0

    def _direct(self, query: str, name: str) -> Optional[PricingMatch]:
        for key in (name, *(prefix + name for prefix in VENDOR_PREFIXES)):
            pricing = self.table.get(key)
            if pricing is not None:
                return PricingMatch(query=query, matched_key=key, pricing=pricing)
        return None

    def _lookup(self, model_id: str) -> Optional[PricingMatch]:
        match = self._direct(model_id, model_id)
        if match is not None:
            return match

        normalized = normalize_model_name(model_id)
        if normalized != model_id:
            match = self._direct(model_id, normalized)
            if match is not None:
                return match

        candidates = [c for c in dict.fromkeys((model_id.lower(), normalized)) if c]
        keys = self.table.sorted_keys
        for key in keys:
            lower_key = key.lower()
            if any(is_word_boundary_match(c, lower_key) for c in candidates):
                return PricingMatch(query=model_id, matched_key=key, pricing=self.table.get(key))
        for key in keys:
            lower_key = key.lower()
            if any(is_word_boundary_match(lower_key, c) for c in candidates):
                return PricingMatch(query=model_id, matched_key=key, pricing=self.table.get(key))
        return None
