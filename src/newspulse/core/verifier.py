"""Batched trust verification of candidate items.

All candidates of a run go to the evaluator in one prompt. The response is
free text that should contain a JSON array of verdicts; anything we cannot
resolve defaults to PASS. When the evaluator itself is unavailable the
service falls back to a fixed allow-list of reputable outlets.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from newspulse.core.config import RetryPolicy
from newspulse.core.fanout import with_retry
from newspulse.core.models import CandidateItem, VerifiedItem
from newspulse.core.ports import EvaluatorPort

LOGGER = logging.getLogger(__name__)

PASS = "PASS"
UNCERTAIN = "UNCERTAIN"
FAIL = "FAIL"

FALLBACK_NOTE = "verification unavailable: non tier-1 source"
UNCERTAIN_PREFIX = "unverified: "

SYSTEM_PROMPT = """You are a news authenticity evaluator. For each news item, evaluate:
1. Source Credibility (is this from a known, reputable outlet?)
2. Claim Plausibility (does the claim seem factually plausible?)
3. Red Flags (clickbait, unverified claims, sensationalism?)

Rate each item: PASS (include), UNCERTAIN (include with caveat), or FAIL (exclude).

Return ONLY a valid JSON array, no other text:
[{"index": 1, "verdict": "PASS", "reason": "brief reason"}, ...]"""


@dataclass(frozen=True)
class Verdict:
    verdict: str
    reason: str = ""


_DEFAULT_VERDICT = Verdict(PASS)


def build_prompt(items: Sequence[CandidateItem]) -> str:
    """Enumerate the batch with 1-based indices."""

    lines = [
        f'{index}. [{item.category}] "{item.title}" (Source: {item.source}, URL: {item.url})'
        for index, item in enumerate(items, start=1)
    ]
    return f"Evaluate these {len(items)} news items:\n\n" + "\n".join(lines)


def _extract_array(text: str) -> Optional[str]:
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def parse_verdicts(text: str, expected_count: int) -> list[Verdict]:
    """Resolve one verdict per item from evaluator output.

    The first "[" through the last "]" is parsed as JSON. Unparsable output,
    a non-array payload, missing indices and unknown verdicts all resolve to
    PASS.
    """

    defaults = [_DEFAULT_VERDICT] * expected_count
    payload = _extract_array(text)
    if payload is None:
        LOGGER.warning("No JSON array in evaluator response; defaulting %s items to PASS", expected_count)
        return defaults

    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as exc:
        LOGGER.warning("Failed to parse evaluator response: %s (preview: %s)", exc, text[:300])
        return defaults
    if not isinstance(parsed, list):
        LOGGER.warning("Evaluator response is not an array (preview: %s)", text[:300])
        return defaults

    by_index: dict[int, Verdict] = {}
    for entry in parsed:
        if not isinstance(entry, dict):
            continue
        try:
            index = int(entry.get("index"))
        except (TypeError, ValueError, OverflowError):
            continue
        verdict = str(entry.get("verdict") or PASS).strip().upper()
        if verdict not in (PASS, UNCERTAIN, FAIL):
            verdict = PASS
        by_index[index] = Verdict(verdict=verdict, reason=str(entry.get("reason") or ""))

    return [by_index.get(position, _DEFAULT_VERDICT) for position in range(1, expected_count + 1)]


def apply_verdict(item: CandidateItem, verdict: Verdict) -> VerifiedItem:
    if verdict.verdict == FAIL:
        return VerifiedItem(item=item, is_trusted=False, verification_note=verdict.reason)
    if verdict.verdict == UNCERTAIN:
        return VerifiedItem(
            item=item,
            is_trusted=True,
            verification_note=f"{UNCERTAIN_PREFIX}{verdict.reason}",
        )
    return VerifiedItem(item=item, is_trusted=True)


def fallback_verification(items: Iterable[CandidateItem], tier1_sources: Iterable[str]) -> list[VerifiedItem]:
    """Trust only items whose source names a tier-1 outlet."""

    allow_list = [source.strip().lower() for source in tier1_sources if source.strip()]
    verified: list[VerifiedItem] = []
    for item in items:
        source = item.source.lower()
        if any(name in source for name in allow_list):
            verified.append(VerifiedItem(item=item, is_trusted=True))
        else:
            verified.append(VerifiedItem(item=item, is_trusted=False, verification_note=FALLBACK_NOTE))
    return verified


class VerificationService:
    """Resolve a trust verdict for every candidate in one evaluator call."""

    def __init__(
        self,
        evaluator: EvaluatorPort,
        tier1_sources: Iterable[str],
        retry: RetryPolicy,
    ) -> None:
        self._evaluator = evaluator
        self._tier1_sources = tuple(tier1_sources)
        self._retry = retry

    async def verify(self, candidates: Sequence[CandidateItem]) -> list[VerifiedItem]:
        items = list(candidates)
        if not items:
            return []

        prompt = build_prompt(items)
        try:
            response = await with_retry(
                lambda: self._evaluator.complete(SYSTEM_PROMPT, prompt),
                self._retry,
                f"{self._evaluator.name} verification",
            )
        except Exception as exc:
            LOGGER.error(
                "Verification failed completely, using tier-1 source fallback for %s items: %s",
                len(items),
                exc,
            )
            return fallback_verification(items, self._tier1_sources)

        verdicts = parse_verdicts(response, len(items))
        return [apply_verdict(item, verdict) for item, verdict in zip(items, verdicts)]
