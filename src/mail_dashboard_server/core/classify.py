"""Mail event classification.

Rules are evaluated top to bottom and the first match wins, so the order of
:data:`CLASSIFICATION_RULES` is part of the contract.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from .models import Category

# Union of every classification trigger. Written in the common subset of
# Python ``re`` and GNU ``grep -E`` so the same text feeds both scanners.
PREFILTER_PATTERN = (
    r"(status=sent|status=(deferred|bounced)|NOQUEUE:\s*reject|\sreject(\b|:)|blocked|policy"
    r"|blacklist|RBL|greylist(ed)?|(amavis|rspamd|clamd|clamav)|(spam|virus)\s+(reject|discard|found)"
    r"|postfix/smtpd|postfix/cleanup|qmgr:.*from=|dovecot-lda.*saved mail to"
    r"|quota|mail(box)?\s*full|exceed(ed)?\s*storage"
    r"|SASL\s+(LOGIN|PLAIN)\s+authentication\s+failed|auth(entication)?\s+failed)"
)
PREFILTER_RE = re.compile(PREFILTER_PATTERN, re.IGNORECASE)


class LineRule(Protocol):
    """Rule interface: report whether a raw line triggers the rule."""

    def matches(self, line: str) -> bool:
        ...


@dataclass(frozen=True, slots=True)
class RegexRule:
    """Matches when any of its patterns is found in the line (case-insensitive)."""

    patterns: tuple[re.Pattern[str], ...]

    @classmethod
    def of(cls, *patterns: str) -> RegexRule:
        return cls(patterns=tuple(re.compile(p, re.IGNORECASE) for p in patterns))

    def matches(self, line: str) -> bool:
        return any(p.search(line) for p in self.patterns)


CLASSIFICATION_RULES: tuple[tuple[LineRule, Category], ...] = (
    (
        RegexRule.of(
            r"\bstatus=sent\b",
            r"postfix/(local|virtual|pipe).*status=sent",
            r"dovecot-lda.*saved mail to",
        ),
        Category.SENT,
    ),
    (RegexRule.of(r"\bstatus=(deferred|bounced)\b"), Category.FAILED_DELIVERY),
    (
        RegexRule.of(r"postfix/smtpd.*client=", r"postfix/cleanup", r"qmgr:.*\bfrom="),
        Category.INCOMING,
    ),
    (RegexRule.of(r"greylist(ed)?"), Category.GREYLISTED),
    (RegexRule.of(r"RBL|blacklist"), Category.RBL_REJECT),
    (RegexRule.of(r"NOQUEUE:\s*reject|\sreject(\b|:)|blocked|policy"), Category.REJECTED),
    (
        RegexRule.of(
            r"(amavis|rspamd|clamd|clamav).*(reject|discard|virus|malware|spam)",
            r"\b(spam|virus)\s+(reject|discard|found)\b",
        ),
        Category.SPAM_VIRUS,
    ),
    (RegexRule.of(r"quota|mail(box)?\s*full|exceed(ed)?\s*storage"), Category.QUOTA_FAIL),
    (
        RegexRule.of(
            r"SASL\s+(LOGIN|PLAIN)\s+authentication\s+failed",
            r"auth(entication)?\s+failed",
        ),
        Category.AUTH_FAIL,
    ),
)


def is_relevant(line: str) -> bool:
    """Cheap pre-filter applied before any timestamp work."""
    return PREFILTER_RE.search(line) is not None


def classify(
    line: str,
    rules: Sequence[tuple[LineRule, Category]] = CLASSIFICATION_RULES,
) -> Category | None:
    """Return the first category whose rule matches, or None."""
    for rule, category in rules:
        if rule.matches(line):
            return category
    return None
