"""
Identity statements: saving with an append-only history, and validation.

Validation runs cheap local checks first (length, placeholder text, known
non-identity phrasings) and only then asks Claude. Anything that goes wrong
with the model call rejects the statement rather than accepting it unchecked.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from slimcircle.db import DocumentStore
from models import claude, prompts
from shared.constants import MIN_STATEMENT_LENGTH
from shared.firebase_constants import USERS_COLLECTION
from shared.types import IdentityHistoryEntry
from shared.utils import iso_now

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTION = "I am someone who prioritizes my health"


@dataclass
class SavedIdentity:
    identity: str
    set_at: str


@dataclass
class ValidationResult:
    is_valid: bool
    reasoning: str
    suggestion: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RejectPattern:
    pattern: re.Pattern
    reason: str
    suggestion: str


PLACEHOLDER_PATTERNS = [
    re.compile(p)
    for p in (
        r"^test\s+test$",
        r"^test+$",
        r"test.*test",
        r"^asdf",
        r"^qwerty",
        r"^abc+$",
        r"^123+$",
        r"^lorem\s+ipsum",
        r"^(hello|hi)\s+(world|there)$",
    )
]

COMMITMENT_REJECT_PATTERNS = [
    RejectPattern(
        re.compile(r"^\d+\s*(kg|lbs|pounds|kilos)$", re.IGNORECASE),
        "This is a number, not a commitment statement",
        "I am committed to a healthier lifestyle",
    ),
    RejectPattern(
        re.compile(r"^lose\s+\d+", re.IGNORECASE),
        "This is a goal, not a commitment - describe who you want to become",
        "I am someone who prioritizes my health every day",
    ),
    RejectPattern(
        re.compile(r"\b(trying|want|going|aiming|planning|hoping)\s+to\b", re.IGNORECASE),
        'Uses goal language ("trying to", "want to") - your commitment should be present tense "I am"',
        "I am a person who makes healthy choices",
    ),
    RejectPattern(
        re.compile(r"\b(reach|hit|achieve|get\s+to)\s+\d+\s*(kg|lbs|pounds)", re.IGNORECASE),
        "Contains a specific weight target - this is a goal, not a commitment",
        "I am dedicated to my weight-loss journey",
    ),
    RejectPattern(
        re.compile(r"^(eat|exercise|workout|run|gym)\s", re.IGNORECASE),
        "This describes an action, not who you are",
        "I am someone who values fitness and nutrition",
    ),
]


def save_identity_statement(
    store: DocumentStore, user_id: str, statement: str
) -> SavedIdentity:
    """
    Sets the user's current identity statement.

    A previous statement, if any, is appended to `identityHistory` together
    with the time it was set. The history is never rewritten or truncated.
    """
    trimmed = statement.strip()
    now = iso_now()
    existing = store.get(USERS_COLLECTION, user_id) or {}

    history = list(existing.get("identityHistory") or [])
    if existing.get("identity"):
        entry = IdentityHistoryEntry(
            statement=existing["identity"],
            set_at=existing.get("identitySetAt") or now,
        )
        history.append({"statement": entry.statement, "setAt": entry.set_at})

    store.set(
        USERS_COLLECTION,
        user_id,
        {
            "identity": trimmed,
            "identitySetAt": now,
            "identityHistory": history,
            "updatedAt": now,
        },
        merge=True,
    )
    return SavedIdentity(identity=trimmed, set_at=now)


def normalize_statement(statement: str) -> str:
    """Prefixes "I am " unless the statement already starts that way."""
    trimmed = statement.strip()
    lower = trimmed.lower()
    if lower.startswith("i am ") or lower.startswith("i'm "):
        return trimmed
    return f"I am {trimmed}"


def _prevalidate(statement: str) -> Optional[ValidationResult]:
    trimmed = statement.strip()
    lower = trimmed.lower()
    if len(trimmed) < MIN_STATEMENT_LENGTH:
        return ValidationResult(
            is_valid=False,
            reasoning="Too short - please describe your commitment",
            suggestion="I am committed to a healthier lifestyle",
        )
    if any(pattern.search(lower) for pattern in PLACEHOLDER_PATTERNS):
        return ValidationResult(
            is_valid=False,
            reasoning="Please enter a real commitment statement",
            suggestion=DEFAULT_SUGGESTION,
        )
    for reject in COMMITMENT_REJECT_PATTERNS:
        if reject.pattern.search(lower):
            logger.info("Statement rejected before model call: %s", reject.reason)
            return ValidationResult(
                is_valid=False, reasoning=reject.reason, suggestion=reject.suggestion
            )
    return None


def validate_commitment_statement(
    statement: str,
    predict: Optional[Callable[[str], str]] = None,
) -> ValidationResult:
    """
    Validates an identity/commitment statement.

    Args:
        statement: The raw statement as typed by the user.
        predict: Model call taking a prompt and returning the reply text;
            defaults to `claude.call_predict`.

    Returns:
        ValidationResult with `suggestion` set whenever the statement is rejected.
    """
    rejected = _prevalidate(statement)
    if rejected:
        return rejected

    predict = predict or claude.call_predict
    prompt = prompts.COMMITMENT_VALIDATION_PROMPT.format(
        statement=normalize_statement(statement)
    )
    try:
        result = claude.extract_json_object(predict(prompt))
    except claude.ClaudeInvalidResponseException:
        logger.error("Could not parse model response for statement validation")
        return ValidationResult(
            is_valid=False,
            reasoning="Could not validate your commitment. Please try rephrasing it.",
            suggestion="I am committed to my health journey",
        )
    except Exception:
        logger.exception("Statement validation call failed")
        return ValidationResult(
            is_valid=False,
            reasoning="Could not validate your commitment. Please try again.",
            suggestion=DEFAULT_SUGGESTION,
        )

    is_valid = result.get("is_valid") is True
    issues = [str(issue) for issue in result.get("issues") or []]
    return ValidationResult(
        is_valid=is_valid,
        reasoning=". ".join(issues) if issues else "Looks good!",
        suggestion=None if is_valid else result.get("suggested_rewrite") or DEFAULT_SUGGESTION,
    )
