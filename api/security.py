"""
Security utilities: input sanitization and PII screening for forum content.
"""
import re
from dataclasses import dataclass

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


# ── Input sanitization ──

def strip_control_chars(text: str) -> str:
    """Strip control characters and surrounding whitespace, without truncating."""
    if not text:
        return ""
    return _CONTROL_CHARS.sub("", text).strip()


def clamp_int(value, low: int, high: int, default: int = None) -> int:
    """Safely parse and clamp an integer."""
    try:
        v = int(value)
        return max(low, min(high, v))
    except (TypeError, ValueError):
        return default if default is not None else low


def validate_uuid(uid: str) -> str | None:
    """Validate UUID format."""
    if not uid or not isinstance(uid, str):
        return None
    if re.match(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", uid.strip().lower()):
        return uid.strip().lower()
    return None


# ── PII screening ──

@dataclass(frozen=True)
class PiiRule:
    """A named pattern that must not appear in user-submitted text."""

    name: str
    pattern: re.Pattern
    message: str

    def matches(self, text: str) -> bool:
        return bool(text) and self.pattern.search(text) is not None


EMAIL_RULE = PiiRule(
    name="email",
    pattern=re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    message="Content cannot contain email addresses",
)

# North-American shapes: 555-123-4567, 555.123.4567, 5551234567. Unanchored, so
# +15551234567 and digits glued to letters are caught too.
PHONE_RULE = PiiRule(
    name="phone",
    pattern=re.compile(r"\d{3}[-.]?\d{3}[-.]?\d{4}"),
    message="Content cannot contain phone numbers",
)


class ContentScreen:
    """
    Ordered set of PII rules applied to titles and post bodies.

    Rules are heuristics; swap in a different list to change what is rejected.
    """

    def __init__(self, rules):
        self.rules = tuple(rules)

    @classmethod
    def default(cls) -> "ContentScreen":
        return cls([EMAIL_RULE, PHONE_RULE])

    def first_violation(self, *texts: str) -> PiiRule | None:
        """Return the first rule matched by any of the texts, or None."""
        for rule in self.rules:
            if any(rule.matches(t) for t in texts):
                return rule
        return None
