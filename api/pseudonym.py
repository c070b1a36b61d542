"""
Pseudonyms for anonymous forum authors.

A pseudonym is derived only from an anonymous id (never from a name, email or
any account identifier). The hash recurrence, modulo arithmetic and table
order must stay fixed so that every renderer of a post shows the same label.
"""

ADJECTIVES = (
    "Brave",
    "Calm",
    "Quiet",
    "Gentle",
    "Kind",
    "Steady",
    "Hopeful",
    "Bright",
    "Caring",
    "Soft",
)

NOUNS = (
    "Harbor",
    "Star",
    "River",
    "Willow",
    "Lantern",
    "Sky",
    "Anchor",
    "Horizon",
    "Oak",
    "Ember",
)

_MASK = 0xFFFFFFFF


def _utf16_units(text: str):
    # Same units a browser's charCodeAt walks over.
    data = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def hash_string(text: str) -> int:
    """32-bit unsigned string hash: h = (h * 31 + unit) mod 2**32."""
    h = 0
    for unit in _utf16_units(text):
        h = (h * 31 + unit) & _MASK
    return h


def generate_pseudonym(anonymous_id: str) -> str:
    """Map an anonymous id to a soft, non-identifying label like 'CalmRiver-417'."""
    h = hash_string(anonymous_id or "anon")
    adjective = ADJECTIVES[h % len(ADJECTIVES)]
    noun = NOUNS[(h >> 8) % len(NOUNS)]
    number = (h % 900) + 100
    return f"{adjective}{noun}-{number}"
