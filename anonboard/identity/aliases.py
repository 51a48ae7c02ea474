"""Display aliases for anonymous content.

Many pseudonyms share one alias. An alias is for display only and is
never used to identify anyone.
"""

from __future__ import annotations

from anonboard.identity.pseudonym import is_valid_pseudonym

ALIAS_POOL: tuple[str, ...] = (
    "Silent Scholar", "Mystic Learner", "Digital Thinker",
    "Code Philosopher", "Anonymous Student", "Curious Mind",
    "Secret Scholar", "Hidden Genius", "Quiet Observer",
    "Digital Wanderer", "Tech Explorer", "Knowledge Seeker",
    "Anonymous Mentor", "Tech Philosopher", "Digital Nomad",
    "Code Alchemist", "Data Dreamer", "Byte Thinker",
)


def name_for(pseudonym: str) -> str:
    """Return the alias for *pseudonym*."""
    if not is_valid_pseudonym(pseudonym):
        raise ValueError("Not a valid pseudonym")
    return ALIAS_POOL[int(pseudonym[:8], 16) % len(ALIAS_POOL)]
