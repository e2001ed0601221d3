"""Data models for per-user memory, dossiers and image fingerprints."""

from pydantic import BaseModel, Field, field_validator

MIN_SCORE = -100
MAX_SCORE = 100


def normalize_fact(fact: str) -> str:
    """Canonical form used for fact comparison: lowercase, no leading "- "."""
    text = fact.strip().lower()
    if text.startswith("- "):
        text = text[2:]
    return text.strip()


def clamp_score(score: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, int(score)))


class UserRecord(BaseModel):
    """Long-term memory for one Slack user.

    ``facts`` is ordered oldest first; each entry is stored as written
    (usually with a leading "- ").
    """

    user_id: str
    nickname: str = ""
    facts: list[str] = Field(default_factory=list)
    relationship_score: int = 0

    @field_validator("relationship_score")
    @classmethod
    def _clamp(cls, value: int) -> int:
        return clamp_score(value)

    def has_fact(self, fact: str) -> bool:
        target = normalize_fact(fact)
        return any(normalize_fact(existing) == target for existing in self.facts)


class Dossier(BaseModel):
    """Curated reference data about a user, injected into the persona prompt."""

    user_id: str
    nickname: str
    relationship: str = ""


class ImageFingerprint(BaseModel):
    """A remembered character image: 64-bit perceptual hash (hex) plus name."""

    perceptual_hash: str
    character_name: str
