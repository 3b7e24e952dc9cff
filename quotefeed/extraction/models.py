"""Models for extraction collaborator output."""

from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class ExtractedEntity(BaseModel):
    """A named entity mentioned in a quote."""

    name: str = Field(..., description="Entity surface form")
    type: Optional[str] = Field(None, description="Entity type (person, organization, place, ...)")


class ExtractedQuote(BaseModel):
    """One quote as returned by the extraction collaborator."""

    text: str = Field(..., description="Verbatim quote text")
    speaker: str = Field(..., description="Full name of the speaker")
    speaker_title: Optional[str] = Field(None, description="Role or affiliation")
    quote_type: str = Field("direct", description="direct or indirect")
    context: Optional[str] = Field(None, description="One sentence of context")
    quote_date: Optional[str] = Field(None, description="ISO date the quote was made, or 'unknown'")
    significance: int = Field(5, ge=1, le=10)
    topics: List[str] = Field(default_factory=list, description="Topic names")
    entities: List[ExtractedEntity] = Field(default_factory=list, description="Named entities")

    @model_validator(mode="before")
    @classmethod
    def accept_aliases(cls, data: Any) -> Any:
        """Accept quote_text/keywords as produced by some prompts."""
        if isinstance(data, dict):
            data = dict(data)
            if "text" not in data and "quote_text" in data:
                data["text"] = data.pop("quote_text")
            if not data.get("entities") and data.get("keywords"):
                data["entities"] = data.pop("keywords")
        return data

    @field_validator("entities", mode="before")
    @classmethod
    def coerce_entities(cls, value: Any) -> Any:
        """Allow bare strings in the entity list."""
        if isinstance(value, list):
            return [{"name": v} if isinstance(v, str) else v for v in value]
        return value

    @field_validator("significance", mode="before")
    @classmethod
    def clamp_significance(cls, value: Any) -> Any:
        """Clamp out-of-range scores instead of rejecting the quote."""
        try:
            return max(1, min(10, int(value)))
        except (TypeError, ValueError):
            return 5

    @property
    def keywords(self) -> List[str]:
        """Entity names, the item's own keyword strings."""
        return [entity.name for entity in self.entities]
