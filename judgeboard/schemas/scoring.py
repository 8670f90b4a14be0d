"""Scores, rubrics and per-submission aggregates.

Criterion values are a tagged union (numeric | text | boolean) rather than
free-form JSON, so validation against a rubric and numeric aggregation never
have to guess at a value's type.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import Field, TypeAdapter, ValidationError, field_validator

from judgeboard.core.errors import ScoreValidationError

from .submission import Base


class NumericValue(Base):
    kind: Literal["numeric"] = "numeric"
    value: float


class TextValue(Base):
    kind: Literal["text"] = "text"
    value: str


class BooleanValue(Base):
    kind: Literal["boolean"] = "boolean"
    value: bool


CriterionValue = Annotated[
    Union[NumericValue, TextValue, BooleanValue], Field(discriminator="kind")
]

_criterion_value_adapter = TypeAdapter(CriterionValue)


def criterion_value(raw: Any) -> Union[NumericValue, TextValue, BooleanValue]:
    """Parse a raw JSON value (or an already tagged dict) into a CriterionValue."""
    if isinstance(raw, (NumericValue, TextValue, BooleanValue)):
        return raw
    # bool is a subclass of int
    if isinstance(raw, bool):
        return BooleanValue(value=raw)
    if isinstance(raw, (int, float)):
        return NumericValue(value=float(raw))
    if isinstance(raw, str):
        return TextValue(value=raw)
    if isinstance(raw, Mapping) and "kind" in raw:
        return _criterion_value_adapter.validate_python(dict(raw))
    raise ValueError(f"unsupported criterion value: {raw!r}")


def parse_values(raw: Optional[Mapping[str, Any]]) -> dict:
    """Parse every criterion; null, list or malformed tagged values are rejected together."""
    parsed, errors = {}, []
    for key, value in (raw or {}).items():
        try:
            parsed[key] = criterion_value(value)
        except (ValueError, ValidationError):
            errors.append(f"Unsupported value for criterion: {key}")
    if errors:
        raise ScoreValidationError(errors)
    return parsed


def dump_values(values: Mapping[str, Any]) -> dict:
    """Plain JSON form used by the database column."""
    return {key: value.value for key, value in values.items()}


class ScoringType(str, Enum):
    NUMERIC = "numeric"
    SCALE = "scale"
    BOOLEAN = "boolean"


class ScoringCriterion(Base):
    key: str
    name: str
    description: str = ""
    type: ScoringType = ScoringType.NUMERIC
    max_score: float = 100.0
    weight: float = 1.0
    required: bool = True
    options: Optional[dict] = None  # scale bounds: {"min": .., "max": ..}

    def is_valid_value(self, value) -> bool:
        if self.type == ScoringType.BOOLEAN:
            return isinstance(value, BooleanValue)
        if not isinstance(value, NumericValue):
            return False
        if self.type == ScoringType.SCALE:
            options = self.options or {}
            low = float(options.get("min", 0))
            high = float(options.get("max", self.max_score))
            return low <= value.value <= high
        return 0 <= value.value <= self.max_score


class ScoringRubric(Base):
    id: str
    name: str
    description: str = ""
    criteria: list[ScoringCriterion] = Field(default_factory=list)
    event_id: Optional[str] = None
    group_id: Optional[str] = None
    is_template: bool = False
    created_by: str
    created_at: datetime
    updated_at: datetime

    def criterion(self, key: str) -> Optional[ScoringCriterion]:
        for criterion in self.criteria:
            if criterion.key == key:
                return criterion
        return None

    @property
    def criterion_keys(self) -> list[str]:
        return [c.key for c in self.criteria]

    @property
    def max_possible_score(self) -> float:
        return sum(c.max_score for c in self.criteria)

    @property
    def weighted_max_score(self) -> float:
        return sum(c.max_score * c.weight for c in self.criteria)

    def validate_definition(self) -> list[str]:
        """Return every problem with the rubric itself; empty when valid."""
        errors = []
        if not self.name.strip():
            errors.append("Rubric name must not be empty")
        if len(self.name) > 100:
            errors.append("Rubric name must not exceed 100 characters")
        if len(self.description) > 500:
            errors.append("Rubric description must not exceed 500 characters")
        if not self.created_by:
            errors.append("Rubric creator must be set")
        if not self.criteria:
            errors.append("Scoring rubric must have at least one criterion")

        for i, criterion in enumerate(self.criteria, start=1):
            if not criterion.key:
                errors.append(f"Criterion {i} must have a key")
            if not criterion.name:
                errors.append(f"Criterion {i} must have a name")
            if criterion.max_score <= 0:
                errors.append(f"Criterion {i} max score must be positive")
            if criterion.weight <= 0:
                errors.append(f"Criterion {i} weight must be positive")

        keys = self.criterion_keys
        if len(keys) != len(set(keys)):
            errors.append("Criterion keys must be unique")
        return errors

    def validate_values(self, values: Mapping[str, Any]) -> list[str]:
        """Check a judge's values: required keys present and each value in range."""
        errors = []
        for criterion in self.criteria:
            if criterion.key not in values:
                if criterion.required:
                    errors.append(f"Missing required criterion: {criterion.key}")
                continue
            if not criterion.is_valid_value(values[criterion.key]):
                errors.append(f"Invalid value for criterion: {criterion.key}")
        return errors

    def weighted_total(self, values: Mapping[str, Any]) -> float:
        """Weighted mean of the numeric values present; 0.0 if none contribute."""
        total = 0.0
        total_weight = 0.0
        for criterion in self.criteria:
            value = values.get(criterion.key)
            if isinstance(value, NumericValue):
                total += value.value * criterion.weight
                total_weight += criterion.weight
        return total / total_weight if total_weight > 0 else 0.0


class Score(Base):
    id: str
    submission_id: str
    judge_id: str
    event_id: str
    values: dict[str, CriterionValue] = Field(default_factory=dict)
    comments: Optional[str] = None
    total_score: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("values", mode="before")
    @classmethod
    def _parse_values(cls, raw):
        return parse_values(raw)

    def with_total(self, rubric: ScoringRubric) -> "Score":
        return self.model_copy(update={"total_score": rubric.weighted_total(self.values)})

    def is_complete(self, rubric: ScoringRubric) -> bool:
        return all(c.key in self.values for c in rubric.criteria if c.required)

    def completion_percentage(self, rubric: ScoringRubric) -> float:
        if not rubric.criteria:
            return 100.0
        scored = sum(1 for c in rubric.criteria if c.key in self.values)
        return scored / len(rubric.criteria) * 100


class ScoreRange(Base):
    min: float = 0.0
    max: float = 0.0

    @property
    def spread(self) -> float:
        return self.max - self.min


class AggregatedScore(Base):
    submission_id: str
    total_score: float = 0.0
    average_score: float = 0.0
    judge_count: int = 0
    criteria_averages: dict[str, float] = Field(default_factory=dict)
    score_range: ScoreRange = Field(default_factory=ScoreRange)
    individual_scores: list[Score] = Field(default_factory=list)
