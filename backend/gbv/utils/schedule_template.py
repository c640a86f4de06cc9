"""
Boundary validation for schedule template JSON.

Stored template_data is loosely shaped; it is converted once into strict
TemplateRound objects so generation never sees NaN/None seed numbers.
"""
from typing import Any, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator


class TemplateFormatError(ValueError):
    """Raised when template_data cannot be converted into rounds."""

    def __init__(self, messages: List[str]):
        super().__init__("; ".join(messages))
        self.messages = messages


class TemplateRound(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    round: int = Field(ge=1)
    play: List[Tuple[int, int]]
    ref: Optional[List[int]] = None
    sit: Optional[List[int]] = None

    @field_validator("play")
    @classmethod
    def validate_play(cls, v):
        for seed_a, seed_b in v:
            if seed_a < 1 or seed_b < 1:
                raise ValueError("seed numbers must be >= 1")
            if seed_a == seed_b:
                raise ValueError(f"seed {seed_a} cannot play itself")
        return v

    @field_validator("ref")
    @classmethod
    def validate_ref(cls, v):
        if v is not None and any(seed < 1 for seed in v):
            raise ValueError("referee seed numbers must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_ref_alignment(self):
        if self.ref is not None and len(self.ref) > len(self.play):
            raise ValueError("ref list is longer than play list")
        return self

    def ref_seed_for(self, play_index: int) -> Optional[int]:
        if not self.ref or play_index >= len(self.ref):
            return None
        return self.ref[play_index]


def parse_template(template_data: Any, pool_size: Optional[int] = None) -> List[TemplateRound]:
    """
    Convert raw template_data into TemplateRound objects, ordered by round number.

    If pool_size is given, every seed referenced (play or ref) must be within 1..pool_size.
    Raises TemplateFormatError with one message per problem.
    """
    if not isinstance(template_data, list):
        raise TemplateFormatError(["template_data must be a list of rounds"])

    rounds: List[TemplateRound] = []
    messages: List[str] = []
    for i, raw in enumerate(template_data):
        try:
            rounds.append(TemplateRound.model_validate(raw))
        except ValidationError as e:
            for err in e.errors():
                loc = ".".join(str(p) for p in err["loc"])
                messages.append(f"round entry {i + 1}: {loc}: {err['msg']}" if loc else f"round entry {i + 1}: {err['msg']}")

    if pool_size is not None:
        for r in rounds:
            for seed in _seeds_referenced(r):
                if seed > pool_size:
                    messages.append(f"round {r.round}: seed {seed} exceeds pool size {pool_size}")

    if messages:
        raise TemplateFormatError(messages)
    return sorted(rounds, key=lambda r: r.round)


def _seeds_referenced(r: TemplateRound) -> Sequence[int]:
    seeds = [s for pair in r.play for s in pair]
    if r.ref:
        seeds.extend(r.ref)
    return seeds


def dump_template(rounds: Sequence[TemplateRound]) -> List[dict]:
    """Serialize rounds back into the stored JSON shape."""
    return [r.model_dump(exclude_none=True, mode="json") for r in rounds]
