from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Literal, Optional

GoalCategory = Literal[
    'Savings', 'Vacation', 'Emergency Fund', 'Investment', 'Education', 'Other'
]

class GoalCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    target_amount: float = Field(..., gt=0, allow_inf_nan=False)
    deadline: datetime
    category: GoalCategory = 'Savings'
    color: str = '#3498db'

    @field_validator('title')
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError('Title is required')
        return value

class GoalUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: Optional[str] = None
    target_amount: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    current_amount: Optional[float] = Field(None, allow_inf_nan=False)
    deadline: Optional[datetime] = None
    category: Optional[GoalCategory] = None
    color: Optional[str] = None

    @field_validator('title', 'target_amount', 'current_amount', 'deadline', 'category', 'color', mode='before')
    @classmethod
    def blank_to_none(cls, value):
        # un champ de formulaire vide garde l'ancienne valeur
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator('title')
    @classmethod
    def strip_title(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else value

class GoalContribution(BaseModel):
    amount: float = Field(..., ge=0, allow_inf_nan=False)

class Goal(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    user_id: int = Field(..., serialization_alias='user')
    title: str
    target_amount: float
    current_amount: float
    deadline: datetime
    category: str
    is_completed: bool
    color: str
    created_at: datetime
    updated_at: datetime
