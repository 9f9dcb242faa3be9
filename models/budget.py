from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime

class BudgetBase(BaseModel):
    category: str
    amount: float = Field(..., gt=0, allow_inf_nan=False)

class BudgetCreate(BudgetBase):
    @field_validator('category')
    @classmethod
    def category_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError('Category is required')
        return value

class BudgetUpdate(BaseModel):
    amount: float = Field(..., gt=0, allow_inf_nan=False)

class Budget(BudgetBase):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    month: str
    year: int
    created_at: datetime
    updated_at: datetime
