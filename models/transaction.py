from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Literal, Optional

TransactionCategory = Literal[
    'Food', 'Transport', 'Entertainment', 'Utilities',
    'Healthcare', 'Shopping', 'Income', 'Other'
]

class TransactionBase(BaseModel):
    text: str
    amount: float = Field(..., allow_inf_nan=False)
    category: TransactionCategory = 'Other'

class TransactionCreate(TransactionBase):
    date: Optional[datetime] = None

    @field_validator('text')
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError('Please add a text description')
        return value

class Transaction(TransactionBase):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    date: datetime
    created_at: datetime
    updated_at: datetime

class ReportRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    start_date: str = Field(..., description="Date ISO, ex: 2024-01-01")
    end_date: str = Field(..., description="Date ISO, ex: 2024-01-31")
    format: Literal['json', 'csv'] = 'json'
