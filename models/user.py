from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Literal, Optional

Currency = Literal['USD', 'EUR', 'GBP', 'INR', 'JPY', 'CAD', 'AUD']

def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if '@' not in value or value.startswith('@') or value.endswith('@'):
        raise ValueError('Please add a valid email')
    return value

class UserCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(..., min_length=1)
    email: str
    password: str = Field(..., min_length=6)
    monthly_income: float = Field(0, ge=0, allow_inf_nan=False)
    currency: Currency = 'USD'

    @field_validator('email')
    @classmethod
    def email_valid(cls, value: str) -> str:
        return _normalize_email(value)

class UserLogin(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def email_lower(cls, value: str) -> str:
        return value.strip().lower()

class UserUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    monthly_income: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    currency: Optional[Currency] = None

    @field_validator('email')
    @classmethod
    def email_valid(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_email(value) if value is not None else value

class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    name: str
    email: str
    monthly_income: float
    currency: str
    created_at: datetime
    updated_at: datetime
