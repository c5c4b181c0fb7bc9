from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Límites de las columnas Numeric(10, 2) e INTEGER
MAX_PRICE = 99_999_999.99
MAX_QUANTITY = 2**31 - 1


class SweetCreate(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    category: str = Field(min_length=3, max_length=80)
    price: float = Field(gt=0, le=MAX_PRICE, allow_inf_nan=False)
    quantity: int = Field(ge=0, le=MAX_QUANTITY, strict=True)


class SweetUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=120)
    category: Optional[str] = Field(default=None, min_length=3, max_length=80)
    price: Optional[float] = Field(default=None, gt=0, le=MAX_PRICE, allow_inf_nan=False)
    quantity: Optional[int] = Field(default=None, ge=0, le=MAX_QUANTITY, strict=True)


class SweetOut(SweetCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int


class QuantityChange(BaseModel):
    """Body of the purchase and restock actions."""

    quantity: int = Field(gt=0, le=MAX_QUANTITY, strict=True)


class SortField(str, Enum):
    name = "name"
    price = "price"


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class SweetFilter(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None


class SweetSort(BaseModel):
    sort_by: Optional[SortField] = None
    order: SortOrder = SortOrder.asc


class ImportResult(BaseModel):
    created: int
    rejected: int
    status: str = "ok"
