"""
Option lists behind the sales-ops form pickers
"""
from typing import Optional
from pydantic import BaseModel


class CategoryOption(BaseModel):
    key: str
    name: str
    sort_order: Optional[int] = None


class CollectionOption(BaseModel):
    key: str
    label: str


class ColorOption(BaseModel):
    name: str


class DealerOption(BaseModel):
    id: int
    name: str
    rep_id: Optional[int] = None


class RepOption(BaseModel):
    id: int
    name: str
