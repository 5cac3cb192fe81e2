"""Pydantic schemas for the catalog directory."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ItemCreate(BaseModel):
    """Schema for adding an item to the catalog."""

    id: str = Field(..., min_length=1, max_length=64)
    title: str = Field(..., min_length=1, max_length=500)
    author: Optional[str] = Field(None, max_length=500)
    catalog_code: Optional[str] = Field(None, max_length=32)
    total_copies: int = Field(1, ge=0)

    @field_validator("id", "title")
    @classmethod
    def not_blank(cls, v):
        """Reject whitespace-only values."""
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class BorrowerCreate(BaseModel):
    """Schema for registering a borrower."""

    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=200)
    borrower_type: str = Field("standard", min_length=1, max_length=50)

    @field_validator("id", "name")
    @classmethod
    def not_blank(cls, v):
        """Reject whitespace-only values."""
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("borrower_type")
    @classmethod
    def normalise_type(cls, v):
        return v.strip().lower()


class ItemResponse(BaseModel):
    """Schema for item responses."""

    id: str
    title: str
    author: Optional[str]
    catalog_code: Optional[str]
    total_copies: int
    available_copies: int

    model_config = {"from_attributes": True}


class BorrowerResponse(BaseModel):
    """Schema for borrower responses."""

    id: str
    name: str
    email: Optional[str]
    borrower_type: str
    loan_limit: int
    loan_period_days: int
    active_loan_ids: list[str]

    model_config = {"from_attributes": True}


class CatalogFile(BaseModel):
    """Catalog seed file: items and borrowers loaded at start-up."""

    items: list[ItemCreate] = Field(default_factory=list)
    borrowers: list[BorrowerCreate] = Field(default_factory=list)
