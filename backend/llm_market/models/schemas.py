from __future__ import annotations

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    searchTerm: str = ""


class InteractionMessageRequest(BaseModel):
    content: str = Field(max_length=2000)


class AddCartItemRequest(BaseModel):
    productId: int = Field(ge=1)
