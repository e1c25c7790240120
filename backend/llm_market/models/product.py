from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from llm_market.core.config import PLACEHOLDER_IMAGE_URL


@dataclass(frozen=True)
class Product:
    """A single search hit.

    ``id`` is only unique inside the result set that produced it: every search
    numbers its products 1..N again, so ids must never be compared across
    searches or used as storage keys.
    """

    id: int
    name: str
    price: float
    image_url: str = PLACEHOLDER_IMAGE_URL
    asin: str | None = None
    link: str | None = None
    rating: float | None = None
    reviews_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "imageUrl": self.image_url,
        }
        if self.asin is not None:
            payload["asin"] = self.asin
        if self.link is not None:
            payload["link"] = self.link
        if self.rating is not None:
            payload["rating"] = self.rating
        if self.reviews_count is not None:
            payload["reviewsCount"] = self.reviews_count
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Product":
        rating = payload.get("rating")
        reviews = payload.get("reviewsCount", payload.get("reviews_count"))
        return cls(
            id=int(payload["id"]),
            name=str(payload.get("name") or "Unknown Product"),
            price=max(0.0, float(payload.get("price") or 0)),
            image_url=str(payload.get("imageUrl") or payload.get("image_url") or PLACEHOLDER_IMAGE_URL),
            asin=payload.get("asin"),
            link=payload.get("link"),
            rating=float(rating) if rating is not None else None,
            reviews_count=int(reviews) if reviews is not None else None,
        )


PLACEHOLDER_PRODUCT = Product(id=1, name="Sample Product 1", price=19.99)


@dataclass(frozen=True)
class ProductAssessment:
    pros: tuple[str, ...] = ()
    cons: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"pros": list(self.pros), "cons": list(self.cons)}


@dataclass(frozen=True)
class Comparison:
    """Pros and cons of the two visible products, in window order."""

    first: ProductAssessment
    second: ProductAssessment
    summary: str
    product_ids: tuple[int, int] = field(default=(0, 0))

    def to_dict(self) -> dict[str, Any]:
        return {
            "productIds": list(self.product_ids),
            "product1": self.first.to_dict(),
            "product2": self.second.to_dict(),
            "summary": self.summary,
        }
