"""
Example Natours application.

Tours and reviews stored with SQLAlchemy and served through the generic
resource routers:

    GET    /api/v1/tours?difficulty=easy&price[lt]=1500&sort=-price&fields=name,price
    GET    /api/v1/tours/top-5-cheap
    GET    /api/v1/tours/tour-stats
    GET    /api/v1/tours/{id}                 (reviews populated)
    GET    /api/v1/tours/{tour_id}/reviews
    POST   /api/v1/tours/{tour_id}/reviews    (tour taken from the path)

Run from the examples directory with:
    python main.py
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import Float, ForeignKey, Integer, String, Text, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column, relationship

from natours.api import create_resource_router
from natours.config import get_settings
from natours.db import Base, DocumentMixin, SQLAlchemyModel, get_db
from natours.factory import configure_app
from natours.schemas import ResourceResponse


# Entities
class Tour(Base, DocumentMixin):
    __tablename__ = "tours"

    name: Mapped[str] = mapped_column(String(40), unique=True)
    duration: Mapped[int] = mapped_column(Integer)
    max_group_size: Mapped[int] = mapped_column("maxGroupSize", Integer)
    difficulty: Mapped[str] = mapped_column(String(20))
    ratings_average: Mapped[float] = mapped_column("ratingsAverage", Float, default=4.5)
    ratings_quantity: Mapped[int] = mapped_column("ratingsQuantity", Integer, default=0)
    price: Mapped[float] = mapped_column(Float)
    price_discount: Mapped[Optional[float]] = mapped_column("priceDiscount", Float)
    summary: Mapped[str] = mapped_column(Text)
    description: Mapped[Optional[str]] = mapped_column(Text)

    reviews: Mapped[List["Review"]] = relationship(
        back_populates="tour", cascade="all, delete-orphan"
    )


class Review(Base, DocumentMixin):
    __tablename__ = "reviews"

    review: Mapped[str] = mapped_column(Text)
    rating: Mapped[float] = mapped_column(Float)
    tour_id: Mapped[int] = mapped_column("tour", ForeignKey("tours.id"))

    tour: Mapped[Tour] = relationship(back_populates="reviews")


# Validation schemas
class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    DIFFICULT = "difficult"


class TourSchema(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., min_length=10, max_length=40)
    duration: int = Field(..., gt=0)
    maxGroupSize: int = Field(..., gt=0)
    difficulty: Difficulty
    ratingsAverage: float = Field(default=4.5, ge=1, le=5)
    ratingsQuantity: int = Field(default=0, ge=0)
    price: float = Field(..., gt=0)
    priceDiscount: Optional[float] = None
    summary: str
    description: Optional[str] = None

    @model_validator(mode="after")
    def check_discount(self) -> "TourSchema":
        if self.priceDiscount is not None and self.priceDiscount >= self.price:
            raise ValueError(
                f"Discount price ({self.priceDiscount}) should be below regular price"
            )
        return self


class ReviewSchema(BaseModel):
    review: str = Field(..., min_length=1)
    rating: float = Field(..., ge=1, le=5)
    tour: int


settings = get_settings()

tours = SQLAlchemyModel(Tour, schema=TourSchema)
reviews = SQLAlchemyModel(Review, schema=ReviewSchema)

app = FastAPI()
configure_app(app, settings, create_tables=Base.metadata)


def tour_scope(tour_id: int) -> Dict[str, Any]:
    return {"tour": tour_id}


# Custom tour endpoints, registered before /{id}
stats_router = APIRouter(tags=["Tour"])


@stats_router.get("/tour-stats")
async def tour_stats(session: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    stmt = (
        select(
            Tour.difficulty,
            func.count(Tour.id).label("numTours"),
            func.sum(Tour.ratings_quantity).label("numRatings"),
            func.avg(Tour.ratings_average).label("avgRating"),
            func.avg(Tour.price).label("avgPrice"),
            func.min(Tour.price).label("minPrice"),
            func.max(Tour.price).label("maxPrice"),
        )
        .where(Tour.ratings_average >= 4.5)
        .group_by(Tour.difficulty)
        .order_by(func.avg(Tour.price))
    )
    rows = (await session.execute(stmt)).mappings().all()
    return ResourceResponse(data={"stats": [dict(row) for row in rows]}).to_content()


app.include_router(stats_router, prefix=f"{settings.API_PREFIX}/tours")
app.include_router(
    create_resource_router(
        tours,
        settings=settings,
        populate={"path": "reviews", "select": "-__v"},
        aliases={
            "/top-5-cheap": {
                "limit": "5",
                "sort": "-ratingsAverage,price",
                "fields": "name,price,ratingsAverage,summary,difficulty",
            }
        },
    ),
    prefix=f"{settings.API_PREFIX}/tours",
)
app.include_router(
    create_resource_router(
        reviews,
        settings=settings,
        base_filter=tour_scope,
        body_defaults=tour_scope,
    ),
    prefix=f"{settings.API_PREFIX}/tours/{{tour_id}}/reviews",
)
app.include_router(
    create_resource_router(reviews, settings=settings),
    prefix=f"{settings.API_PREFIX}/reviews",
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
