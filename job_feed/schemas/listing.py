from pydantic import BaseModel, Field
from typing import Optional

# Placeholder for fields a source did not provide
UNSPECIFIED = "No especificado"

HOURLY = "Por hora"
FIXED_PRICE = "Precio fijo"


class NormalizedListing(BaseModel):
    id: str
    title: str
    link: str
    country: str = UNSPECIFIED
    skills: list[str] = Field(default_factory=list)
    price: str = UNSPECIFIED
    budget: str = UNSPECIFIED
    type: str = UNSPECIFIED
    source: str
    timestamp: int
    published_date: str = Field("", alias="publishedDate")
    description: str = ""
    scraped_at: str = Field(alias="scrapedAt")
    # Only set on records that stand for a failed extraction
    error: Optional[str] = None

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def is_error(self) -> bool:
        return self.error is not None


class ListingFeedResponse(BaseModel):
    success: bool = True
    jobs: list[NormalizedListing]
    cached: bool = False
    forced: bool = False
    count: int
    total_count: int = Field(alias="totalCount")
    hours: Optional[int] = None
    sources: list[str]
    breakdown: dict[str, int] = Field(default_factory=dict)
    timestamp: str

    model_config = {"populate_by_name": True}


class NotificationResponse(BaseModel):
    success: bool
    configured: bool
