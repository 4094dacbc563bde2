"""Short link schemas"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator

SHORT_URL_PATTERN = r'^[a-zA-Z0-9_-]{5,20}$'


class ShortenLinkRequest(BaseModel):
    """Create a short link, optionally with a custom alias and expiry"""
    original_url: AnyHttpUrl
    short_url: Optional[str] = Field(
        None,
        pattern=SHORT_URL_PATTERN,
        description="Custom alias: 5-20 letters, digits, underscores or hyphens",
    )
    expires_at: Optional[datetime] = None

    @field_validator('expires_at')
    @classmethod
    def expiry_in_future(cls, v):
        if v is None:
            return v
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        if v <= datetime.now(timezone.utc):
            raise ValueError('Expiry time must be in the future')
        return v


class ShortenLinkResponse(BaseModel):
    short_url: str


class UpdateLinkRequest(BaseModel):
    original_url: AnyHttpUrl


class LinkResponse(BaseModel):
    """Link as listed for its owner"""
    model_config = ConfigDict(from_attributes=True)

    short_url: str
    original_url: str
    created_at: Optional[datetime] = None
    expires_at: datetime


class CountryClicks(BaseModel):
    country_code: str
    country_name: str
    clicks: int
