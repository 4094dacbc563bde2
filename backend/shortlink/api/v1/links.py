"""Short link management routes"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session
from typing import List

from shortlink.api.deps import get_current_user_id, get_link_service
from shortlink.core.database import get_db
from shortlink.schemas.link import (
    SHORT_URL_PATTERN,
    CountryClicks,
    LinkResponse,
    ShortenLinkRequest,
    ShortenLinkResponse,
    UpdateLinkRequest,
)
from shortlink.schemas.response import APIResponse
from shortlink.services.geolocation import country_name
from shortlink.services.link_service import LinkService

router = APIRouter()


@router.post("", response_model=ShortenLinkResponse, status_code=status.HTTP_201_CREATED)
def shorten_link(
    payload: ShortenLinkRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    links: LinkService = Depends(get_link_service),
):
    """Create a short link; a code is generated when no alias is given"""
    url = links.shorten(
        db,
        owner_id=user_id,
        original_url=str(payload.original_url),
        short_url=payload.short_url,
        expires_at=payload.expires_at,
    )
    return ShortenLinkResponse(short_url=url.short_url)


@router.get("", response_model=List[LinkResponse])
def list_links(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    links: LinkService = Depends(get_link_service),
):
    return [LinkResponse.model_validate(url) for url in links.list_user_links(db, user_id)]


@router.get("/{short_url}/stats", response_model=List[CountryClicks])
def link_stats_by_country(
    short_url: str = Path(..., pattern=SHORT_URL_PATTERN),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    links: LinkService = Depends(get_link_service),
):
    """Click counts grouped by country, owner only"""
    rows = links.stats_by_country(db, user_id, short_url)
    return [
        CountryClicks(country_code=code, country_name=country_name(code), clicks=count)
        for code, count in rows
    ]


@router.patch("/{short_url}", response_model=APIResponse)
def update_link(
    payload: UpdateLinkRequest,
    short_url: str = Path(..., pattern=SHORT_URL_PATTERN),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    links: LinkService = Depends(get_link_service),
):
    links.update_link(db, user_id, short_url, str(payload.original_url))
    return APIResponse(message="URL updated successfully")


@router.delete("/{short_url}", response_model=APIResponse)
def delete_link(
    short_url: str = Path(..., pattern=SHORT_URL_PATTERN),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    links: LinkService = Depends(get_link_service),
):
    links.delete_link(db, user_id, short_url)
    return APIResponse(message="Short URL deleted successfully")
