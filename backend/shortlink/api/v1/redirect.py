"""Public redirect route"""

from fastapi import APIRouter, Depends, Path, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from shortlink.api.deps import client_ip, get_geo_service, get_link_service
from shortlink.core.database import get_db
from shortlink.schemas.link import SHORT_URL_PATTERN
from shortlink.services.geolocation import GeoService
from shortlink.services.link_service import LinkService

router = APIRouter()


@router.get("/{short_url}", include_in_schema=False)
def redirect(
    request: Request,
    short_url: str = Path(..., pattern=SHORT_URL_PATTERN),
    db: Session = Depends(get_db),
    links: LinkService = Depends(get_link_service),
    geo: GeoService = Depends(get_geo_service),
):
    """Send the visitor to the original URL and record the click"""
    url = links.resolve(db, short_url)
    target = url.original_url
    links.record_click(db, short_url, geo.get_country_code(client_ip(request)))
    return RedirectResponse(target, status_code=status.HTTP_302_FOUND)
