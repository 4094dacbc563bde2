"""Client IP to country lookup backed by a MaxMind GeoLite2 database."""

from __future__ import annotations

import logging
from typing import Optional

import geoip2.database
import pycountry
from geoip2.errors import AddressNotFoundError

logger = logging.getLogger(__name__)

UNKNOWN_COUNTRY = "UN"
UNKNOWN_COUNTRY_NAME = "Unknown"


def country_name(country_code: Optional[str]) -> str:
    """Common English name for an ISO alpha-2 code, "Unknown" when there is none"""
    if not country_code or country_code.upper() == UNKNOWN_COUNTRY:
        return UNKNOWN_COUNTRY_NAME
    country = pycountry.countries.get(alpha_2=country_code.upper())
    if country is None:
        return UNKNOWN_COUNTRY_NAME
    return getattr(country, "common_name", None) or country.name


class GeoService:
    """Resolve ISO country codes; ``UN`` whenever the country is unknown."""

    def __init__(self, database_path: Optional[str] = None) -> None:
        self._reader: Optional[geoip2.database.Reader] = None
        if database_path:
            self._reader = geoip2.database.Reader(database_path)
            logger.info("GeoIP database loaded from %s", database_path)
        else:
            logger.info("GEOIP_DATABASE_PATH not set; clicks are recorded with country %s", UNKNOWN_COUNTRY)

    def get_country_code(self, ip_address: Optional[str]) -> str:
        if not ip_address or self._reader is None:
            return UNKNOWN_COUNTRY
        try:
            response = self._reader.country(ip_address)
        except (AddressNotFoundError, ValueError):
            return UNKNOWN_COUNTRY
        return response.country.iso_code or UNKNOWN_COUNTRY

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None
