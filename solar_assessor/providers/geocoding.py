"""Geocoding providers: Melissa Global Address and OpenStreetMap Nominatim."""

import logging
from typing import Any, Dict

from .base import HttpProvider, NoResult
from ..models.location import Location
from ..normalization.address import parse_address_components

logger = logging.getLogger(__name__)

MELISSA_URL = "https://address.melissadata.net/v3/WEB/GlobalAddress/doGlobalAddress"
NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
USER_AGENT = "solar-assessor/1.0"


class MelissaGeocoder(HttpProvider[Location]):
    """
    Primary geocoder.

    The address is split into components before the query. A record counts
    as verified when it carries an address line and no ``AE01`` result code.
    Records without coordinates are reported as not found so the next
    geocoder can supply them.
    """

    name = "melissa"

    async def _fetch(self, address: str) -> Location:
        key = self.require_key()
        components = parse_address_components(address)

        params: Dict[str, Any] = {"id": key, "format": "json", "ctry": "USA"}
        if components.street:
            params["a1"] = components.street
        if components.city:
            params["loc"] = components.city
        if components.state:
            params["admarea"] = components.state
        if components.zip_code:
            params["postal"] = components.zip_code
        params["opt"] = "OutputGeo:ON,USPreferredCityNames:ON"

        data = await self.get_json(MELISSA_URL, params=params)
        records = data.get("Records") or []
        if not records:
            raise NoResult(f"no Melissa record for '{address}'")

        record = records[0]
        latitude = record.get("Latitude")
        longitude = record.get("Longitude")
        if not latitude or not longitude:
            raise NoResult("Melissa record has no coordinates")

        line = record.get("AddressLine1") or ""
        formatted = line
        if line:
            if record.get("Locality"):
                formatted += f", {record['Locality']}"
            if record.get("AdministrativeArea"):
                formatted += f" {record['AdministrativeArea']}"
            if record.get("PostalCode"):
                formatted += f" {record['PostalCode']}"

        results = record.get("Results") or ""
        verified = bool(line) and "AE01" not in results

        logger.info(f"Melissa geocoded address: verified={verified}, results={results}")
        return Location(
            formatted_address=formatted or address,
            latitude=float(latitude),
            longitude=float(longitude),
            verified=verified,
        )


class NominatimGeocoder(HttpProvider[Location]):
    """Secondary geocoder. Never marks an address as verified."""

    name = "nominatim"

    async def _fetch(self, address: str) -> Location:
        params = {"q": address, "format": "json", "limit": 1}
        data = await self.get_json(
            NOMINATIM_URL, params=params, headers={"User-Agent": USER_AGENT}
        )
        if not isinstance(data, list):
            raise TypeError(f"expected a list, got {type(data).__name__}")
        if not data:
            raise NoResult(f"Nominatim found nothing for '{address}'")

        result = data[0]
        return Location(
            formatted_address=result.get("display_name") or address,
            latitude=float(result["lat"]),
            longitude=float(result["lon"]),
            verified=False,
        )
