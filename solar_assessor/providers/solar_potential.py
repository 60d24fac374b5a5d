"""Solar production providers: Google Solar building insights and NREL PVWatts."""

import logging
import math
from typing import Any, Dict, Optional

from .base import HttpProvider, NoResult
from ..models.location import Location
from ..models.solar import SolarEstimate
from ..normalization.seasonal import monthly_series_for

logger = logging.getLogger(__name__)

GOOGLE_SOLAR_URL = "https://solar.googleapis.com/v1/buildingInsights:findClosest"
PVWATTS_URL = "https://developer.nrel.gov/api/pvwatts/v8.json"

DC_TO_AC_DERATE = 0.85
DEFAULT_PANEL_WATTS = 400.0
PERFORMANCE_RATIO = 0.75


def default_tilt(latitude: float) -> float:
    return float(round(abs(latitude) * 0.76))


def default_azimuth(latitude: float) -> float:
    return 180.0 if latitude >= 0 else 0.0


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class GoogleSolarProvider(HttpProvider[SolarEstimate]):
    """
    Production from Google Solar ``buildingInsights:findClosest``.

    Annual AC output comes from the largest panel configuration's DC yield
    times a fixed derate. When the building has no configurations one is
    synthesized from the maximum array size and sunshine hours.
    """

    name = "google_solar"

    async def _fetch(self, location: Location) -> SolarEstimate:
        key = self.require_key()
        data = await self.get_json(GOOGLE_SOLAR_URL, params={
            "location.latitude": location.latitude,
            "location.longitude": location.longitude,
            "requiredQuality": "HIGH",
            "key": key,
        })
        potential = fetch_solar_potential(data)
        return solar_estimate_from_potential(potential, location.latitude)


def fetch_solar_potential(data: Any) -> Dict[str, Any]:
    """Pull ``solarPotential`` out of a building insights answer."""
    if not isinstance(data, dict):
        raise TypeError(f"expected an object, got {type(data).__name__}")
    insights = data.get("buildingInsights", data)
    potential = insights.get("solarPotential") if isinstance(insights, dict) else None
    if not isinstance(potential, dict):
        raise NoResult("building insights carry no solarPotential")
    return potential


def solar_estimate_from_potential(potential: Dict[str, Any], latitude: float) -> SolarEstimate:
    panel_watts = _number(potential.get("panelCapacityWatts")) or DEFAULT_PANEL_WATTS

    configs = [
        c for c in potential.get("solarPanelConfigs") or []
        if _number(c.get("panelsCount")) is not None
        and _number(c.get("yearlyEnergyDcKwh")) is not None
    ]
    if configs:
        largest = max(configs, key=lambda c: c["panelsCount"])
        panel_count = int(largest["panelsCount"])
        yearly_dc = float(largest["yearlyEnergyDcKwh"])
    else:
        max_panels = _number(potential.get("maxArrayPanelsCount"))
        sunshine = _number(potential.get("maxSunshineHoursPerYear"))
        if max_panels is None or sunshine is None:
            raise KeyError("solarPanelConfigs")
        panel_count = int(max_panels)
        yearly_dc = max_panels * panel_watts * sunshine / 1000.0 * PERFORMANCE_RATIO
        logger.info("No panel configurations returned, synthesized one from array maximums")

    if panel_count <= 0:
        raise NoResult("building supports no panels")

    annual = round(yearly_dc * DC_TO_AC_DERATE, 1)

    tilt = default_tilt(latitude)
    azimuth = default_azimuth(latitude)
    segments = [
        s for s in potential.get("roofSegmentStats") or []
        if _number((s.get("stats") or {}).get("areaMeters2")) is not None
    ]
    if segments:
        main = max(segments, key=lambda s: s["stats"]["areaMeters2"])
        pitch = _number(main.get("pitchDegrees"))
        facing = _number(main.get("azimuthDegrees"))
        if pitch is not None:
            tilt = pitch
        if facing is not None:
            azimuth = facing

    return SolarEstimate(
        annual_production_kwh=annual,
        monthly_series=monthly_series_for(annual, latitude),
        roof_azimuth_deg=round(azimuth, 1),
        roof_tilt_deg=round(tilt, 1),
        system_capacity_kw=round(panel_count * panel_watts / 1000.0, 2),
        panel_count=panel_count,
    )


class PVWattsProvider(HttpProvider[SolarEstimate]):
    """
    Production for a reference system from NREL PVWatts v8.

    Reports ``ac_annual`` and ``ac_monthly``; the monthly series is kept when
    it agrees with the annual total.
    """

    name = "pvwatts"

    def __init__(self, *args: Any, system_capacity_kw: float = 5.0,
                 panel_watts: float = 350.0, losses_pct: float = 14.0, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.system_capacity_kw = system_capacity_kw
        self.panel_watts = panel_watts
        self.losses_pct = losses_pct

    async def _fetch(self, location: Location) -> SolarEstimate:
        key = self.require_key()
        tilt = default_tilt(location.latitude)
        azimuth = default_azimuth(location.latitude)
        data = await self.get_json(PVWATTS_URL, params={
            "api_key": key,
            "lat": location.latitude,
            "lon": location.longitude,
            "system_capacity": self.system_capacity_kw,
            "azimuth": azimuth,
            "tilt": tilt,
            "array_type": 1,
            "module_type": 1,
            "losses": self.losses_pct,
            "dataset": "nsrdb",
            "timeframe": "monthly",
        })

        errors = data.get("errors") or []
        if errors:
            raise ValueError(f"PVWatts reported errors: {errors}")

        outputs = data["outputs"]
        annual = _number(outputs.get("ac_annual"))
        if annual is None:
            raise KeyError("ac_annual")
        annual = round(annual, 1)
        monthly = outputs.get("ac_monthly")

        return SolarEstimate(
            annual_production_kwh=annual,
            monthly_series=monthly_series_for(annual, location.latitude, monthly),
            roof_azimuth_deg=azimuth,
            roof_tilt_deg=tilt,
            system_capacity_kw=self.system_capacity_kw,
            panel_count=math.ceil(self.system_capacity_kw * 1000 / self.panel_watts),
        )
