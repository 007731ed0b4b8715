"""
Static list of GTFS schedule feeds.

Feeds with ``headers=None`` are served by the NSW Transport Open Data hub and
are requested with the NSW API key (see ``nsw_headers``).
"""

from typing import Dict, List, Optional, NamedTuple

from gtfs_loader.config.config_main import feed_config
from gtfs_loader.errors import ConfigError


NSW_BASE_URL = "https://api.transport.nsw.gov.au/v1"


class GtfsEndpoint(NamedTuple):
    name: str
    url: str
    headers: Optional[Dict[str, str]] = None


ENDPOINTS: List[GtfsEndpoint] = [
    GtfsEndpoint("sydneycomplete", f"{NSW_BASE_URL}/publictransport/timetables/complete/gtfs"),
    GtfsEndpoint("lightrailcbdandsoutheast", f"{NSW_BASE_URL}/gtfs/schedule/lightrail/cbdandsoutheast"),
    GtfsEndpoint("lightrailinnerwest", f"{NSW_BASE_URL}/gtfs/schedule/lightrail/innerwest"),
    GtfsEndpoint("lightrailparramatta", f"{NSW_BASE_URL}/gtfs/schedule/lightrail/parramatta"),
    GtfsEndpoint("lightrailnewcastle", f"{NSW_BASE_URL}/gtfs/schedule/lightrail/newcastle"),
    GtfsEndpoint("ferriessydneyferries", f"{NSW_BASE_URL}/gtfs/schedule/ferries/sydneyferries"),
    GtfsEndpoint("ferriesmff", f"{NSW_BASE_URL}/gtfs/schedule/ferries/MFF"),
    GtfsEndpoint(
        "adelaidemetro",
        "https://gtfs.adelaidemetro.com.au/v1/static/latest/google_transit.zip",
        {"accept": "application/octet-stream"},
    ),
    GtfsEndpoint("sydneytrains", f"{NSW_BASE_URL}/gtfs/schedule/sydneytrains"),
    GtfsEndpoint("nswtrains", f"{NSW_BASE_URL}/gtfs/schedule/nswtrains"),
    GtfsEndpoint("sydneybuses", f"{NSW_BASE_URL}/gtfs/schedule/buses"),
]


def nsw_headers(api_key: str = None) -> Dict[str, str]:
    """Default request headers for NSW Transport Open Data feeds."""
    api_key = api_key if api_key is not None else feed_config.nsw_api_key
    if not api_key:
        raise ConfigError("NSW_APIKEY is required for NSW Transport feeds")
    return {
        "accept": "application/octet-stream",
        "authorization": f"apikey {api_key}",
    }


def resolve_headers(endpoint: GtfsEndpoint, api_key: str = None) -> Dict[str, str]:
    if endpoint.headers is not None:
        return dict(endpoint.headers)
    return nsw_headers(api_key)
