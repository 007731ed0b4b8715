"""
GTFS table specification.

Maps each archive entry (``stops.txt``) to its destination table and the
columns that may be loaded from it, in declaration order. Columns are
``TEXT`` throughout: the loader keeps empty fields as empty strings, which
numeric or date columns would reject.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from gtfs_loader.errors import ConfigError


_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class TableSpec:
    file: str
    name: str
    columns: Tuple[Tuple[str, str], ...]

    @property
    def column_types(self) -> Dict[str, str]:
        return dict(self.columns)

    def column_type(self, column: str) -> Optional[str]:
        return self.column_types.get(column)

    def validate(self):
        """Raise ConfigError if the spec cannot produce a valid CREATE TABLE."""
        if not self.file:
            raise ConfigError("Table spec is missing its archive file name")
        if not _IDENTIFIER.match(self.name):
            raise ConfigError(f"Invalid table name {self.name!r} for {self.file}")
        if not self.columns:
            raise ConfigError(f"Table {self.name} declares no columns")

        seen = set()
        for column, column_type in self.columns:
            if not _IDENTIFIER.match(column):
                raise ConfigError(f"Invalid column name {column!r} in table {self.name}")
            if not column_type or not column_type.strip():
                raise ConfigError(f"Column {self.name}.{column} has no type")
            if column in seen:
                raise ConfigError(f"Duplicate column {self.name}.{column}")
            seen.add(column)


class TableCatalog:
    """Read-only lookup of table specs by archive entry name."""

    def __init__(self, specs: Iterable[TableSpec]):
        self._by_file: Dict[str, TableSpec] = {}
        table_names = set()

        for spec in specs:
            spec.validate()
            if spec.file in self._by_file:
                raise ConfigError(f"Archive file {spec.file} is mapped twice")
            if spec.name in table_names:
                raise ConfigError(f"Table {spec.name} is declared twice")
            self._by_file[spec.file] = spec
            table_names.add(spec.name)

    def for_file(self, file: str) -> Optional[TableSpec]:
        return self._by_file.get(file)

    def __contains__(self, file: str) -> bool:
        return file in self._by_file

    def __iter__(self):
        return iter(self._by_file.values())

    def __len__(self) -> int:
        return len(self._by_file)


def _text(file: str, name: str, *columns: str) -> TableSpec:
    return TableSpec(file, name, tuple((column, "TEXT") for column in columns))


GTFS_TABLES = (
    _text(
        "agency.txt", "agency",
        "agency_id", "agency_name", "agency_url", "agency_timezone", "agency_lang",
        "agency_phone", "agency_fare_url", "agency_email",
    ),
    _text(
        "stops.txt", "stops",
        "stop_id", "stop_code", "stop_name", "tts_stop_name", "stop_desc", "stop_lat",
        "stop_lon", "zone_id", "stop_url", "location_type", "parent_station",
        "stop_timezone", "wheelchair_boarding", "level_id", "platform_code",
    ),
    _text(
        "routes.txt", "routes",
        "route_id", "agency_id", "route_short_name", "route_long_name", "route_desc",
        "route_type", "route_url", "route_color", "route_text_color", "route_sort_order",
        "continuous_pickup", "continuous_drop_off", "network_id",
    ),
    _text(
        "trips.txt", "trips",
        "route_id", "service_id", "trip_id", "trip_headsign", "trip_short_name",
        "direction_id", "block_id", "shape_id", "wheelchair_accessible", "bikes_allowed",
    ),
    _text(
        "stop_times.txt", "stop_times",
        "trip_id", "arrival_time", "departure_time", "stop_id", "stop_sequence",
        "stop_headsign", "pickup_type", "drop_off_type", "continuous_pickup",
        "continuous_drop_off", "shape_dist_traveled", "timepoint",
    ),
    _text(
        "calendar.txt", "calendar",
        "service_id", "monday", "tuesday", "wednesday", "thursday", "friday",
        "saturday", "sunday", "start_date", "end_date",
    ),
    _text("calendar_dates.txt", "calendar_dates", "service_id", "date", "exception_type"),
    _text(
        "fare_attributes.txt", "fare_attributes",
        "fare_id", "price", "currency_type", "payment_method", "transfers", "agency_id",
        "transfer_duration",
    ),
    _text(
        "fare_rules.txt", "fare_rules",
        "fare_id", "route_id", "origin_id", "destination_id", "contains_id",
    ),
    _text(
        "shapes.txt", "shapes",
        "shape_id", "shape_pt_lat", "shape_pt_lon", "shape_pt_sequence", "shape_dist_traveled",
    ),
    _text(
        "frequencies.txt", "frequencies",
        "trip_id", "start_time", "end_time", "headway_secs", "exact_times",
    ),
    _text(
        "transfers.txt", "transfers",
        "from_stop_id", "to_stop_id", "from_route_id", "to_route_id", "from_trip_id",
        "to_trip_id", "transfer_type", "min_transfer_time",
    ),
    _text(
        "pathways.txt", "pathways",
        "pathway_id", "from_stop_id", "to_stop_id", "pathway_mode", "is_bidirectional",
        "length", "traversal_time", "stair_count", "max_slope", "min_width",
        "signposted_as", "reversed_signposted_as",
    ),
    _text("levels.txt", "levels", "level_id", "level_index", "level_name"),
    _text(
        "feed_info.txt", "feed_info",
        "feed_publisher_name", "feed_publisher_url", "feed_lang", "default_lang",
        "feed_start_date", "feed_end_date", "feed_version", "feed_contact_email",
        "feed_contact_url",
    ),
    _text(
        "translations.txt", "translations",
        "table_name", "field_name", "language", "translation", "record_id",
        "record_sub_id", "field_value",
    ),
    _text(
        "attributions.txt", "attributions",
        "attribution_id", "agency_id", "route_id", "trip_id", "organization_name",
        "is_producer", "is_operator", "is_authority", "attribution_url",
        "attribution_email", "attribution_phone",
    ),
)

gtfs_tables = TableCatalog(GTFS_TABLES)
