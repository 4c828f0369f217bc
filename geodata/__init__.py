"""Input datasets for the density maps.

Modules:
    boundaries: City boundary polygons and named-region selection
    incidents: Incident CSV loading, zero-coordinate filter, category filter
    crs: CRS agreement check between the two datasets
"""

from geodata.boundaries import load_boundaries, select_boundary, boundary_label
from geodata.incidents import (
    IncidentCollection,
    parse_incident_row,
    load_incidents,
    drop_zero_coordinates,
    filter_categories,
    category_counts,
)
from geodata.crs import assert_same_crs

__all__ = [
    "load_boundaries",
    "select_boundary",
    "boundary_label",
    "IncidentCollection",
    "parse_incident_row",
    "load_incidents",
    "drop_zero_coordinates",
    "filter_categories",
    "category_counts",
    "assert_same_crs",
]
