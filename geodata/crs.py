"""Coordinate reference system agreement check."""

from pyproj import CRS
from pyproj.exceptions import CRSError

from pipeline.errors import CRSMismatchError


def assert_same_crs(boundary_crs, incident_crs) -> None:
    """Fail fast when boundary and incident data use different CRSs.

    Neither dataset is reprojected by the pipeline, so both must already
    share one coordinate system. Values may be anything pyproj accepts
    ("EPSG:4326", an EPSG int, a pyproj.CRS, a GeoDataFrame.crs).

    Raises:
        CRSMismatchError: If either CRS is missing/unparseable or they differ.
    """
    if boundary_crs is None or incident_crs is None:
        raise CRSMismatchError(
            f"Cannot compare CRS: boundary={boundary_crs!r}, incidents={incident_crs!r}"
        )
    try:
        b = CRS.from_user_input(boundary_crs)
        i = CRS.from_user_input(incident_crs)
    except CRSError as e:
        raise CRSMismatchError(f"Unrecognised CRS: {e}") from e
    if not b.equals(i, ignore_axis_order=True):
        raise CRSMismatchError(
            f"Boundary CRS {b.to_string()} does not match incident CRS {i.to_string()}; "
            f"reproject one dataset before running"
        )
