"""Unit tests for geodata.crs module."""

import pytest
from pyproj import CRS

from geodata.crs import assert_same_crs
from pipeline.errors import CRSMismatchError


class TestAssertSameCrs:
    """Test suite for assert_same_crs function."""

    @pytest.mark.parametrize("a,b", [
        ("EPSG:4326", "EPSG:4326"),
        (4326, "EPSG:4326"),
        (CRS.from_epsg(4326), "epsg:4326"),
    ])
    def test_matching_crs_passes(self, a, b):
        """Test that equivalent CRS spellings are accepted."""
        assert_same_crs(a, b)

    def test_geodataframe_crs(self, boundary_gdf):
        """Test that a GeoDataFrame CRS compares against a string."""
        assert_same_crs(boundary_gdf.crs, "EPSG:4326")

    def test_mismatch_raises(self, boundary_gdf):
        """Test that lon/lat vs Web Mercator raises CRSMismatchError."""
        with pytest.raises(CRSMismatchError, match="does not match"):
            assert_same_crs(boundary_gdf.crs, "EPSG:3857")

    def test_missing_crs_raises(self):
        """Test that a missing CRS cannot be verified."""
        with pytest.raises(CRSMismatchError):
            assert_same_crs(None, "EPSG:4326")

    def test_unparseable_crs_raises(self):
        """Test that garbage CRS input raises CRSMismatchError."""
        with pytest.raises(CRSMismatchError, match="Unrecognised"):
            assert_same_crs("EPSG:4326", "not-a-crs")
