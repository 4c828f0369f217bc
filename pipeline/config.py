"""Configuration management for the density map pipeline.

Provides the default run configuration, JSON loading with deep merge and
schema validation, and the frozen configuration objects that are passed
explicitly to the estimator and the figure composer.
"""
from __future__ import annotations

import copy
import json
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from jsonschema import Draft202012Validator
from matplotlib import colormaps

from pipeline.errors import InvalidParameterError

PETTY_THEFT = "SHOPLIFTING - PETTY THEFT ($950 & UNDER)"
GRAND_THEFT = "SHOPLIFTING-GRAND THEFT ($950.01 & OVER)"

ESTIMATOR_MODES = ("hexbin", "rectbin", "kde")

_DEFAULT: Dict[str, Any] = {
    "paths": {
        "boundary": "data/geo/city_boundaries.shp",
        "incidents": "data/Crime_Data_from_2020_to_Present.csv",
        "inset": None,
        "output": "out/la_shoplifting_density.png",
    },
    "boundary": {"label_col": "CITY_NAME", "name": "Los Angeles"},
    "incidents": {
        "lon_col": "LON",
        "lat_col": "LAT",
        "category_col": "Crm Cd Desc",
        "crs": "EPSG:4326",
    },
    "categories": [PETTY_THEFT, GRAND_THEFT],
    "estimators": {
        "kde": {"mode": "kde", "bins": 10, "bandwidth": None, "grid_size": 100, "margin": 0.05},
        "hexbin": {"mode": "hexbin", "bins": 40, "bandwidth": None, "grid_size": 100, "margin": 0.05},
        "rectbin": {"mode": "rectbin", "bins": 40, "bandwidth": None, "grid_size": 100, "margin": 0.05},
    },
    "figure": {
        "size_in": [10.0, 5.5],
        "dpi": 300,
        "title": "Shoplifting in the City of Los Angeles",
        "subtitle": "Incident density, 2020 to present",
        "attribution": "Source: LAPD Crime Data from 2020 to Present; LA County city boundaries",
        "cmap": "magma_r",
        "alpha": 0.75,
        "grid": [2, 3],
        "panels": [
            {"key": "kde", "title": "Kernel density", "row": 0, "col": 0, "rowspan": 2, "colspan": 2},
            {"key": "hexbin", "title": "Hexagonal bins", "row": 0, "col": 2, "rowspan": 1, "colspan": 1},
            {"key": "rectbin", "title": "2D histogram", "row": 1, "col": 2, "rowspan": 1, "colspan": 1},
        ],
        "inset": {"rect": [0.02, 0.74, 0.12, 0.18], "size_px": [240, 240]},
        "boundary_color": "#2b8cbe",
        "boundary_width": 0.8,
        "basemap": True,
        "basemap_provider": "CartoDB.Positron",
        "shared_scale": False,
    },
}

_ESTIMATOR_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "required": ["mode", "bins"],
    "properties": {
        "mode": {"enum": list(ESTIMATOR_MODES)},
        "bins": {"type": "integer"},
        "bandwidth": {
            "anyOf": [
                {"type": "null"},
                {"type": "number"},
                {"type": "array", "items": {"type": "number"}, "minItems": 2, "maxItems": 2},
            ]
        },
        "grid_size": {"type": "integer"},
        "margin": {"type": "number", "minimum": 0},
    },
}

CONFIG_SCHEMA = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["paths", "boundary", "incidents", "categories", "estimators", "figure"],
    "properties": {
        "paths": {
            "type": "object",
            "required": ["boundary", "incidents", "output"],
            "properties": {
                "boundary": {"type": "string"},
                "incidents": {"type": "string"},
                "inset": {"type": ["string", "null"]},
                "output": {"type": "string"},
            },
        },
        "boundary": {
            "type": "object",
            "required": ["label_col", "name"],
            "properties": {"label_col": {"type": "string"}, "name": {"type": "string"}},
        },
        "incidents": {
            "type": "object",
            "required": ["lon_col", "lat_col", "category_col"],
            "properties": {
                "lon_col": {"type": "string"},
                "lat_col": {"type": "string"},
                "category_col": {"type": "string"},
                "crs": {"type": "string"},
            },
        },
        "categories": {"type": "array", "items": {"type": "string"}, "minItems": 1},
        "estimators": {"type": "object", "additionalProperties": _ESTIMATOR_SCHEMA},
        "figure": {
            "type": "object",
            "properties": {
                "size_in": {"type": "array", "items": {"type": "number", "exclusiveMinimum": 0},
                            "minItems": 2, "maxItems": 2},
                "dpi": {"type": "integer", "minimum": 1},
                "grid": {"type": "array", "items": {"type": "integer", "minimum": 1},
                         "minItems": 2, "maxItems": 2},
                "panels": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["key", "row", "col"],
                        "properties": {
                            "key": {"type": "string"},
                            "title": {"type": "string"},
                            "row": {"type": "integer", "minimum": 0},
                            "col": {"type": "integer", "minimum": 0},
                            "rowspan": {"type": "integer", "minimum": 1},
                            "colspan": {"type": "integer", "minimum": 1},
                        },
                    },
                },
                "cmap": {"type": "string"},
                "basemap": {"type": "boolean"},
                "shared_scale": {"type": "boolean"},
            },
        },
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = copy.deepcopy(v)
    return merged


def validate_config(cfg: dict) -> None:
    """Validate a configuration document against CONFIG_SCHEMA.

    Raises:
        InvalidParameterError: On the first schema violation found, or an
            unknown colormap name.
    """
    errors = sorted(Draft202012Validator(CONFIG_SCHEMA).iter_errors(cfg), key=lambda e: list(e.path))
    if errors:
        first = errors[0]
        where = "/".join(str(p) for p in first.path) or "<root>"
        raise InvalidParameterError(f"Invalid configuration at {where}: {first.message}")
    cmap = cfg["figure"].get("cmap")
    if cmap is not None and cmap not in colormaps:
        raise InvalidParameterError(f"Invalid configuration at figure/cmap: unknown colormap {cmap!r}")


def load_config(path: str | None = None) -> dict:
    """Load run configuration from a JSON file.

    Loads the user configuration file and deep-merges it over the defaults.
    User values override defaults for matching keys; lists are replaced.

    Args:
        path: Path to configuration JSON file. If None or the file doesn't
            exist, the default configuration is returned.

    Returns:
        dict: Validated, merged configuration dictionary.

    Raises:
        InvalidParameterError: If the file is not valid JSON or the merged
            document violates the schema.
    """
    p = pathlib.Path(path) if path else None
    cfg = copy.deepcopy(_DEFAULT)
    if p and p.exists():
        with p.open("r", encoding="utf-8") as f:
            try:
                user = json.load(f)
            except json.JSONDecodeError as e:
                raise InvalidParameterError(f"Invalid configuration file {p}: {e}") from e
        cfg = _deep_merge(cfg, user)
    validate_config(cfg)
    return cfg


@dataclass(frozen=True)
class IncidentColumns:
    """Column mapping from the incident CSV to lon/lat/category."""

    lon_col: str = "LON"
    lat_col: str = "LAT"
    category_col: str = "Crm Cd Desc"


@dataclass(frozen=True)
class EstimatorConfig:
    """Parameters for one density estimate.

    bins is the hex/rect bin count per axis, or the number of KDE contour
    levels. bandwidth applies to kde only; None selects the normal
    reference rule.
    """

    mode: str = "kde"
    bins: int = 10
    bandwidth: Optional[Any] = None
    grid_size: int = 100
    margin: float = 0.05

    def __post_init__(self):
        if self.mode not in ESTIMATOR_MODES:
            raise InvalidParameterError(
                f"Unknown estimator mode: {self.mode}. Must be one of: {', '.join(ESTIMATOR_MODES)}"
            )
        if isinstance(self.bandwidth, list):
            object.__setattr__(self, "bandwidth", tuple(self.bandwidth))

    def params(self) -> Dict[str, Any]:
        return {
            "bins": self.bins,
            "bandwidth": self.bandwidth,
            "grid_size": self.grid_size,
            "margin": self.margin,
        }


@dataclass(frozen=True)
class PanelSpec:
    """Fixed grid placement of one map panel."""

    key: str
    title: str = ""
    row: int = 0
    col: int = 0
    rowspan: int = 1
    colspan: int = 1


@dataclass(frozen=True)
class FigureConfig:
    """Layout, styling and annotations for the composed figure."""

    size_in: Tuple[float, float] = (10.0, 5.5)
    dpi: int = 300
    title: str = ""
    subtitle: str = ""
    attribution: str = ""
    cmap: str = "magma_r"
    alpha: float = 0.75
    grid: Tuple[int, int] = (1, 1)
    panels: Tuple[PanelSpec, ...] = field(default_factory=tuple)
    inset_rect: Tuple[float, float, float, float] = (0.02, 0.74, 0.12, 0.18)
    inset_size_px: Tuple[int, int] = (240, 240)
    boundary_color: str = "#2b8cbe"
    boundary_width: float = 0.8
    basemap: bool = True
    basemap_provider: str = "CartoDB.Positron"
    shared_scale: bool = False

    @classmethod
    def from_dict(cls, fig: dict) -> "FigureConfig":
        inset = fig.get("inset", {})
        return cls(
            size_in=tuple(fig.get("size_in", cls.size_in)),
            dpi=int(fig.get("dpi", cls.dpi)),
            title=fig.get("title", ""),
            subtitle=fig.get("subtitle", ""),
            attribution=fig.get("attribution", ""),
            cmap=fig.get("cmap", cls.cmap),
            alpha=float(fig.get("alpha", cls.alpha)),
            grid=tuple(fig.get("grid", cls.grid)),
            panels=tuple(PanelSpec(**p) for p in fig.get("panels", [])),
            inset_rect=tuple(inset.get("rect", cls.inset_rect)),
            inset_size_px=tuple(inset.get("size_px", cls.inset_size_px)),
            boundary_color=fig.get("boundary_color", cls.boundary_color),
            boundary_width=float(fig.get("boundary_width", cls.boundary_width)),
            basemap=bool(fig.get("basemap", cls.basemap)),
            basemap_provider=fig.get("basemap_provider", cls.basemap_provider),
            shared_scale=bool(fig.get("shared_scale", cls.shared_scale)),
        )


@dataclass(frozen=True)
class PipelineConfig:
    """Everything one run needs, built once from the merged JSON config."""

    boundary_path: str
    incidents_path: str
    output_path: str
    inset_path: Optional[str]
    boundary_label_col: str
    boundary_name: str
    columns: IncidentColumns
    incident_crs: str
    categories: Tuple[str, ...]
    estimators: Dict[str, EstimatorConfig]
    figure: FigureConfig

    @classmethod
    def from_dict(cls, cfg: dict) -> "PipelineConfig":
        paths = cfg["paths"]
        inc = cfg["incidents"]
        return cls(
            boundary_path=paths["boundary"],
            incidents_path=paths["incidents"],
            output_path=paths["output"],
            inset_path=paths.get("inset"),
            boundary_label_col=cfg["boundary"]["label_col"],
            boundary_name=cfg["boundary"]["name"],
            columns=IncidentColumns(inc["lon_col"], inc["lat_col"], inc["category_col"]),
            incident_crs=inc.get("crs", "EPSG:4326"),
            categories=tuple(cfg["categories"]),
            estimators={k: EstimatorConfig(**v) for k, v in cfg["estimators"].items()},
            figure=FigureConfig.from_dict(cfg["figure"]),
        )

