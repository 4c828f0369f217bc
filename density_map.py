#!/usr/bin/env python3
"""Shoplifting density maps for the City of Los Angeles.

Loads the county city boundaries and the LAPD incident CSV, keeps the
shoplifting categories, estimates hexagonal-bin, 2D-histogram and KDE
density surfaces, and writes one composed PNG.

Example:
    python density_map.py --boundary data/geo/city_boundaries.shp \
        --incidents data/Crime_Data_from_2020_to_Present.csv --out out/la.png
"""
from __future__ import annotations

import argparse
import sys

from pipeline.config import PipelineConfig, load_config, validate_config
from pipeline.errors import DensityMapError
from pipeline.runner import run_pipeline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Crime incident density maps")
    parser.add_argument("--config", default=None, help="JSON configuration file merged over the defaults")
    parser.add_argument("--boundary", default=None, help="Boundary shapefile/geojson path")
    parser.add_argument("--incidents", default=None, help="Incident CSV path")
    parser.add_argument("--inset", default=None, help="Optional inset image path")
    parser.add_argument("--out", default=None, help="Output PNG path")
    parser.add_argument("--city", default=None, help="Boundary label to select (exact match)")
    parser.add_argument("--dpi", type=int, default=None, help="Output resolution")
    parser.add_argument("--no-basemap", action="store_true", default=False, help="Disable basemap tiles")
    return parser


def apply_overrides(cfg: dict, args: argparse.Namespace) -> dict:
    """Copy command line values over the loaded configuration."""
    for flag, key in (("boundary", "boundary"), ("incidents", "incidents"),
                      ("inset", "inset"), ("out", "output")):
        value = getattr(args, flag)
        if value is not None:
            cfg["paths"][key] = value
    if args.city is not None:
        cfg["boundary"]["name"] = args.city
    if args.dpi is not None:
        cfg["figure"]["dpi"] = args.dpi
    if args.no_basemap:
        cfg["figure"]["basemap"] = False
    return cfg


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = apply_overrides(load_config(args.config), args)
        validate_config(cfg)
        pipeline_cfg = PipelineConfig.from_dict(cfg)
    except DensityMapError as e:
        print(f"[ERROR] configuration: {e}")
        return 1

    try:
        result = run_pipeline(pipeline_cfg)
    except DensityMapError as e:
        print(f"[ERROR] {e}")
        return 1

    print(f"[DONE] {result.n_selected} incidents mapped to {result.output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
