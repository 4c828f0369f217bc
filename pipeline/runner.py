"""Single-pass batch runner: load -> filter -> estimate -> compose -> write.

Every stage either completes or raises StageError naming the stage, so a
run produces exactly one image or none.
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Optional

from density import DensitySurface, estimate_density
from geodata import (
    assert_same_crs,
    category_counts,
    filter_categories,
    load_boundaries,
    load_incidents,
    select_boundary,
)
from mapfigure import FigureComposer, fetch_basemap, load_inset
from pipeline.config import PipelineConfig
from pipeline.errors import StageError


@dataclass
class RunResult:
    """Diagnostics of one completed run."""

    output_path: str
    n_incidents: int = 0
    n_selected: int = 0
    dropped_rows: int = 0
    zero_rows: int = 0
    surfaces: Dict[str, DensitySurface] = field(default_factory=dict)


@contextmanager
def _stage(name: str):
    try:
        yield
    except StageError:
        raise
    except Exception as e:
        raise StageError(name, e) from e


def run_pipeline(cfg: PipelineConfig, use_basemap: Optional[bool] = None) -> RunResult:
    """Run the whole pipeline once and write the output image.

    Args:
        cfg: Run configuration.
        use_basemap: Override cfg.figure.basemap (None keeps the config value).

    Returns:
        RunResult with counts, the computed surfaces and the output path.

    Raises:
        StageError: Wrapping the first failure; ``stage`` names where it happened.
    """
    with _stage("load"):
        print(f"[INFO] Loading boundaries from {cfg.boundary_path}…")
        boundaries = load_boundaries(cfg.boundary_path, cfg.boundary_label_col)
        boundary = select_boundary(boundaries, cfg.boundary_name, cfg.boundary_label_col)
        print(f"[INFO] Selected boundary '{cfg.boundary_name}' out of {len(boundaries)} regions")

        print(f"[INFO] Loading incidents from {cfg.incidents_path}…")
        incidents = load_incidents(cfg.incidents_path, cfg.columns, crs=cfg.incident_crs)
        print(f"[INFO] Rows after cleaning: {len(incidents)} "
              f"(malformed dropped: {incidents.dropped_rows}, zero-coordinate dropped: {incidents.zero_rows})")

        assert_same_crs(boundary.crs, incidents.crs)

    with _stage("filter"):
        selected = filter_categories(incidents, cfg.categories)
        print(f"[INFO] Incidents in {len(cfg.categories)} categories: {len(selected)}")
        for label, count in category_counts(selected).items():
            print(f"[INFO]   {label}: {count}")
        if selected.empty:
            print("[WARN] No incidents matched the categories; panels will be blank.")

    surfaces: Dict[str, DensitySurface] = {}
    with _stage("estimate"):
        for key, est_cfg in cfg.estimators.items():
            surface = estimate_density(selected.df, est_cfg, crs=selected.crs)
            surfaces[key] = surface
            msg = f"[INFO] {key}: {len(surface.polygons)} polygons (params {surface.params_hash})"
            if surface.bandwidth is not None:
                msg += f", bandwidth=({surface.bandwidth[0]:.5f}, {surface.bandwidth[1]:.5f})"
            print(msg)

    fig_cfg = cfg.figure
    with_basemap = fig_cfg.basemap if use_basemap is None else use_basemap
    composer = FigureComposer(fig_cfg)
    with _stage("compose"):
        basemap = None
        if with_basemap:
            x0, y0, x1, y1 = boundary.total_bounds
            print(f"[INFO] Fetching {fig_cfg.basemap_provider} basemap…")
            basemap = fetch_basemap((x0, y0, x1, y1), provider=fig_cfg.basemap_provider)
        inset = load_inset(cfg.inset_path, fig_cfg.inset_size_px) if cfg.inset_path else None
        fig = composer.compose(surfaces, boundary=boundary, basemap=basemap, inset=inset)

    with _stage("write"):
        out = composer.render(fig, cfg.output_path)
        print(f"[OK] Saved {os.path.abspath(out)}")

    return RunResult(
        output_path=out,
        n_incidents=len(incidents),
        n_selected=len(selected),
        dropped_rows=incidents.dropped_rows,
        zero_rows=incidents.zero_rows,
        surfaces=surfaces,
    )
