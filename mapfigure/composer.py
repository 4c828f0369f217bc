"""Multi-panel figure composition.

The FigureComposer owns its own matplotlib Figure (no pyplot state, no
rcParams changes). Panel positions, spans and the inset rectangle come from
FigureConfig and never from the data.
"""

import os
from typing import Dict, Optional

import numpy as np
import geopandas as gpd
from matplotlib.figure import Figure

from density import DensitySurface, shared_levels
from mapfigure.basemap import Basemap
from mapfigure.layers import (
    LEVEL_LABELS,
    draw_basemap,
    draw_surface,
    draw_boundary,
    frame_axes,
)
from pipeline.config import FigureConfig, PanelSpec

_GRID_KW = dict(left=0.03, right=0.97, top=0.86, bottom=0.07, wspace=0.12, hspace=0.22)


class FigureComposer:
    """Arrange density panels, outline, basemap, inset and annotations.

    Args:
        config: Layout, styling and annotation settings.
    """

    def __init__(self, config: FigureConfig):
        self.config = config

    def compose(
        self,
        surfaces: Optional[Dict[str, DensitySurface]] = None,
        boundary: Optional[gpd.GeoDataFrame] = None,
        basemap: Optional[Basemap] = None,
        inset: Optional[np.ndarray] = None,
    ) -> Figure:
        """Build the figure.

        Args:
            surfaces: Density surfaces keyed by PanelSpec.key. Panels whose
                key has no surface are drawn blank (boundary and basemap only).
            boundary: Outline drawn on every panel.
            basemap: Background raster drawn on every panel.
            inset: RGBA image placed at config.inset_rect.

        Returns:
            The composed matplotlib Figure.
        """
        cfg = self.config
        surfaces = surfaces or {}
        fig = Figure(figsize=cfg.size_in, dpi=cfg.dpi, facecolor="white")

        vmin = vmax = None
        if cfg.shared_scale:
            vmin, vmax = shared_levels(surfaces.values())

        nrows, ncols = cfg.grid
        gs = fig.add_gridspec(nrows, ncols, **_GRID_KW)
        for panel in cfg.panels:
            ax = fig.add_subplot(gs[panel.row:panel.row + panel.rowspan, panel.col:panel.col + panel.colspan])
            self._draw_panel(fig, ax, panel, surfaces.get(panel.key), boundary, basemap, vmin, vmax)

        if inset is not None:
            ax_in = fig.add_axes(cfg.inset_rect)
            ax_in.imshow(inset)
            ax_in.set_axis_off()

        self._annotate(fig)
        return fig

    def _draw_panel(self, fig, ax, panel: PanelSpec, surface, boundary, basemap, vmin, vmax) -> None:
        cfg = self.config
        draw_basemap(ax, basemap)
        mappable = draw_surface(ax, surface, cfg.cmap, cfg.alpha, vmin, vmax)
        draw_boundary(ax, boundary, cfg.boundary_color, cfg.boundary_width)
        frame_axes(ax, boundary, surface)

        ax.set_title(panel.title, fontsize=8, fontweight="bold", pad=3)
        ax.set_xticks([])
        ax.set_yticks([])
        for s in ax.spines.values():
            s.set_linewidth(0.4)

        if mappable is not None:
            cbar = fig.colorbar(mappable, ax=ax, shrink=0.7, aspect=25, pad=0.01)
            cbar.set_label(LEVEL_LABELS.get(surface.mode, "Level"), fontsize=6)
            cbar.ax.tick_params(labelsize=5)

    def _annotate(self, fig) -> None:
        cfg = self.config
        if cfg.title:
            fig.text(0.03, 0.95, cfg.title, ha="left", va="center", fontsize=13, fontweight="bold")
        if cfg.subtitle:
            fig.text(0.03, 0.905, cfg.subtitle, ha="left", va="center", fontsize=8, color="#444444")
        if cfg.attribution:
            fig.text(0.97, 0.02, cfg.attribution, ha="right", va="bottom", fontsize=5, color="#666666")

    def render(self, fig: Figure, path: str) -> str:
        """Rasterize ``fig`` to ``path`` at the configured dpi, overwriting.

        The physical size is kept exactly (no tight bounding box).
        """
        out_dir = os.path.dirname(path)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        fig.savefig(path, dpi=self.config.dpi, facecolor=fig.get_facecolor())
        return path
