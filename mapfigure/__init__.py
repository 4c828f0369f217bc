"""Figure composition for the density maps.

Modules:
    composer: FigureComposer (fixed grid layout, annotations, rasterizing)
    layers: Panel drawing helpers (surface, boundary, basemap, framing)
    basemap: Tile fetch through contextily
    inset: Inset image loading and resizing
"""

from mapfigure.basemap import Basemap, fetch_basemap, resolve_provider
from mapfigure.composer import FigureComposer
from mapfigure.inset import load_inset

__all__ = [
    "Basemap",
    "fetch_basemap",
    "resolve_provider",
    "FigureComposer",
    "load_inset",
]
