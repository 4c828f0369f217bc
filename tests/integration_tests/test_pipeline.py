import matplotlib

matplotlib.use("Agg")

import json
from dataclasses import replace
from unittest.mock import patch

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from PIL import Image
from shapely.geometry import box

import density_map
from pipeline.config import GRAND_THEFT, PETTY_THEFT, PipelineConfig, load_config
from pipeline.errors import StageError
from pipeline.runner import run_pipeline


@pytest.fixture
def data_paths(tmp_path):
    gpd.GeoDataFrame(
        {"CITY_NAME": ["Los Angeles", "Long Beach"]},
        geometry=[box(-118.67, 33.70, -118.15, 34.34), box(-118.25, 33.72, -118.06, 33.88)],
        crs="EPSG:4326",
    ).to_file(tmp_path / "cities.geojson", driver="GeoJSON")

    rng = np.random.default_rng(11)
    n = 60
    cats = [PETTY_THEFT] * 25 + [GRAND_THEFT] * 15 + ["BURGLARY"] * 20
    df = pd.DataFrame({
        "DR_NO": range(n),
        "LON": np.round(-118.35 + rng.normal(0, 0.04, n), 5),
        "LAT": np.round(34.05 + rng.normal(0, 0.04, n), 5),
        "Crm Cd Desc": cats,
    })
    df.loc[3, ["LON", "LAT"]] = 0.0
    df.to_csv(tmp_path / "crimes.csv", index=False)
    return str(tmp_path / "cities.geojson"), str(tmp_path / "crimes.csv")


def _config(tmp_path, data_paths, **boundary):
    cfg = load_config(None)
    cfg["paths"]["boundary"], cfg["paths"]["incidents"] = data_paths
    cfg["paths"]["output"] = str(tmp_path / "out" / "map.png")
    cfg["boundary"].update(boundary)
    cfg["figure"]["dpi"] = 30
    cfg["estimators"]["kde"]["grid_size"] = 40
    return PipelineConfig.from_dict(cfg)


def test_pipeline_writes_png(tmp_path, data_paths):
    result = run_pipeline(_config(tmp_path, data_paths), use_basemap=False)

    assert result.n_incidents == 59
    assert result.zero_rows == 1
    assert result.n_selected == 39
    assert set(result.surfaces) == {"kde", "hexbin", "rectbin"}
    assert all(not s.empty for s in result.surfaces.values())
    with Image.open(result.output_path) as img:
        assert img.size == (300, 165)


def test_pipeline_unknown_city(tmp_path, data_paths):
    with pytest.raises(StageError) as exc:
        run_pipeline(_config(tmp_path, data_paths, name="Pasadena"), use_basemap=False)

    assert exc.value.stage == "load"
    assert "Pasadena" in str(exc.value)
    assert not (tmp_path / "out" / "map.png").exists()


def test_pipeline_crs_mismatch(tmp_path, data_paths):
    cfg = load_config(None)
    cfg["paths"]["boundary"], cfg["paths"]["incidents"] = data_paths
    cfg["paths"]["output"] = str(tmp_path / "map.png")
    cfg["incidents"]["crs"] = "EPSG:3857"

    with pytest.raises(StageError) as exc:
        run_pipeline(PipelineConfig.from_dict(cfg), use_basemap=False)

    assert exc.value.stage == "load"
    assert not (tmp_path / "map.png").exists()


def test_pipeline_corrupt_boundary_file(tmp_path, data_paths):
    _, incidents = data_paths
    corrupt = tmp_path / "corrupt.geojson"
    corrupt.write_bytes(b"\x00\x01 not a vector dataset")

    with pytest.raises(StageError) as exc:
        run_pipeline(_config(tmp_path, (str(corrupt), incidents)), use_basemap=False)

    assert exc.value.stage == "load"
    assert not (tmp_path / "out" / "map.png").exists()


def test_pipeline_unknown_colormap(tmp_path, data_paths):
    cfg = _config(tmp_path, data_paths)
    cfg = replace(cfg, figure=replace(cfg.figure, cmap="nope"))

    with pytest.raises(StageError) as exc:
        run_pipeline(cfg, use_basemap=False)

    assert exc.value.stage == "compose"
    assert isinstance(exc.value.cause, KeyError)
    assert not (tmp_path / "out" / "map.png").exists()


def test_pipeline_basemap_unavailable(tmp_path, data_paths):
    with patch("mapfigure.basemap.ctx.bounds2img", side_effect=ConnectionError("offline")):
        with pytest.raises(StageError) as exc:
            run_pipeline(_config(tmp_path, data_paths), use_basemap=True)

    assert exc.value.stage == "compose"
    assert not (tmp_path / "out" / "map.png").exists()


def test_cli_main(tmp_path, data_paths, capsys):
    boundary, incidents = data_paths
    config_file = tmp_path / "run.json"
    config_file.write_text(json.dumps({"estimators": {"kde": {"mode": "kde", "bins": 4, "grid_size": 30}}}),
                           encoding="utf-8")
    out = tmp_path / "cli.png"

    code = density_map.main([
        "--config", str(config_file), "--boundary", boundary, "--incidents", incidents,
        "--out", str(out), "--dpi", "20", "--no-basemap",
    ])

    assert code == 0
    assert out.exists()
    assert "[DONE] 39 incidents" in capsys.readouterr().out


def test_cli_main_failure(tmp_path, data_paths, capsys):
    boundary, incidents = data_paths

    code = density_map.main([
        "--boundary", boundary, "--incidents", incidents, "--city", "Pasadena",
        "--out", str(tmp_path / "x.png"), "--no-basemap",
    ])

    assert code == 1
    assert "[ERROR] stage 'load' failed" in capsys.readouterr().out


def test_cli_malformed_config(tmp_path, data_paths, capsys):
    boundary, incidents = data_paths
    config_file = tmp_path / "bad.json"
    config_file.write_text("{bad", encoding="utf-8")

    code = density_map.main([
        "--config", str(config_file), "--boundary", boundary, "--incidents", incidents,
        "--out", str(tmp_path / "x.png"), "--no-basemap",
    ])

    assert code == 1
    assert "[ERROR] configuration:" in capsys.readouterr().out
    assert not (tmp_path / "x.png").exists()
