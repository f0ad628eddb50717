"""World persistence: save and load generated world bundles."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import numpy as np

from .bundle import WorldBundle
from .coastal import IslandComponent
from .config import WorldgenConfig
from .rivers import RiverPath, RiverPoint, Termination
from .topography import Contour, ContourSet

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

_ARRAYS = ("height", "biomes", "river_map", "shore_map", "grass_density")


def save_world(path: Path, bundle: WorldBundle) -> None:
    """Save a generated world to disk.

    Uses numpy's compressed .npz format; grids are stored as arrays and the
    rivers, contours, islands and metadata as JSON.

    Args:
        path: Output path (should end with .npz).
        bundle: World to save.
    """
    rivers_data = [
        {
            "termination": path_.termination.value,
            "points": [
                [p.x, p.y, p.elevation, p.sediment, p.water, p.terminal_deposit]
                for p in path_.points
            ],
        }
        for path_ in bundle.rivers
    ]

    contours_data = {
        "levels": list(bundle.contours.levels),
        "lines": [
            {
                "level": contour.level,
                "closed": contour.closed,
                "points": contour.points.tolist(),
            }
            for level in bundle.contours.levels
            for contour in bundle.contours.at(level)
        ],
    }

    islands_data = [
        {
            "label": island.label,
            "area": island.area,
            "area_fraction": island.area_fraction,
            "centroid": list(island.centroid),
            "bbox": list(island.bbox),
        }
        for island in bundle.islands
    ]

    width, height = bundle.size
    metadata = {
        "version": FORMAT_VERSION,
        "seed": bundle.seed,
        "width": width,
        "height": height,
        "config": bundle.config.model_dump(mode="json"),
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }

    np.savez_compressed(
        path,
        height=bundle.height.values,
        biomes=bundle.biomes,
        river_map=bundle.river_map,
        shore_map=bundle.shore_map,
        grass_density=bundle.grass_density,
        rivers=_encode(rivers_data),
        contours=_encode(contours_data),
        islands=_encode(islands_data),
        metadata=_encode(metadata),
    )

    file_size = path.stat().st_size / (1024 * 1024)
    logger.info(f"Saved world to {path} ({file_size:.1f} MB)")


def load_world(path: Path) -> WorldBundle:
    """Load a world from disk.

    Args:
        path: Path to .npz file.

    Returns:
        The saved WorldBundle.

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If file format is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"World file not found: {path}")

    data = np.load(path)

    for name in (*_ARRAYS, "metadata"):
        if name not in data:
            raise ValueError(f"Invalid world file: missing '{name}' array")

    metadata = _decode(data, "metadata")
    if metadata.get("version") != FORMAT_VERSION:
        raise ValueError(f"Unsupported world file version: {metadata.get('version')}")

    rivers = [
        RiverPath(
            points=tuple(
                RiverPoint(x, y, elevation, sediment, water, bool(terminal))
                for x, y, elevation, sediment, water, terminal in river["points"]
            ),
            termination=Termination(river["termination"]),
        )
        for river in _decode(data, "rivers", [])
    ]

    contours_data = _decode(data, "contours", {"levels": [], "lines": []})
    levels = tuple(contours_data["levels"])
    lines: dict[float, list[Contour]] = {level: [] for level in levels}
    for line in contours_data["lines"]:
        lines.setdefault(line["level"], []).append(
            Contour(
                level=line["level"],
                points=np.asarray(line["points"], dtype=np.float64).reshape(-1, 2),
                closed=line["closed"],
            )
        )

    islands = [
        IslandComponent(
            label=island["label"],
            area=island["area"],
            area_fraction=island["area_fraction"],
            centroid=tuple(island["centroid"]),
            bbox=tuple(island["bbox"]),
        )
        for island in _decode(data, "islands", [])
    ]

    bundle = WorldBundle.build(
        seed=metadata["seed"],
        config=WorldgenConfig.model_validate(metadata.get("config", {})),
        height=data["height"],
        biomes=data["biomes"],
        contours=ContourSet(levels=levels, contours=lines),
        rivers=rivers,
        river_map=data["river_map"],
        shore_map=data["shore_map"],
        grass_density=data["grass_density"],
        islands=islands,
    )

    width, height = bundle.size
    logger.info(f"Loaded world from {path}: {width}x{height}, {len(rivers)} rivers")
    return bundle


def _encode(value: object) -> bytes:
    return json.dumps(value).encode("utf-8")


def _decode(data, name: str, default: object = None):
    if name not in data:
        return default
    return json.loads(data[name].tobytes().decode("utf-8"))
