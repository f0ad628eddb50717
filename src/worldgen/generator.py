"""Main world generation orchestration."""

import logging
from collections.abc import Callable
from enum import Enum
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from .biomes import Biome, BiomeInputs, classify_biomes, make_grass_density
from .bundle import WorldBundle
from .coastal import generate_shore_map
from .config import WorldgenConfig
from .exceptions import GenerationError
from .height import generate_height_map
from .island import IslandShape, shape_island
from .noise import NoiseBank
from .persistence import save_world
from .rivers import RiverResult, simulate_rivers
from .topography import ContourSet, extract_contours
from .validation import ValidationResult, validate_terrain

logger = logging.getLogger(__name__)


class WorldgenStage(Enum):
    """Pipeline stages reported to progress callbacks, in run order.

    SAVING is only reported by generate_and_save_world, after DONE.
    """

    NOISE = "Initializing world generator..."
    ISLAND = "Generating the island..."
    HEIGHT = "Raising mountains..."
    RIVERS = "Forming rivers..."
    BIOMES = "Generating biomes..."
    TOPOGRAPHY = "Mapping the world..."
    VALIDATION = "Validating the world..."
    SAVING = "Saving the world..."
    DONE = "Done"


# Called with the stage about to run and the percentage of stages completed
ProgressCallback = Callable[[WorldgenStage, int], None]

_GENERATION_STAGES = (
    WorldgenStage.NOISE,
    WorldgenStage.ISLAND,
    WorldgenStage.HEIGHT,
    WorldgenStage.RIVERS,
    WorldgenStage.BIOMES,
    WorldgenStage.TOPOGRAPHY,
    WorldgenStage.VALIDATION,
)


def _report(progress: ProgressCallback | None, stage: WorldgenStage) -> None:
    if progress is None:
        return
    if stage in _GENERATION_STAGES:
        percent = 100 * _GENERATION_STAGES.index(stage) // len(_GENERATION_STAGES)
    else:
        percent = 100
    progress(stage, percent)


class GenerationResult:
    """Result of world generation with all intermediate data."""

    def __init__(
        self,
        seed: int,
        config: WorldgenConfig,
        island: IslandShape,
        raw_height: NDArray[np.float32],
        rivers: RiverResult,
        biomes: NDArray[np.uint8],
        shore_map: NDArray[np.float32],
        grass_density: NDArray[np.float32],
        contours: ContourSet,
        validation: ValidationResult,
    ):
        self.seed = seed
        self.config = config
        self.island = island
        self.raw_height = raw_height
        self.rivers = rivers
        self.biomes = biomes
        self.shore_map = shore_map
        self.grass_density = grass_density
        self.contours = contours
        self.validation = validation

    @property
    def land_mask(self) -> NDArray[np.bool_]:
        return self.island.mask

    @property
    def height(self) -> NDArray[np.float32]:
        """Final height field, after erosion."""
        return self.rivers.height


def generate_terrain(
    config: WorldgenConfig,
    seed: int | bytes,
    debug_output_dir: Path | None = None,
    progress: ProgressCallback | None = None,
) -> GenerationResult:
    """Generate a complete world from configuration and seed.

    Args:
        config: World generation configuration.
        seed: World seed; identical seed and config give identical output.
        debug_output_dir: If set, intermediate grids are saved as images.
        progress: Optional callback invoked as each stage starts.

    Returns:
        GenerationResult with every intermediate product.

    Raises:
        IslandConvergenceError: If the island cannot meet its area bounds.
        DropletBudgetError: If a droplet exceeds its step budget.
    """
    width, height = config.island.size

    # Stage A: Noise channels
    _report(progress, WorldgenStage.NOISE)
    noise_bank = NoiseBank(seed, config.noise)
    seed = noise_bank.seed
    logger.info(f"Generating world {width}x{height} with seed {seed}")
    logger.info("Stage A: Built noise channels")

    # Stage B: Island shaping
    logger.info("Stage B: Shaping island...")
    _report(progress, WorldgenStage.ISLAND)
    island = shape_island(noise_bank, config.island)
    land_mask = island.mask

    # Stage C: Height synthesis
    logger.info("Stage C: Synthesizing heights...")
    _report(progress, WorldgenStage.HEIGHT)
    raw_height = generate_height_map(noise_bank, land_mask, config.height)

    # Stage D: Rivers and erosion
    logger.info("Stage D: Simulating rivers...")
    _report(progress, WorldgenStage.RIVERS)
    rivers = simulate_rivers(raw_height, land_mask, config.rivers, seed)

    # Stage E: Biomes
    logger.info("Stage E: Classifying biomes...")
    _report(progress, WorldgenStage.BIOMES)
    inputs = BiomeInputs(
        height=rivers.height,
        land_mask=land_mask,
        river_mask=rivers.river_mask,
        biome_noise=noise_bank.field_unit("biomes", width, height),
    )
    biomes = classify_biomes(inputs, config.biomes)
    shore_map = generate_shore_map(land_mask, rivers.river_map)
    grass_density = make_grass_density(noise_bank.field_unit("grass", width, height), biomes)

    # Stage F: Topography
    logger.info("Stage F: Extracting contours...")
    _report(progress, WorldgenStage.TOPOGRAPHY)
    contours = extract_contours(rivers.height, config.topography)

    # Stage G: Validation
    logger.info("Stage G: Validating...")
    _report(progress, WorldgenStage.VALIDATION)
    validation = validate_terrain(land_mask, rivers.height, rivers.paths, contours, config)

    _log_terrain_stats(biomes, land_mask, rivers)
    _report(progress, WorldgenStage.DONE)

    if debug_output_dir:
        _dump_debug_images(
            Path(debug_output_dir),
            island_field=island.field,
            land_mask=land_mask,
            raw_height=raw_height,
            height=rivers.height,
            river_map=rivers.river_map,
            biomes=biomes,
            shore_map=shore_map,
            grass_density=grass_density,
        )

    return GenerationResult(
        seed=seed,
        config=config,
        island=island,
        raw_height=raw_height,
        rivers=rivers,
        biomes=biomes,
        shore_map=shore_map,
        grass_density=grass_density,
        contours=contours,
        validation=validation,
    )


def generate_world(
    config: WorldgenConfig,
    seed: int | bytes,
    debug_output_dir: Path | None = None,
    progress: ProgressCallback | None = None,
) -> WorldBundle:
    """Generate a world and package it as an immutable bundle.

    Args:
        config: World generation configuration.
        seed: World seed.
        debug_output_dir: If set, intermediate grids are saved as images.
        progress: Optional callback invoked as each stage starts.

    Returns:
        Read-only WorldBundle.

    Raises:
        GenerationError: If any stage fails or the result fails validation.
    """
    result = generate_terrain(config, seed, debug_output_dir, progress)

    if not result.validation.passed:
        raise GenerationError(
            "Generated world failed validation: " + "; ".join(result.validation.errors),
            seed=result.seed,
            parameters={"errors": list(result.validation.errors)},
        )

    return bundle_result(result)


def bundle_result(result: GenerationResult) -> WorldBundle:
    """Package a generation result as a WorldBundle."""
    return WorldBundle.build(
        seed=result.seed,
        config=result.config,
        height=result.height,
        biomes=result.biomes,
        contours=result.contours,
        rivers=result.rivers.paths,
        river_map=result.rivers.river_map,
        shore_map=result.shore_map,
        grass_density=result.grass_density,
        islands=result.island.components,
    )


def generate_and_save_world(
    config: WorldgenConfig,
    seed: int | bytes,
    save_path: Path,
    progress: ProgressCallback | None = None,
) -> WorldBundle:
    """Generate a world, save it, then return the bundle.

    Args:
        config: World generation configuration.
        seed: World seed.
        save_path: Path to save the generated world.
        progress: Optional callback invoked as each stage starts.

    Returns:
        The generated WorldBundle.
    """
    bundle = generate_world(config, seed, progress=progress)

    _report(progress, WorldgenStage.SAVING)
    save_path.parent.mkdir(parents=True, exist_ok=True)
    save_world(save_path, bundle)

    return bundle


def _log_terrain_stats(
    biomes: NDArray[np.uint8],
    land_mask: NDArray[np.bool_],
    rivers: RiverResult,
) -> None:
    """Log world generation statistics."""
    total = biomes.size
    land_count = np.sum(land_mask)

    logger.info(f"World stats ({total:,} cells):")
    for biome in Biome:
        count = int(np.sum(biomes == biome))
        pct = count / total * 100
        logger.info(f"  {biome.name.lower()}: {count:,} ({pct:.1f}%)")

    if land_count > 0:
        river_pct = np.sum(rivers.river_mask) / land_count * 100
        logger.info(f"  River fraction of land: {river_pct:.1f}%")

    outlets = sum(1 for path in rivers.paths if path.reached_outlet)
    logger.info(f"  Droplets reaching an outlet: {outlets}/{len(rivers.paths)}")


def _dump_debug_images(output_dir: Path, **arrays: NDArray) -> None:
    """Save arrays as images for debugging.

    Args:
        output_dir: Directory to save images.
        **arrays: Named arrays to save.
    """
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        logger.warning("matplotlib not available, skipping debug images")
        return

    output_dir.mkdir(parents=True, exist_ok=True)

    for name, arr in arrays.items():
        fig, ax = plt.subplots(figsize=(10, 10))

        if arr.dtype == bool:
            ax.imshow(arr, cmap="binary")
        elif arr.dtype == np.uint8:
            ax.imshow(arr, cmap="tab10", vmin=0, vmax=9)
        else:
            ax.imshow(arr, cmap="terrain")

        ax.set_title(name)
        ax.axis("off")

        fig.savefig(output_dir / f"{name}.png", dpi=150, bbox_inches="tight")
        plt.close(fig)

    logger.info(f"Debug images saved to {output_dir}")
