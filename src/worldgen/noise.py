"""Noise generation for world generation.

Provides seeded fBm channels over OpenSimplex, the noise bank that owns the
named channels, domain warping and smoothstep.
"""

import numpy as np
from numpy.typing import NDArray
from opensimplex import OpenSimplex
from scipy.ndimage import map_coordinates

from .config import FbmNoiseConfig, NoiseConfig

CHANNELS = ("island", "height", "height_warp", "biomes", "grass")

# SeedSequence spawn-key streams, one per consumer of randomness
NOISE_STREAM = 0
ISLAND_STREAM = 1
RIVER_STREAM = 2

# Per-octave domain offsets are drawn from [-OCTAVE_OFFSET, OCTAVE_OFFSET]
OCTAVE_OFFSET = 10.0


def normalize_seed(seed: int | bytes) -> int:
    """Convert a world seed to a non-negative integer.

    Byte strings are read big-endian.

    Raises:
        ValueError: If an integer seed is negative.
    """
    if isinstance(seed, (bytes, bytearray)):
        return int.from_bytes(seed, "big")
    if seed < 0:
        raise ValueError(f"Seed must be non-negative, got {seed}")
    return int(seed)


def seed_sequence(seed: int | bytes, *stream: int) -> np.random.SeedSequence:
    """Derive an independent SeedSequence for one consumer of randomness."""
    return np.random.SeedSequence(normalize_seed(seed), spawn_key=stream)


class NoiseChannel:
    """One fBm noise function, fixed at construction.

    Octave ``i`` samples an independent OpenSimplex generator at
    ``pos * frequency * lacunarity**i + offset_i`` with amplitude
    ``persistence**i``; amplitudes are normalized to sum to one, so values
    stay within [-1, 1].
    """

    def __init__(self, seed_seq: np.random.SeedSequence, config: FbmNoiseConfig):
        rng = np.random.default_rng(seed_seq)
        generator_seeds = rng.integers(0, 2**31, size=config.octaves)
        offsets = rng.uniform(-OCTAVE_OFFSET, OCTAVE_OFFSET, size=(config.octaves, 2))

        frequency = config.frequency
        amplitude = 1.0
        total_amplitude = 0.0
        octaves = []

        for i in range(config.octaves):
            octaves.append(
                (
                    OpenSimplex(seed=int(generator_seeds[i])),
                    frequency,
                    amplitude,
                    float(offsets[i, 0]),
                    float(offsets[i, 1]),
                )
            )
            total_amplitude += amplitude
            amplitude *= config.persistence
            frequency *= config.lacunarity

        self._octaves = tuple(
            (gen, freq, amp / total_amplitude, ox, oy)
            for gen, freq, amp, ox, oy in octaves
        )

    def sample(self, x: float, y: float) -> float:
        """Sample the channel at a continuous position, in [-1, 1]."""
        value = 0.0
        for gen, freq, amp, ox, oy in self._octaves:
            value += amp * gen.noise2(x * freq + ox, y * freq + oy)
        return value

    def sample_unit(self, x: float, y: float) -> float:
        """Sample the channel remapped to [0, 1]."""
        return min(max((self.sample(x, y) + 1.0) / 2.0, 0.0), 1.0)

    def field(
        self,
        width: int,
        height: int,
        step: float = 1.0,
        origin: float = 0.0,
        offset: tuple[float, float] = (0.0, 0.0),
    ) -> NDArray[np.float32]:
        """Evaluate the channel over an axis-aligned lattice.

        Cell ``(i, j)`` is sampled at ``(origin + j * step + offset[0],
        origin + i * step + offset[1])``, so ``field()[y, x]`` equals
        ``sample(x, y)`` for the default arguments.

        Args:
            width: Number of columns.
            height: Number of rows.
            step: Spacing between samples.
            origin: Coordinate of the first sample on both axes.
            offset: Extra (x, y) domain offset.

        Returns:
            2D float32 array of shape (height, width), values in [-1, 1].
        """
        xs = origin + np.arange(width, dtype=np.float64) * step + offset[0]
        ys = origin + np.arange(height, dtype=np.float64) * step + offset[1]

        result = np.zeros((height, width), dtype=np.float64)
        for gen, freq, amp, ox, oy in self._octaves:
            result += amp * gen.noise2array(xs * freq + ox, ys * freq + oy)

        return result.astype(np.float32)

    def field_unit(self, width: int, height: int, **kwargs) -> NDArray[np.float32]:
        """Evaluate the channel over a lattice, remapped to [0, 1]."""
        values = self.field(width, height, **kwargs)
        return np.clip((values + 1.0) / 2.0, 0.0, 1.0).astype(np.float32)


class NoiseBank:
    """Named noise channels for one world seed.

    Every channel derives its generators from the world seed and its own
    index in ``CHANNELS``, so sampling is a pure function of
    (seed, channel, x, y).
    """

    def __init__(self, seed: int | bytes, config: NoiseConfig):
        self.seed = normalize_seed(seed)
        self._channels = {
            name: NoiseChannel(
                seed_sequence(self.seed, NOISE_STREAM, index),
                getattr(config, name),
            )
            for index, name in enumerate(CHANNELS)
        }

    def channel(self, name: str) -> NoiseChannel:
        """Look up a channel by name.

        Raises:
            KeyError: If the channel does not exist.
        """
        try:
            return self._channels[name]
        except KeyError:
            raise KeyError(f"Unknown noise channel '{name}', expected one of {CHANNELS}") from None

    def sample(self, channel: str, x: float, y: float) -> float:
        """Sample a channel at a continuous position, in [-1, 1]."""
        return self.channel(channel).sample(x, y)

    def field(self, channel: str, width: int, height: int, **kwargs) -> NDArray[np.float32]:
        """Evaluate a channel over a lattice, in [-1, 1]."""
        return self.channel(channel).field(width, height, **kwargs)

    def field_unit(
        self, channel: str, width: int, height: int, **kwargs
    ) -> NDArray[np.float32]:
        """Evaluate a channel over a lattice, in [0, 1]."""
        return self.channel(channel).field_unit(width, height, **kwargs)


def domain_warp(
    field: NDArray[np.float32],
    warp_x: NDArray[np.float32],
    warp_y: NDArray[np.float32],
) -> NDArray[np.float32]:
    """Resample a field at offset coordinates for organic distortion.

    Args:
        field: Input 2D field to warp.
        warp_x: Per-cell x offset in cells.
        warp_y: Per-cell y offset in cells.

    Returns:
        Warped 2D field.
    """
    height, width = field.shape

    ys, xs = np.meshgrid(np.arange(height), np.arange(width), indexing="ij")

    warped_x = np.clip(xs + warp_x, 0, width - 1).astype(np.float64)
    warped_y = np.clip(ys + warp_y, 0, height - 1).astype(np.float64)

    # coordinates are in (row, col) order for map_coordinates
    coords = np.array([warped_y, warped_x])
    result = map_coordinates(field, coords, order=1, mode="nearest")

    return result.astype(np.float32)


def smoothstep(edge0: float, edge1: float, x: NDArray[np.float32]) -> NDArray[np.float32]:
    """Smooth Hermite interpolation between 0 and 1.

    A zero-width edge acts as a step at ``edge0``.

    Args:
        edge0: Lower edge of transition.
        edge1: Upper edge of transition.
        x: Input values.

    Returns:
        Smoothly interpolated values in [0, 1].
    """
    if edge1 == edge0:
        return (np.asarray(x) >= edge0).astype(np.float32)
    t = np.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)
