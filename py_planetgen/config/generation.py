"""
Planet generation configuration.

Every tunable used by the generator and the field builders lives here,
grouped by subsystem:
- Plate placement, assignment and merging
- Boundary classification and distance falloff
- Continent and mountain shaping
- Wind, terrain deflection, temperature and precipitation
- Biome colouring

Configuration is an explicit value passed down the call chain; files are
read once with load_planet_config().
"""

import json
from pathlib import Path
from typing import List, Optional, Tuple, Union

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..utils.grid import face_grid_size

logger = structlog.get_logger()

RGB = Tuple[float, float, float]


class ConfigurationError(ValueError):
    """Raised when planet configuration is missing, unreadable or invalid."""


class _ConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class PlateConfig(_ConfigModel):
    """Plate placement, cell assignment and merging."""

    min_plate_distance: float = Field(
        default=0.5, gt=0.0, le=2.0, description="Minimum chord distance between major plate seeds"
    )
    relaxation_iterations: int = Field(default=50, ge=0, description="Maximum relaxation passes")
    micro_plate_weight: float = Field(default=2.7, gt=0.0, description="Score weight for microplates")
    micro_jitter: float = Field(default=0.1, ge=0.0, description="Per-axis jitter of microplate seeds")
    noise_frequency: float = Field(default=3.0, gt=0.0, description="Per-plate texture noise frequency")
    noise_amplitude: float = Field(default=0.7, ge=0.0, description="Per-plate texture noise amplitude")
    micro_frequency_scale: float = Field(default=1.5, gt=0.0, description="Microplate noise frequency multiplier")
    micro_amplitude_scale: float = Field(default=0.3, ge=0.0, description="Microplate noise amplitude multiplier")
    warp_frequency: float = Field(default=2.5, gt=0.0, description="Tangential boundary warp frequency")
    warp_strength: float = Field(default=0.15, ge=0.0, description="Tangential boundary warp multiplier")
    merge_probability: float = Field(default=0.3, ge=0.0, le=1.0, description="Chance a plate absorbs neighbours")
    merge_two_probability: float = Field(
        default=0.3, ge=0.0, le=1.0, description="Chance a merge absorbs two neighbours instead of one"
    )
    min_plate_speed: float = Field(default=0.2, ge=0.0, description="Minimum angular speed")
    max_plate_speed: float = Field(default=1.0, ge=0.0, description="Maximum angular speed")

    @model_validator(mode="after")
    def _check_speed_range(self):
        if self.max_plate_speed < self.min_plate_speed:
            raise ValueError("max_plate_speed must not be below min_plate_speed")
        return self


class BoundaryConfig(_ConfigModel):
    """Boundary classification thresholds and distance field extent."""

    min_threshold: float = Field(default=0.005, ge=0.0, description="Absolute convergence threshold")
    relative_threshold: float = Field(default=0.02, ge=0.0, description="Threshold relative to relative speed")
    min_width: int = Field(default=3, ge=0, description="Minimum distance field passes")
    width_fraction: float = Field(default=0.05, ge=0.0, description="Distance field passes as a grid fraction")
    color_max_distance: float = Field(default=10.0, gt=0.0, description="Distance at which boundary colour fades out")


class ContinentConfig(_ConfigModel):
    """Continent/ocean noise layers and height shaping."""

    continent_frequency: float = Field(default=1.2, gt=0.0, description="Continent layer frequency")
    continent_amplitude: float = Field(default=1.0, ge=0.0, description="Continent layer amplitude")
    distortion_frequency: float = Field(default=2.0, gt=0.0, description="Domain warp frequency")
    distortion_amplitude: float = Field(default=0.25, ge=0.0, description="Domain warp amplitude")
    detail_frequency: float = Field(default=6.0, gt=0.0, description="Detail layer frequency")
    detail_amplitude: float = Field(default=0.15, ge=0.0, description="Detail layer amplitude")
    continent_threshold: float = Field(default=0.05, gt=-1.0, lt=1.0, description="Land/ocean threshold")
    coastline_roughness: float = Field(default=0.3, ge=0.0, description="Detail contribution to the threshold")
    growth_range: float = Field(default=0.35, gt=0.0, description="Excess over threshold for full land height")
    land_base_height: float = Field(default=0.05, description="Height at the coastline")
    land_height: float = Field(default=0.6, ge=0.0, description="Additional height of fully grown land")
    ocean_depth_amplitude: float = Field(default=0.6, ge=0.0, description="Ocean floor depth")
    ocean_detail_factor: float = Field(default=0.3, ge=0.0, description="Detail contribution on the ocean floor")
    plate_noise_weight: float = Field(default=0.1, ge=0.0, description="Weight of per-plate texture noise")


class MountainConfig(_ConfigModel):
    """Uplift along convergent boundaries and rifts along divergent ones."""

    mountain_height: float = Field(default=0.8, ge=0.0, description="Peak uplift at convergent boundaries")
    mountain_width: float = Field(default=3.0, gt=0.0, description="Falloff distance in grid cells")
    rift_depth: float = Field(default=0.15, ge=0.0, description="Depression at divergent boundaries")
    ridge_frequency: float = Field(default=4.0, gt=0.0, description="Ridge variation noise frequency")
    ridge_noise_weight: float = Field(default=0.4, ge=0.0, le=1.0, description="Ridge variation strength")


class WindConfig(_ConfigModel):
    """Banded circulation model."""

    resolution: int = Field(default=64, ge=2, description="Cubemap resolution of atmospheric fields")
    meridional_speed: float = Field(default=3.0, ge=0.0, description="North/south wind speed")
    zonal_speed: float = Field(default=3.0, ge=0.0, description="East/west wind speed")
    turn_points: List[float] = Field(
        default=[0.0, 30.0, 60.0, 90.0], description="Latitude band edges in degrees"
    )
    signs: List[float] = Field(default=[-1.0, 1.0, -1.0, -1.0], description="Meridional direction per band edge")
    zonal_signs: List[float] = Field(default=[-1.0, 1.0, -1.0, -1.0], description="Zonal direction per band edge")

    @field_validator("turn_points")
    @classmethod
    def _check_turn_points(cls, value):
        if len(value) != 4:
            raise ValueError("turn_points needs exactly 4 latitudes")
        if any(b <= a for a, b in zip(value, value[1:])):
            raise ValueError("turn_points must be strictly increasing")
        return value

    @field_validator("signs", "zonal_signs")
    @classmethod
    def _check_signs(cls, value):
        if len(value) != 4:
            raise ValueError("sign curves need exactly 4 entries")
        return value


class WindDeflectionConfig(_ConfigModel):
    """Mountain influence on wind."""

    enabled: bool = Field(default=True, description="Deflect wind around high terrain")
    height_threshold: float = Field(default=0.3, description="Height where terrain starts to block wind")
    height_scale: float = Field(default=0.5, gt=0.0, description="Height range from no to full blocking")
    spread_radius: int = Field(default=3, ge=0, description="Influence spread passes")
    spread_decay: float = Field(default=0.6, ge=0.0, le=1.0, description="Influence kept per spread step")
    deflection_iterations: int = Field(default=2, ge=0, description="Deflection passes")
    deflection_strength: float = Field(default=0.7, ge=0.0, le=1.0, description="Blend towards deflected wind")


class TemperatureConfig(_ConfigModel):
    """Latitude temperature profile and advection."""

    equator_temp: float = Field(default=30.0, description="Temperature at the equator (°C)")
    pole_temp: float = Field(default=-20.0, description="Temperature at the poles (°C)")
    min_temp: float = Field(default=-30.0, description="Coldest colour stop (°C)")
    max_temp: float = Field(default=40.0, description="Warmest colour stop (°C)")
    advection_steps: int = Field(default=4, ge=0, description="Wind advection steps after the base build")
    advection_dt: float = Field(default=0.02, ge=0.0, description="Advection time step")


class PrecipitationConfig(_ConfigModel):
    """Precipitation weighting and smoothing."""

    temperature_weight: float = Field(default=0.5, ge=0.0, le=1.0, description="Cold air holds less moisture")
    ocean_weight: float = Field(default=0.6, ge=0.0, le=1.0, description="Influence of water availability")
    ocean_water: float = Field(default=0.5, ge=0.0, le=1.0, description="Water supplied by cold ocean")
    ocean_water_warmth: float = Field(default=0.5, ge=0.0, le=1.0, description="Extra ocean water at the equator")
    land_water: float = Field(default=0.2, ge=0.0, le=1.0, description="Water supplied by cold land")
    land_water_warmth: float = Field(default=0.1, ge=0.0, le=1.0, description="Extra land water at the equator")
    default_water: float = Field(default=0.5, ge=0.0, le=1.0, description="Water everywhere when no terrain is given")
    blur_passes: int = Field(default=15, ge=0, description="3x3 box blur passes")


class BiomeThresholds(_ConfigModel):
    """Climate thresholds that place biome centres."""

    ice_temp: float = -10.0
    tundra_temp: float = 0.0
    boreal_temp: float = 5.0
    temperate_temp: float = 15.0
    hot_temp: float = 20.0
    desert_precip: float = 0.15
    savanna_precip: float = 0.25
    jungle_precip: float = 0.45
    temperate_precip: float = 0.1


class BiomeColors(_ConfigModel):
    """RGB colours per biome, components in [0, 1]."""

    ice: RGB = (0.85, 0.90, 0.95)
    tundra: RGB = (0.55, 0.60, 0.50)
    desert: RGB = (0.82, 0.72, 0.45)
    savanna: RGB = (0.60, 0.65, 0.25)
    temperate: RGB = (0.15, 0.40, 0.10)
    jungle: RGB = (0.0, 0.2, 0.0)


class BiomeConfig(_ConfigModel):
    """Biome colouring of mesh vertices."""

    snow_threshold: float = Field(default=0.9, description="Height above which terrain is snow")
    snow_transition: float = Field(default=0.15, ge=0.0, le=1.0, description="Fraction of land height blended to snow")
    shore_width: float = Field(default=0.02, gt=0.0, description="Height band coloured as shore")
    land_temperature_bonus: float = Field(default=5.0, description="Extra warmth on land (°C)")
    thresholds: BiomeThresholds = Field(default_factory=BiomeThresholds)
    colors: BiomeColors = Field(default_factory=BiomeColors)


class PlanetGenerationSettings(_ConfigModel):
    """Per-planet generation knobs."""

    radius: float = Field(default=20.0, gt=0.0, description="Planet radius")
    cells_per_unit: float = Field(default=2.0, gt=0.0, description="Grid density")
    num_plates: int = Field(default=15, ge=1, description="Major plates")
    num_micro_plates: int = Field(default=5, ge=0, description="Microplates seeded on boundaries")
    seed: int = Field(default=42, ge=0, lt=2**64, description="Master seed")
    flow_warp_freq: float = Field(default=2.0, gt=0.0, description="Flow advection noise frequency")
    flow_warp_steps: int = Field(default=4, ge=0, description="Flow advection steps")
    flow_warp_step_angle: float = Field(default=0.05, ge=0.0, description="Rotation per flow step (radians)")
    continents: ContinentConfig = Field(default_factory=ContinentConfig)
    mountains: MountainConfig = Field(default_factory=MountainConfig)

    @property
    def face_grid_size(self) -> int:
        return face_grid_size(self.radius, self.cells_per_unit)


class PlanetConfig(_ConfigModel):
    """Root configuration object."""

    generation: PlanetGenerationSettings = Field(default_factory=PlanetGenerationSettings)
    plates: PlateConfig = Field(default_factory=PlateConfig)
    boundaries: BoundaryConfig = Field(default_factory=BoundaryConfig)
    wind: WindConfig = Field(default_factory=WindConfig)
    deflection: WindDeflectionConfig = Field(default_factory=WindDeflectionConfig)
    temperature: TemperatureConfig = Field(default_factory=TemperatureConfig)
    precipitation: PrecipitationConfig = Field(default_factory=PrecipitationConfig)
    biomes: BiomeConfig = Field(default_factory=BiomeConfig)


def load_planet_config(path: Union[str, Path]) -> PlanetConfig:
    """
    Load a planet configuration file.

    YAML (.yaml, .yml) and JSON (.json) are accepted. Missing sections and
    keys fall back to defaults; unknown keys are rejected.

    Args:
        path: Path to the configuration file

    Returns:
        Validated PlanetConfig

    Raises:
        ConfigurationError: If the file cannot be read, parsed or validated
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in (".yaml", ".yml", ".json"):
        raise ConfigurationError(f"Unsupported configuration format: {path.name}")

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e

    try:
        data = json.loads(text) if suffix == ".json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot parse configuration file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root must be a mapping in {path}")

    try:
        config = PlanetConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {path}:\n{e}") from e

    logger.info("Planet configuration loaded", path=str(path), sections=sorted(data))
    return config


def resolve_planet_config(config_file: Optional[Union[str, Path]] = None) -> PlanetConfig:
    """Load config_file when given, otherwise return defaults."""
    if config_file is None:
        return PlanetConfig()
    return load_planet_config(config_file)
