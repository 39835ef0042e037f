"""
Core planet generation functionality.
"""

from .cube_field import CubeField
from .plates import PlateGenerator, TectonicPlate
from .boundaries import BoundaryData, BoundaryType
from .continents import ContinentNoise
from .wind import MountainInfluenceMap, WindField
from .vertical_air import VerticalAirField
from .temperature import TemperatureField
from .precipitation import PrecipitationField
from .atmosphere import Atmosphere, build_atmosphere
from .planet import PlanetData, generate
from .mesh_data import MeshData, PlateArrowData, ViewMode, calculate_biome_colors, calculate_plate_arrows

__all__ = ['CubeField', 'PlateGenerator', 'TectonicPlate', 'BoundaryData', 'BoundaryType',
           'ContinentNoise', 'MountainInfluenceMap', 'WindField', 'VerticalAirField',
           'TemperatureField', 'PrecipitationField', 'Atmosphere', 'build_atmosphere',
           'PlanetData', 'generate', 'MeshData', 'PlateArrowData', 'ViewMode',
           'calculate_biome_colors', 'calculate_plate_arrows']
