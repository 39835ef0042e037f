"""
Example generating a planet with its atmosphere and render buffers.

Usage:
    python examples/planet_demo.py [config.yaml]
"""

import sys

import numpy as np
from py_planetgen.config import get_settings, resolve_planet_config
from py_planetgen.core import (
    MeshData, ViewMode, build_atmosphere, calculate_biome_colors,
    calculate_plate_arrows, generate
)
from py_planetgen.utils.logging import configure_logging


def main():
    settings = get_settings()
    configure_logging(settings)

    # Command line file wins over PLANETGEN_CONFIG_FILE
    config_file = sys.argv[1] if len(sys.argv) > 1 else settings.config_file
    config = resolve_planet_config(config_file)

    planet = generate(config=config)
    heights = planet.heightmaps

    print(f"Grid: 6 faces x {planet.face_grid_size}^2 points, radius {planet.radius}")
    print(f"Plates: {len(planet.plates)} (from {planet.initial_plate_count} before merging)")
    print(f"Height range: {heights.min():.3f} to {heights.max():.3f}")
    print(f"Land fraction: {np.mean(heights > 0.0) * 100:.1f}%")

    print("\nBoundary cells:")
    for boundary_type, count in planet.boundary_data.type_counts().items():
        print(f"  {boundary_type.name.title()}: {count}")

    atmosphere = build_atmosphere(planet, config)
    temps = atmosphere.temperature.temperatures.values
    rain = atmosphere.precipitation.values.values
    print(f"\nTemperature range: {temps.min():.1f}°C to {temps.max():.1f}°C")
    print(f"Average precipitation: {rain.mean():.3f}")

    mesh = MeshData.from_planet(planet, ViewMode.CONTINENTS, config.biomes)
    biome_mesh = mesh.with_colors(
        calculate_biome_colors(
            mesh.positions, planet.radius, atmosphere.temperature,
            atmosphere.precipitation, config.biomes
        )
    )
    arrows = calculate_plate_arrows(planet)

    print(f"\nMesh: {biome_mesh.vertex_count} vertices, {len(biome_mesh.indices) // 3} triangles")
    print(f"Plate arrows: {len(arrows)}")


if __name__ == "__main__":
    main()
