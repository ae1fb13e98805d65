"""
CrowdMesh Configuration
=======================

This module handles configuration loading for the mesh engine and its
HTTP adapter.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    CROWDMESH_TARGET_DENSITY -> density.target
    CROWDMESH_INNER_POINTS   -> mesh.inner_point_count
    CROWDMESH_INITIAL_PEOPLE -> people.initial_count
    CROWDMESH_MIN_SCALE      -> obstacle.min_scale_factor
    CROWDMESH_MAX_SCALE      -> obstacle.max_scale_factor
    CROWDMESH_CONTAINMENT    -> obstacle.containment
    CROWDMESH_SEED           -> simulation.seed
    CROWDMESH_PORT           -> server.port
    CROWDMESH_LOG_LEVEL      -> logging.level
    PORT                     -> server.port (Cloud Run)

Example:
    from crowdmesh.config import settings

    print(settings.density.target)
    print(settings.obstacle.max_scale_factor)
"""

import os
import logging
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, model_validator


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class MeshConfig(BaseModel):
    """Scene layout used by random initialisation."""

    canvas_width: float = Field(default=800.0, gt=0, description="Canvas width in pixels")
    canvas_height: float = Field(default=600.0, gt=0, description="Canvas height in pixels")
    padding: float = Field(
        default=40.0,
        ge=0,
        description="Inset of the boundary rectangle from the canvas edge",
    )
    bbox_point_count: Literal[4] = Field(default=4, description="Boundary corners (fixed)")
    inner_point_count: int = Field(default=12, ge=0, description="Random interior points")
    obstacle_point_count: Literal[4] = Field(default=4, description="Obstacle corners (fixed)")
    obstacle_width: float = Field(default=100.0, gt=0, description="Obstacle width in pixels")
    obstacle_height: float = Field(default=70.0, gt=0, description="Obstacle height in pixels")
    interior_margin: float = Field(
        default=50.0,
        ge=0,
        description="Minimum distance of random interior points from the boundary",
    )


class PeopleConfig(BaseModel):
    """People placement configuration."""

    initial_count: int = Field(default=20, ge=0, description="People placed on initialisation")
    edge_buffer: float = Field(
        default=5.0,
        ge=0,
        description="Minimum distance of a randomly placed person from any edge",
    )
    placement_margin: float = Field(
        default=20.0,
        ge=0,
        description="Minimum distance of a randomly placed person from the boundary",
    )
    max_placement_attempts: int = Field(
        default=1000,
        ge=1,
        description="Random tries before a placement gives up",
    )


class ObstacleConfig(BaseModel):
    """Obstacle transform limits."""

    min_scale_factor: float = Field(default=0.5, gt=0, le=1.0, description="Lower scale bound")
    max_scale_factor: float = Field(default=1.5, ge=1.0, description="Upper scale bound")
    rotation_step_degrees: float = Field(default=15.0, description="Default rotation step")
    scale_step: float = Field(default=0.1, gt=0, description="Default scale step")
    containment: Literal["exact", "bounding_box"] = Field(
        default="exact",
        description="Inside-obstacle test: exact polygon or axis-aligned bounding box",
    )

    @model_validator(mode="after")
    def validate_bounds(self) -> "ObstacleConfig":
        if self.min_scale_factor > self.max_scale_factor:
            raise ValueError("min_scale_factor must not exceed max_scale_factor")
        return self


class DensityConfig(BaseModel):
    """Density classification configuration."""

    target: int = Field(default=4, ge=0, description="Optimal people per triangle")


class PickingConfig(BaseModel):
    """Hit-test radii in pixels."""

    vertex_radius: float = Field(default=15.0, gt=0, description="Vertex pick radius")
    edge_radius: float = Field(default=10.0, gt=0, description="Edge pick radius")
    person_radius: float = Field(default=10.0, gt=0, description="Person pick radius")


class SimulationConfig(BaseModel):
    """Random layout configuration."""

    seed: Optional[int] = Field(
        default=None,
        description="Seed for random layouts (None = nondeterministic)",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for CrowdMesh.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    mesh: MeshConfig = Field(default_factory=MeshConfig)
    people: PeopleConfig = Field(default_factory=PeopleConfig)
    obstacle: ObstacleConfig = Field(default_factory=ObstacleConfig)
    density: DensityConfig = Field(default_factory=DensityConfig)
    picking: PickingConfig = Field(default_factory=PickingConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    # Find config file
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Mesh and people
    if env_inner := os.environ.get("CROWDMESH_INNER_POINTS"):
        config_data.setdefault("mesh", {})["inner_point_count"] = int(env_inner)
    if env_people := os.environ.get("CROWDMESH_INITIAL_PEOPLE"):
        config_data.setdefault("people", {})["initial_count"] = int(env_people)

    # Obstacle
    if env_min := os.environ.get("CROWDMESH_MIN_SCALE"):
        config_data.setdefault("obstacle", {})["min_scale_factor"] = float(env_min)
    if env_max := os.environ.get("CROWDMESH_MAX_SCALE"):
        config_data.setdefault("obstacle", {})["max_scale_factor"] = float(env_max)
    if env_containment := os.environ.get("CROWDMESH_CONTAINMENT"):
        config_data.setdefault("obstacle", {})["containment"] = env_containment

    # Density
    if env_target := os.environ.get("CROWDMESH_TARGET_DENSITY"):
        config_data.setdefault("density", {})["target"] = int(env_target)

    # Simulation
    if env_seed := os.environ.get("CROWDMESH_SEED"):
        config_data.setdefault("simulation", {})["seed"] = int(env_seed)

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("CROWDMESH_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("CROWDMESH_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
