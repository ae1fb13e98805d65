"""
CrowdMesh Main Application
==========================

FastAPI entry point for the crowd density mesh editor.

A single ``MeshEngine`` owns the mesh. Every request runs one engine
command to completion and answers with its outcome and the resulting
snapshot; there is no background processing.

Endpoints:
    GET    /                  - Service information
    GET    /health            - Liveness probe
    GET    /mesh              - Current mesh snapshot
    POST   /mesh/reset        - Load an explicit scene
    POST   /mesh/random       - Load a random scene
    GET    /mesh/hit          - Hit test at ?x=&y=
    POST   /edges             - Add an edge
    DELETE /edges/{a}/{b}     - Remove an edge
    PUT    /vertices/{id}     - Move a vertex
    POST   /people            - Add a person at a position
    POST   /people/random     - Add a person at a random free position
    DELETE /people            - Remove all people
    DELETE /people/{id}       - Remove one person
    PUT    /people/{id}       - Move a person
    POST   /obstacle/rotate   - Rotate the obstacle
    POST   /obstacle/scale    - Scale the obstacle
    PUT    /density/target    - Change the target density

Rejected edits answer 409 (404 for unknown vertices and people) with the
unchanged snapshot.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from crowdmesh import __version__
from crowdmesh.config import settings
from crowdmesh.engine import MeshEngine, SimulationLayout
from crowdmesh.models.geometry import MeshDefinition
from crowdmesh.models.input import (
    AddEdgeRequest,
    PositionRequest,
    RotateObstacleRequest,
    ScaleObstacleRequest,
    TargetDensityRequest,
)
from crowdmesh.models.output import EditResult
from crowdmesh.models.reason_codes import RejectionReason


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_engine: Optional[MeshEngine] = None
_startup_time: float = 0.0

NOT_FOUND_REASONS = {
    RejectionReason.UNKNOWN_VERTEX,
    RejectionReason.UNKNOWN_PERSON,
}


# =============================================================================
# Getters
# =============================================================================

def get_engine() -> MeshEngine:
    if _engine is None:
        raise RuntimeError("Mesh engine not initialized")
    return _engine


# =============================================================================
# Engine Factory
# =============================================================================

def create_mesh_engine() -> MeshEngine:
    """Create a mesh engine from the loaded settings."""
    return MeshEngine(
        target_density=settings.density.target,
        min_scale_factor=settings.obstacle.min_scale_factor,
        max_scale_factor=settings.obstacle.max_scale_factor,
        rotation_step_degrees=settings.obstacle.rotation_step_degrees,
        containment=settings.obstacle.containment,
        person_edge_buffer=settings.people.edge_buffer,
        placement_margin=settings.people.placement_margin,
        max_placement_attempts=settings.people.max_placement_attempts,
        vertex_pick_radius=settings.picking.vertex_radius,
        edge_pick_radius=settings.picking.edge_radius,
        person_pick_radius=settings.picking.person_radius,
        seed=settings.simulation.seed,
    )


def simulation_layout() -> SimulationLayout:
    """Random scene parameters from the loaded settings."""
    return SimulationLayout(
        canvas_width=settings.mesh.canvas_width,
        canvas_height=settings.mesh.canvas_height,
        padding=settings.mesh.padding,
        inner_point_count=settings.mesh.inner_point_count,
        interior_margin=settings.mesh.interior_margin,
        obstacle_width=settings.mesh.obstacle_width,
        obstacle_height=settings.mesh.obstacle_height,
        people_count=settings.people.initial_count,
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the engine and load a random scene on startup."""
    global _engine, _startup_time

    _startup_time = time.time()
    logger.info(f"Starting CrowdMesh {__version__}")

    _engine = create_mesh_engine()
    _engine.init_simulation(simulation_layout())

    logger.info(f"Initial mesh ready: {_engine.snapshot().counts}")

    yield

    logger.info("Shutdown complete")
    _engine = None


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="CrowdMesh",
    description="Interactive planar mesh editor with crowd density classification",
    version=__version__,
    lifespan=lifespan,
)


def _respond(result: EditResult) -> JSONResponse:
    """Wrap an edit outcome and the current snapshot in a response."""
    if result.accepted:
        status_code = 200
    elif result.reason in NOT_FOUND_REASONS:
        status_code = 404
    else:
        status_code = 409

    return JSONResponse(
        {
            "result": result.model_dump(mode="json"),
            "snapshot": get_engine().snapshot().model_dump(mode="json"),
        },
        status_code=status_code,
    )


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "CrowdMesh",
        "version": __version__,
        "status": "running",
        "target_density": settings.density.target,
        "containment": settings.obstacle.containment,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/mesh")
async def mesh() -> JSONResponse:
    """Current mesh snapshot."""
    snapshot = get_engine().snapshot()
    return JSONResponse(snapshot.model_dump(mode="json"))


@app.post("/mesh/reset")
async def reset_mesh(definition: MeshDefinition) -> JSONResponse:
    """Replace the mesh with an explicit scene."""
    try:
        result = get_engine().reset(definition)
    except ValueError as e:
        logger.warning(f"Invalid scene: {e}")
        return JSONResponse({"error": str(e)}, status_code=422)
    return _respond(result)


@app.post("/mesh/random")
async def random_mesh() -> JSONResponse:
    """Replace the mesh with a random scene."""
    try:
        result = get_engine().init_simulation(simulation_layout())
    except ValueError as e:
        logger.error(f"Random layout failed: {e}")
        return JSONResponse({"error": str(e)}, status_code=503)
    return _respond(result)


@app.get("/mesh/hit")
async def hit(x: float, y: float) -> JSONResponse:
    """Hit test: vertex, then person, then edge, then obstacle."""
    selection = get_engine().hit_test(x, y)
    return JSONResponse(selection.model_dump(mode="json"))


@app.post("/edges")
async def add_edge(request: AddEdgeRequest) -> JSONResponse:
    return _respond(get_engine().add_edge(request.a, request.b))


@app.delete("/edges/{a}/{b}")
async def remove_edge(a: int, b: int) -> JSONResponse:
    return _respond(get_engine().remove_edge(a, b))


@app.put("/vertices/{vertex_id}")
async def move_vertex(vertex_id: int, request: PositionRequest) -> JSONResponse:
    return _respond(get_engine().move_vertex(vertex_id, request.x, request.y))


@app.post("/people")
async def add_person(request: PositionRequest) -> JSONResponse:
    return _respond(get_engine().add_person(request.x, request.y))


@app.post("/people/random")
async def add_random_person() -> JSONResponse:
    return _respond(get_engine().add_random_person())


@app.delete("/people")
async def clear_people() -> JSONResponse:
    return _respond(get_engine().clear_people())


@app.delete("/people/{person_id}")
async def remove_person(person_id: int) -> JSONResponse:
    return _respond(get_engine().remove_person(person_id))


@app.put("/people/{person_id}")
async def move_person(person_id: int, request: PositionRequest) -> JSONResponse:
    return _respond(get_engine().move_person(person_id, request.x, request.y))


@app.post("/obstacle/rotate")
async def rotate_obstacle(request: RotateObstacleRequest) -> JSONResponse:
    return _respond(get_engine().rotate_obstacle(request.delta_degrees))


@app.post("/obstacle/scale")
async def scale_obstacle(request: ScaleObstacleRequest) -> JSONResponse:
    delta = request.delta if request.delta is not None else settings.obstacle.scale_step
    return _respond(get_engine().scale_obstacle(delta))


@app.put("/density/target")
async def set_target_density(request: TargetDensityRequest) -> JSONResponse:
    return _respond(get_engine().set_target_density(request.value))


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    # Cloud Run uses PORT env var
    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "crowdmesh.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
