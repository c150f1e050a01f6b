"""FastAPI application assembly."""

from __future__ import annotations

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cutover_planner import __version__
from cutover_planner.api.routers import plan, snapshots, tasks
from cutover_planner.config import Settings, get_settings
from cutover_planner.services.planner import PlanGenerator

load_dotenv()


def create_app(settings: Settings | None = None, planner: PlanGenerator | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Cutover Planner API",
        description="Task persistence, Gantt view rows and AI plan generation for cutover plans.",
        version=__version__,
    )
    app.state.settings = settings
    app.state.planner = planner or PlanGenerator(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten for prod
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok", "version": __version__}

    app.include_router(tasks.router)
    app.include_router(snapshots.router)
    app.include_router(plan.router)
    return app


app = create_app()
