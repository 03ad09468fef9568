from __future__ import annotations

import asyncio
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from cipherstudio import config
from cipherstudio.api.repository import ProjectRepository

load_dotenv()

logger = logging.getLogger(__name__)


class SaveProjectRequest(BaseModel):
    projectId: str
    projectName: str = "Untitled"
    files: dict[str, str] = Field(default_factory=dict)


def create_app(repository: ProjectRepository | None = None) -> FastAPI:
    repo = repository or ProjectRepository(config.api_data_dir())
    app = FastAPI(title="CipherStudio Project API", version="1.0.0")

    @app.get("/healthz")
    async def healthz() -> dict:
        return {"ok": True}

    @app.post("/api/projects")
    async def save_project(req: SaveProjectRequest) -> dict:
        try:
            record = await asyncio.to_thread(
                repo.upsert, req.projectId, req.projectName, req.files
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except OSError:
            logger.exception("Failed to persist project %s", req.projectId)
            raise HTTPException(status_code=500, detail="storage_error")
        return {"project": record}

    @app.get("/api/projects/{project_id}")
    async def load_project(project_id: str) -> dict:
        record = await asyncio.to_thread(repo.get, project_id)
        if record is None:
            raise HTTPException(status_code=404, detail="not_found")
        return record

    return app


app = create_app()
