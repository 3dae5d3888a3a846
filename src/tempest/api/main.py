import logging
import time
from contextlib import asynccontextmanager
from typing import Dict, List, Optional
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from tempest.controller import LoadTestController
from tempest.models import ConfigValidationError, TestConfig

logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SecurityOptionsBody(CamelModel):
    endpoint_scanning: bool = False
    brute_force: bool = False
    random_headers: bool = False
    error_inducing: bool = False


class StartTestRequest(CamelModel):
    target_url: str = ""
    http_method: str = "GET"
    headers: Dict[str, str] = {}
    body: Optional[str] = None
    start_rps: float = 1.0
    max_rps: float = 10.0
    duration: float = 60.0
    worker_count: int = 0
    attack_pattern: str = "sustained"
    security_options: Optional[SecurityOptionsBody] = None


class StatusResponse(CamelModel):
    is_running: bool
    total_requests: int
    success_requests: int
    failed_requests: int
    current_rps: float
    errors: Dict[str, int]
    start_time: float
    elapsed: int
    last_response_code: Optional[int] = None
    recent_logs: List[str]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Tempest control API...")
    app.state.controller = LoadTestController()
    yield
    logger.info("Shutting down Tempest control API...")
    await app.state.controller.shutdown()


def get_controller(request: Request) -> LoadTestController:
    return request.app.state.controller


app = FastAPI(
    title="Tempest API",
    description="Control surface for rate-shaped HTTP load tests",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/api/test/start")
async def start_test(body: StartTestRequest, request: Request):
    try:
        config = TestConfig.from_dict(body.model_dump())
    except ConfigValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    get_controller(request).start(config)
    return {"message": "Load test started", "config": body.model_dump(by_alias=True)}


@app.post("/api/test/stop")
async def stop_test(request: Request):
    get_controller(request).stop()
    return {"message": "Load test stopped"}


@app.get("/api/test/status", response_model=StatusResponse)
async def test_status(request: Request):
    snapshot = get_controller(request).get_status()
    return StatusResponse(**snapshot.to_dict())


# Lightweight target for self-testing
@app.get("/api/target")
async def target():
    return {"message": "Target Hit", "timestamp": int(time.time() * 1000)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3000)
