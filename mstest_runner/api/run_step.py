"""
POST /run-step
Runs one MSTest build step on the configured worker node and returns the
outcome with the build log.

The endpoint is synchronous: FastAPI runs it in its threadpool and the
response is sent when MSTest exits. Failed tests are a normal response
(success=false), not an HTTP error.

Environment: a local step inherits the service environment with the
request's env layered on top. A container step gets only the request's env,
so the container keeps its own PATH and HOME.

HTTP steps cannot be cancelled: each request gets its own node and nothing
outside the request holds its cancel_event.
"""
import os
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from mstest_runner.api.dependencies import get_docker_client, get_registry
from mstest_runner.core.config import DOCKER_NODE_CONTAINER, MSTEST_PATH_MAPPINGS
from mstest_runner.executor.mstest_builder import MsTestBuilder, run_step
from mstest_runner.executor.nodes import DockerNode, LocalNode, Node, parse_path_mappings
from mstest_runner.models.invocation_config import InvocationConfig
from mstest_runner.state.build_context import BuildContext
from mstest_runner.tools.registry import InstallationRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------
class RunStepRequest(InvocationConfig):
    env: Dict[str, str] = Field(default_factory=dict)              # Over the service env on local nodes only
    build_variables: Dict[str, str] = Field(default_factory=dict)
    workspace: Optional[str] = None                                # Defaults to the service cwd


class RunStepResponse(BaseModel):
    success: bool
    command: List[str]
    log: str
    log_excerpt: str
    execution_time_seconds: float


def get_node() -> Node:
    """Worker node for HTTP-triggered steps."""
    mappings = parse_path_mappings(MSTEST_PATH_MAPPINGS)
    if DOCKER_NODE_CONTAINER:
        return DockerNode.from_name(DOCKER_NODE_CONTAINER, client=get_docker_client(),
                                    path_mappings=mappings)
    return LocalNode(path_mappings=mappings)


def build_environment(node: Node, overrides: Dict[str, str]) -> Dict[str, str]:
    if isinstance(node, LocalNode):
        return {**os.environ, **overrides}
    return dict(overrides)


@router.post("/run-step", response_model=RunStepResponse)
def run_mstest_step(request: RunStepRequest,
                    registry: InstallationRegistry = Depends(get_registry)):
    try:
        node = get_node()
    except OSError as e:
        logger.error("Worker node unavailable: %s", e)
        raise HTTPException(status_code=503, detail=str(e))

    config = InvocationConfig(**request.model_dump(include=set(InvocationConfig.model_fields)))
    context = BuildContext(
        env=build_environment(node, request.env),
        build_variables=dict(request.build_variables),
        workspace=request.workspace or os.getcwd(),
        node=node,
    )

    logger.info(
        "Running MSTest step | tool=%s | node=%s | workspace=%s",
        config.mstest_name or "(default)", node.name, context.workspace,
    )
    result = run_step(MsTestBuilder(config, registry), context)

    return RunStepResponse(
        success=result.success,
        command=result.command,
        log=result.log,
        log_excerpt=result.log_excerpt,
        execution_time_seconds=result.execution_time_seconds,
    )
