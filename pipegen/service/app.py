"""FastAPI application entrypoint for pipegen service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import actions
from ..classifier import InaccessibleRootError
from ..config import GitHubConfig, PipegenConfig, load_operator_config
from ..github.client import GitHubClient, GitHubError
from ..models import TemplateRequest as TemplateSpec
from ..orchestrator import Orchestrator

T = TypeVar("T")


class PathRequest(BaseModel):
    path: str


class PipelineRequest(BaseModel):
    path: str
    user_request: str
    file_name: Optional[str] = None
    owner: Optional[str] = None
    repo: Optional[str] = None
    create_pull_request: bool = True
    dry_run: bool = False


class PipelineResponse(BaseModel):
    pipeline_content: str
    file_path: Optional[str] = None
    project_summary: Dict[str, Any]
    pull_request_created: bool
    branch_name: Optional[str] = None
    pull_request_url: Optional[str] = None
    used_fallback: bool


class TemplateRequest(BaseModel):
    prompt: str
    name: str
    title: str
    description: str = ""
    infrastructure_type: str = "infrastructure"
    workflow_repo: str = ""


class TemplateResponse(BaseModel):
    template_content: str
    workflow_content: str
    workflow_file_name: str
    parameters: List[str]
    used_fallback: bool


class FileWriteRequest(BaseModel):
    path: str
    content: str


class FileWriteResponse(BaseModel):
    file_path: str


class CacheBustRequest(BaseModel):
    template_name: str


class CacheBustResponse(BaseModel):
    cache_busted: bool


class DispatchRequest(BaseModel):
    repo_url: str
    workflow_path: str
    branch_or_tag_name: str
    workflow_inputs: Dict[str, Any] = Field(default_factory=dict)


class CreateWorkflowRequest(BaseModel):
    repo_url: str
    workflow_content: str
    workflow_file_name: str
    commit_message: str


class CreateWorkflowResponse(BaseModel):
    workflow_url: str


class StatusResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator(operator_config=load_operator_config())


def _default_github_client() -> GitHubClient:
    return _github_client(load_operator_config().github)


def _github_client(config: GitHubConfig) -> GitHubClient:
    token = config.resolve_token()
    if not token:
        raise GitHubError(f"GitHub token is required; set {config.token_env}")
    return GitHubClient(token, api_url=config.api_url)


async def _run_blocking(func: Callable[[], T]) -> T:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:  # pragma: no cover - fallback path when not in async context
        return func()
    return await loop.run_in_executor(None, func)


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
    *,
    github_client_factory: Callable[[], GitHubClient] = _default_github_client,
    workspace_root: Path | None = None,
) -> FastAPI:
    """Create the FastAPI application exposing pipegen operations."""

    app = FastAPI(title="pipegen service", version="1.0.0")
    root = (workspace_root or Path.cwd()).resolve()

    async def get_orchestrator() -> Orchestrator:
        # Lazy-instantiate per request to keep state predictable.
        return orchestrator_factory()

    @app.get("/health", response_model=StatusResponse)
    async def health() -> StatusResponse:
        return StatusResponse(status="ok")

    @app.post("/detect")
    async def detect(
        payload: PathRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Dict[str, Any]:
        profile = await _run_blocking(lambda: orchestrator.classifier.classify(payload.path))
        return profile.to_dict()

    @app.post("/pipelines", response_model=PipelineResponse)
    async def generate_pipeline(
        payload: PipelineRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> PipelineResponse:
        outcome = await _run_blocking(
            lambda: orchestrator.run_generate_pipeline(
                payload.path,
                payload.user_request,
                file_name=payload.file_name,
                owner=payload.owner,
                repo=payload.repo,
                create_pull_request=payload.create_pull_request,
                dry_run=payload.dry_run,
            )
        )
        return PipelineResponse(
            pipeline_content=outcome.pipeline_content,
            file_path=str(outcome.file_path) if outcome.file_path else None,
            project_summary=outcome.profile.to_dict(),
            pull_request_created=outcome.pull_request_created,
            branch_name=outcome.branch_name,
            pull_request_url=outcome.pull_request_url,
            used_fallback=outcome.used_fallback,
        )

    @app.post("/templates", response_model=TemplateResponse)
    async def generate_template(
        payload: TemplateRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> TemplateResponse:
        request = TemplateSpec(
            prompt=payload.prompt,
            name=payload.name,
            title=payload.title,
            description=payload.description,
            infrastructure_type=payload.infrastructure_type,
            workflow_repo=payload.workflow_repo,
        )
        outcome = await _run_blocking(lambda: orchestrator.run_generate_template(request))
        return TemplateResponse(
            template_content=outcome.result.template_content,
            workflow_content=outcome.result.workflow_content,
            workflow_file_name=outcome.result.workflow_file_name,
            parameters=outcome.parameters,
            used_fallback=outcome.used_fallback,
        )

    @app.post("/files", response_model=FileWriteResponse)
    async def write_file(payload: FileWriteRequest) -> FileWriteResponse:
        target = await _run_blocking(lambda: actions.write_file(root, payload.path, payload.content))
        return FileWriteResponse(file_path=str(target))

    @app.post("/cache-bust", response_model=CacheBustResponse)
    async def bust_cache(payload: CacheBustRequest) -> CacheBustResponse:
        await _run_blocking(lambda: actions.bust_template_cache(root, payload.template_name))
        return CacheBustResponse(cache_busted=True)

    @app.post("/workflows/dispatch", response_model=StatusResponse)
    async def dispatch_workflow(payload: DispatchRequest) -> StatusResponse:
        def _dispatch() -> None:
            actions.dispatch_workflow(
                github_client_factory(),
                payload.repo_url,
                payload.workflow_path,
                payload.branch_or_tag_name,
                payload.workflow_inputs,
            )

        await _run_blocking(_dispatch)
        return StatusResponse(status="dispatched")

    @app.post("/workflows", response_model=CreateWorkflowResponse)
    async def create_workflow(payload: CreateWorkflowRequest) -> CreateWorkflowResponse:
        url = await _run_blocking(
            lambda: actions.create_workflow(
                github_client_factory(),
                payload.repo_url,
                payload.workflow_content,
                payload.workflow_file_name,
                payload.commit_message,
            )
        )
        return CreateWorkflowResponse(workflow_url=url)

    @app.exception_handler(InaccessibleRootError)
    async def inaccessible_root_handler(
        _: Any, exc: InaccessibleRootError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(
        _: Any, exc: RuntimeError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(
        _: Any, exc: ValueError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1",
    port: int = 8000,
    *,
    operator_config: PipegenConfig | None = None,
) -> None:  # pragma: no cover - integration path
    try:
        import uvicorn
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install uvicorn`."
        ) from exc

    operator = operator_config or load_operator_config()
    app = create_app(
        lambda: Orchestrator(operator_config=operator),
        github_client_factory=lambda: _github_client(operator.github),
    )
    uvicorn.run(app, host=host, port=port)
