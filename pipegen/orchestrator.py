"""Pipeline orchestration for workflow and template generation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from .classifier import RepoClassifier
from .config import PipegenConfig, load_config, load_operator_config, merge_operator_settings
from .failsafe import build_fallback, build_pipeline_fallback
from .github.client import GitHubClient
from .github.publisher import WORKFLOW_DIR, Publisher, workflow_path
from .llm.runner import LLMRunner
from .logging import format_preview, get_logger
from .models import (
    FallbackResult,
    GenerationResult,
    PipelineOutcome,
    ProjectProfile,
    StructuredResult,
    TemplateOutcome,
    TemplateRequest,
    workflow_text,
)
from .postproc.sanitizer import ResponseSanitizer
from .postproc.security import SecretPolicy
from .prompting.builder import PromptBuilder

TEMPLATE_TEMPERATURE = 0.1
TEMPLATE_MAX_TOKENS = 4000


class Orchestrator:
    """Coordinates detect, prompt, generate, sanitize, fallback and publish."""

    def __init__(
        self,
        classifier: RepoClassifier | None = None,
        prompt_builder: PromptBuilder | None = None,
        llm_runner: LLMRunner | None = None,
        sanitizer: ResponseSanitizer | None = None,
        publisher: Publisher | None = None,
        *,
        config: PipegenConfig | None = None,
        operator_config: PipegenConfig | None = None,
        runner_factory: Callable[[PipegenConfig], LLMRunner] | None = None,
    ) -> None:
        self.classifier = classifier or RepoClassifier()
        self._prompt_builder = prompt_builder
        self._llm_runner = llm_runner
        self._sanitizer = sanitizer
        self._publisher = publisher
        self._config = config
        self._operator_config = operator_config
        self._runner_factory = runner_factory or (lambda cfg: LLMRunner.from_config(cfg.llm))
        self.logger = get_logger("orchestrator")

    def run_generate_pipeline(
        self,
        path: str | Path,
        user_request: str,
        *,
        file_name: str | None = None,
        owner: str | None = None,
        repo: str | None = None,
        create_pull_request: bool = True,
        dry_run: bool = False,
    ) -> PipelineOutcome:
        """Generate a workflow for the repository at ``path`` and publish it."""
        repo_path = Path(path).expanduser().resolve()
        self.logger.info("Analyzing project structure in %s", repo_path)
        profile = self.classifier.classify(repo_path)
        self.logger.info(
            "Detected %s project%s",
            profile.type,
            f" ({profile.framework})" if profile.framework else "",
        )

        config = self._load_config(repo_path)
        builder = self._resolve_prompt_builder(config)
        sanitizer = self._resolve_sanitizer(builder)
        runner = self._resolve_llm_runner(config)
        target_name = file_name or config.publish.file_name
        workflow_file = _workflow_file(repo_path, target_name)

        repository_url = f"https://github.com/{owner}/{repo}" if owner and repo else None
        prompts = builder.build(profile, user_request, repository_url)

        result: GenerationResult
        try:
            raw = runner.generate(prompts)
        except Exception as exc:
            self._log_exception("Pipeline generation failed; using fallback workflow", exc)
            result = build_pipeline_fallback(profile, target_name, reason=str(exc))
        else:
            result = sanitizer.sanitize(raw)
            if isinstance(result, FallbackResult):
                self.logger.warning(
                    "Model output could not be used (%s); using fallback workflow",
                    result.reason or "unknown reason",
                )
                result = build_pipeline_fallback(profile, target_name, reason=result.reason)

        content = workflow_text(result)
        self.logger.debug("Generated pipeline preview:\n%s", format_preview(content))

        outcome = PipelineOutcome(result=result, profile=profile, file_path=None)
        if dry_run:
            self.logger.info("Dry run: %s not written", f"{WORKFLOW_DIR}/{target_name}")
            return outcome

        publisher = self._resolve_publisher(config)
        outcome.file_path = publisher.write_file(workflow_file, content)
        self.logger.info("Pipeline saved to %s", outcome.file_path)

        if not (create_pull_request and config.publish.create_pull_request):
            return outcome
        if not (owner and repo):
            self.logger.warning("Pull request creation skipped: missing owner or repo")
            return outcome

        published = publisher.publish_pr(
            owner,
            repo,
            content=content,
            file_name=target_name,
            profile=profile,
            user_request=user_request,
        )
        outcome.pull_request_created = published.created
        outcome.branch_name = published.branch_name
        outcome.pull_request_url = published.pull_request_url
        return outcome

    def run_generate_template(
        self,
        request: TemplateRequest,
        *,
        profile: ProjectProfile | None = None,
    ) -> TemplateOutcome:
        """Generate a scaffolder template and its dispatch workflow."""
        config = self._load_config(Path.cwd())
        builder = self._resolve_prompt_builder(config)
        sanitizer = self._resolve_sanitizer(builder)
        runner = self._resolve_llm_runner(config)
        prompts = builder.build_template_prompt(request)

        result: GenerationResult
        try:
            raw = runner.generate(
                prompts,
                temperature=TEMPLATE_TEMPERATURE,
                max_tokens=TEMPLATE_MAX_TOKENS,
            )
        except Exception as exc:
            self._log_exception("Template generation failed; using fallback template", exc)
            result = self._template_fallback(request, profile, str(exc))
        else:
            result = sanitizer.sanitize(raw)

        if not isinstance(result, (StructuredResult, FallbackResult)):
            self.logger.warning("Model returned plain YAML instead of a JSON envelope; using fallback template")
            result = self._template_fallback(request, profile, "Response was not a JSON envelope")
        elif isinstance(result, FallbackResult):
            self.logger.warning("Using fallback template: %s", result.reason or "unknown reason")
            result = self._template_fallback(request, profile, result.reason)

        self.logger.debug("Generated template preview:\n%s", format_preview(result.template_content))
        return TemplateOutcome(result=result, parameters=list(result.parameters))

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    def _template_fallback(
        request: TemplateRequest,
        profile: ProjectProfile | None,
        reason: Optional[str],
    ) -> FallbackResult:
        return build_fallback(
            profile,
            request.name,
            request.title,
            request.description,
            request.infrastructure_type,
            request.workflow_repo,
            reason=reason,
        )

    def _load_config(self, repo_path: Path) -> PipegenConfig:
        if self._config is not None:
            return self._config
        if self._operator_config is None:
            self._operator_config = load_operator_config()
        return merge_operator_settings(load_config(repo_path), self._operator_config)

    def _resolve_prompt_builder(self, config: PipegenConfig) -> PromptBuilder:
        if self._prompt_builder is not None:
            return self._prompt_builder
        return PromptBuilder(
            secrets=config.prompt.secrets or None,
            actions=config.prompt.actions or None,
        )

    def _resolve_sanitizer(self, builder: PromptBuilder) -> ResponseSanitizer:
        if self._sanitizer is not None:
            return self._sanitizer
        return ResponseSanitizer(policy=SecretPolicy(builder.secrets.keys()))

    def _resolve_llm_runner(self, config: PipegenConfig) -> LLMRunner:
        if self._llm_runner is None:
            self._llm_runner = self._runner_factory(config)
        return self._llm_runner

    def _resolve_publisher(self, config: PipegenConfig) -> Publisher:
        if self._publisher is not None:
            return self._publisher
        token = config.github.resolve_token()
        client = GitHubClient(token, api_url=config.github.api_url) if token else None
        return Publisher(
            client,
            base_branch=config.publish.base_branch,
            branch_prefix=config.publish.branch_prefix,
        )

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.warning("%s: %s", message, exc)


def _workflow_file(repo_path: Path, file_name: str) -> Path:
    workflows = (repo_path / WORKFLOW_DIR).resolve()
    target = (repo_path / workflow_path(file_name)).resolve()
    if target.parent != workflows:
        raise ValueError(f"Workflow file must live directly under {WORKFLOW_DIR}: {file_name!r}")
    return target


__all__ = ["Orchestrator", "TEMPLATE_MAX_TOKENS", "TEMPLATE_TEMPERATURE"]
