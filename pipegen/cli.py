"""CLI entrypoints for pipegen commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .classifier import InaccessibleRootError, RepoClassifier
from .config import ConfigError, load_operator_config
from .logging import configure_logging
from .models import TemplateRequest
from .orchestrator import Orchestrator


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pipegen",
        description="Generate GitHub Actions workflows and scaffolder templates from repository analysis.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log records to this file.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Operator configuration file (defaults to $PIPEGEN_CONFIG). Model endpoints and credential variables are only read from here.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    detect_parser = subparsers.add_parser(
        "detect",
        help="Print the detected project profile as JSON.",
    )
    _add_verbose_option(detect_parser, suppress_default=True)
    _add_path_argument(detect_parser)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate a GitHub Actions workflow for a repository.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_path_argument(generate_parser)
    generate_parser.add_argument(
        "--request",
        required=True,
        help="Natural-language description of the pipeline to generate.",
    )
    generate_parser.add_argument(
        "--file-name",
        default=None,
        help="Workflow file name under .github/workflows (defaults to generated-pipeline.yml).",
    )
    generate_parser.add_argument("--owner", default=None, help="GitHub repository owner.")
    generate_parser.add_argument("--repo", default=None, help="GitHub repository name.")
    generate_parser.add_argument(
        "--no-pr",
        action="store_true",
        help="Write the workflow locally without opening a pull request.",
    )
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the workflow without writing or publishing it.",
    )

    template_parser = subparsers.add_parser(
        "template",
        help="Generate a scaffolder template and the workflow it dispatches.",
    )
    _add_verbose_option(template_parser, suppress_default=True)
    template_parser.add_argument("--prompt", required=True, help="What the template should provision.")
    template_parser.add_argument("--name", required=True, help="Template name (also the workflow file stem).")
    template_parser.add_argument("--title", required=True, help="Human-readable template title.")
    template_parser.add_argument("--description", default="", help="Template description.")
    template_parser.add_argument(
        "--infra",
        default="infrastructure",
        help="Infrastructure type used as a template tag.",
    )
    template_parser.add_argument(
        "--workflow-repo",
        default="",
        help="owner/repo hosting the dispatched workflow.",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for pipegen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command in {"generate", "template", "serve"}:
        try:
            operator_config = load_operator_config(args.config)
        except ConfigError as exc:
            parser.exit(1, f"pipegen configuration error: {exc}\n")

    if args.command == "detect":
        try:
            profile = RepoClassifier().classify(args.path)
        except InaccessibleRootError as exc:
            parser.exit(1, f"{exc}\n")
        print(json.dumps(profile.to_dict(), indent=2))
    elif args.command == "generate":
        orchestrator = Orchestrator(operator_config=operator_config)
        try:
            outcome = orchestrator.run_generate_pipeline(
                args.path,
                args.request,
                file_name=args.file_name,
                owner=args.owner,
                repo=args.repo,
                create_pull_request=not args.no_pr,
                dry_run=bool(args.dry_run),
            )
        except InaccessibleRootError as exc:
            parser.exit(1, f"{exc}\n")
        except ConfigError as exc:
            parser.exit(1, f"pipegen configuration error: {exc}\n")
        if outcome.used_fallback:
            print("Model output was unavailable; a fallback workflow was used.", file=sys.stderr)
        if outcome.file_path is None:
            print(outcome.pipeline_content, end="")
        else:
            print(f"Pipeline saved to {_relativize(outcome.file_path)}")
            if outcome.pull_request_url:
                print(f"Pull request: {outcome.pull_request_url}")
    elif args.command == "template":
        orchestrator = Orchestrator(operator_config=operator_config)
        request = TemplateRequest(
            prompt=args.prompt,
            name=args.name,
            title=args.title,
            description=args.description,
            infrastructure_type=args.infra,
            workflow_repo=args.workflow_repo,
        )
        try:
            template = orchestrator.run_generate_template(request)
        except ConfigError as exc:
            parser.exit(1, f"pipegen configuration error: {exc}\n")
        result = template.result
        print(
            json.dumps(
                {
                    "templateContent": result.template_content,
                    "workflowContent": result.workflow_content,
                    "workflowFileName": result.workflow_file_name,
                    "parameters": template.parameters,
                    "usedFallback": template.used_fallback,
                },
                indent=2,
            )
        )
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port, operator_config=operator_config)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
