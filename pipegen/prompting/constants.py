"""Shared constants for workflow prompting and fallbacks."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from ..models import PackageManager, ProjectType

DEFAULT_SECRETS: Dict[str, str] = {
    "GCP_PROJECT_ID": "Google Cloud Project ID",
    "GCP_REGION": "Google Cloud Region",
    "GCP_SA_KEY": "Google Cloud Service Account Key",
    "OPENWEATHER_API_KEY": "OpenWeather API Key",
}

PINNED_ACTIONS: Dict[str, str] = {
    "actions/checkout@v4": "code checkout",
    "actions/setup-node@v4": "Node.js setup",
    "actions/setup-python@v5": "Python setup",
    "actions/setup-java@v4": "Java setup",
    "actions/setup-go@v5": "Go setup",
    "actions/setup-dotnet@v4": ".NET setup",
    "pnpm/action-setup@v4": "pnpm installation",
    "google-github-actions/auth@v2": "Google Cloud authentication",
    "google-github-actions/setup-gcloud@v2": "Google Cloud CLI setup",
    "docker/setup-buildx-action@v3": "Docker buildx",
    "docker/build-push-action@v5": "Docker builds",
}

FORBIDDEN_REFS: Tuple[str, ...] = ("@master", "@main", "@latest")

# Install and caching rules keyed by the detected package manager.
INSTALL_RULES: Dict[str, Tuple[str, ...]] = {
    PackageManager.NPM_NO_LOCK: (
        "No package-lock.json was detected: use npm install to install dependencies.",
        "Do NOT configure dependency caching: omit the `cache` input of actions/setup-node@v4 entirely.",
    ),
    PackageManager.NPM_LOCK: (
        "package-lock.json was detected: use npm ci for a clean, reproducible install.",
        "Dependency caching is allowed: set `cache: 'npm'` on actions/setup-node@v4.",
    ),
    PackageManager.YARN: (
        "yarn.lock was detected: use yarn install --frozen-lockfile.",
        "Dependency caching is allowed: set `cache: 'yarn'` on actions/setup-node@v4.",
    ),
    PackageManager.PNPM: (
        "pnpm-lock.yaml was detected: install pnpm with pnpm/action-setup@v4, then use pnpm install --frozen-lockfile.",
        "Dependency caching is allowed: set `cache: 'pnpm'` on actions/setup-node@v4.",
    ),
    PackageManager.NOT_APPLICABLE: (
        "Use the native install command of the detected toolchain (for example pip install -r requirements.txt, mvn -B package, go mod download, dotnet restore).",
        "No JavaScript lock file was detected: do not configure dependency caching.",
    ),
}

SCRIPT_COMMANDS: Dict[str, str] = {
    PackageManager.NPM_NO_LOCK: "npm run {script}",
    PackageManager.NPM_LOCK: "npm run {script}",
    PackageManager.YARN: "yarn {script}",
    PackageManager.PNPM: "pnpm {script}",
}

GUIDED_SCRIPTS: Tuple[str, ...] = ("lint", "test", "build")

# (type, framework) -> guidance; framework None applies to every project of that type.
GUIDANCE: Tuple[Tuple[str, Optional[str], str], ...] = (
    (ProjectType.NODEJS, "React", "Build static assets for production and upload the build output as an artifact."),
    (ProjectType.NODEJS, "Next.js", "Run the Next.js production build and keep the .next output for deployment."),
    (ProjectType.NODEJS, "Angular", "Build the Angular app in production configuration."),
    (ProjectType.NODEJS, "Vue.js", "Build static assets for production and upload the dist output as an artifact."),
    (ProjectType.NODEJS, "Express.js", "Treat the project as an API server: run its tests, then package it as a container for deployment."),
    (ProjectType.NODEJS, "NestJS", "Compile the NestJS application before packaging it."),
    (ProjectType.NODEJS, None, "Set up Node.js with actions/setup-node@v4 using an LTS node-version."),
    (ProjectType.PYTHON, "Django", "Run Django checks (python manage.py check) before the test suite."),
    (ProjectType.PYTHON, "Flask", "Serve the Flask app with gunicorn when containerizing it."),
    (ProjectType.PYTHON, "FastAPI", "Serve the FastAPI app with uvicorn when containerizing it."),
    (ProjectType.PYTHON, None, "Set up Python with actions/setup-python@v5 and install dependencies before running tests."),
    (ProjectType.JAVA, "Spring Boot", "Package the Spring Boot application as an executable jar."),
    (ProjectType.JAVA, None, "Set up a JDK with actions/setup-java@v4 (distribution: temurin)."),
    (ProjectType.GO, None, "Set up Go with actions/setup-go@v5, then run `go build ./...` and `go test ./...`."),
    (ProjectType.DOTNET, None, "Set up .NET with actions/setup-dotnet@v4, then run dotnet restore, dotnet build and dotnet test."),
)


__all__ = [
    "DEFAULT_SECRETS",
    "FORBIDDEN_REFS",
    "GUIDANCE",
    "GUIDED_SCRIPTS",
    "INSTALL_RULES",
    "PINNED_ACTIONS",
    "SCRIPT_COMMANDS",
]
