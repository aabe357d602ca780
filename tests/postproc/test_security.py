"""Tests for secret-handling rules."""

from __future__ import annotations

import pytest

from pipegen.postproc.security import SecretPolicy


@pytest.mark.parametrize(
    "line",
    [
        'echo "TOKEN=${{ secrets.GCP_SA_KEY }}" >> $GITHUB_ENV',
        'echo "TOKEN=${{ secrets.ANY_OTHER }}" >> "${GITHUB_ENV}"',
        'echo "key=${{secrets.OPENWEATHER_API_KEY}}" >> $GITHUB_OUTPUT',
        "core.exportVariable('KEY', '${{ secrets.GCP_SA_KEY }}')",
    ],
)
def test_export_lines_are_dropped_regardless_of_context(line: str) -> None:
    content = f"jobs:\n  build:\n    steps:\n      - run: {line}\n      - run: make\n"

    cleaned = SecretPolicy().apply(content)

    assert line not in cleaned
    assert "run: make" in cleaned


def test_non_secret_exports_are_kept() -> None:
    content = 'run: echo "SHA=${{ github.sha }}" >> $GITHUB_ENV\n'

    assert SecretPolicy().apply(content) == content


def test_only_known_secret_names_are_restored() -> None:
    policy = SecretPolicy(["DEPLOY_KEY"])

    cleaned = policy.apply("a: ${{ env.DEPLOY_KEY }}\nb: ${{ env.GCP_SA_KEY }}\n")

    assert cleaned == "a: ${{ secrets.DEPLOY_KEY }}\nb: ${{ env.GCP_SA_KEY }}\n"
