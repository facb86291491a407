"""classify_package MCP tool implementation."""

from __future__ import annotations

import json

from loguru import logger
from pydantic import ValidationError

from project_health.core import ProjectClassifier, ScoringPolicy
from project_health.schemas.manifest import PackageManifest


async def classify_package(manifest_json: str) -> dict:
    """Classify a package.json and report the scoring policy it selects.

    Args:
        manifest_json: Contents of a package.json file

    Returns:
        Repo type plus the policy switches scoring will apply
    """
    try:
        data = json.loads(manifest_json)
    except json.JSONDecodeError as e:
        msg = f"manifest_json is not valid JSON: {e}"
        raise ValueError(msg) from e
    if not isinstance(data, dict):
        msg = "manifest_json must be a JSON object"
        raise ValueError(msg)

    try:
        manifest = PackageManifest.model_validate(data)
    except ValidationError as e:
        logger.error(f"Invalid package manifest: {e}")
        raise

    repo_type = ProjectClassifier().classify(manifest)
    policy = ScoringPolicy.for_repo_type(repo_type)

    return {
        "name": manifest.name,
        "repo_type": repo_type.value,
        "library_like": repo_type.is_library_like,
        "production_only_vulnerabilities": policy.production_only_vulnerabilities,
        "trusts_own_lint_config": policy.trust_own_lint_config,
        "outdated_tiers": [
            {"max_outdated": tier.limit, "points": tier.points}
            for tier in policy.outdated_tiers
        ],
    }
