"""Analysis target schemas."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict


class TargetKind(str, Enum):
    """What kind of URL is being analyzed."""
    REPOSITORY = "repository"
    DEPLOYMENT = "deployment"


# Matched from the start of the URL; the host must be github.com itself
GITHUB_PATTERNS = [
    re.compile(r"^(?:https?://|ssh://git@)?(?:www\.)?github\.com/([^/\s?#]+)/([^/\s?#]+)"),
    re.compile(r"^git@github\.com:([^/\s?#]+)/([^/\s?#]+)"),
]


class AnalysisTarget(BaseModel):
    """A URL plus its resolved kind. Immutable once resolved."""

    model_config = ConfigDict(frozen=True)

    url: str
    kind: TargetKind
    owner: str | None = None
    repo: str | None = None

    @property
    def clone_url(self) -> str:
        if self.kind != TargetKind.REPOSITORY:
            msg = f"Deployment targets cannot be cloned: {self.url}"
            raise ValueError(msg)
        return f"https://github.com/{self.owner}/{self.repo}.git"

    @classmethod
    def resolve(cls, url: str) -> AnalysisTarget:
        """Classify a URL as repository or deployment.

        Raises:
            ValueError: if the URL is neither a GitHub repository nor http(s).
        """
        url = url.strip()
        for pattern in GITHUB_PATTERNS:
            match = pattern.match(url)
            if match:
                repo = match.group(2)
                if repo.endswith(".git"):
                    repo = repo[: -len(".git")]
                return cls(
                    url=url,
                    kind=TargetKind.REPOSITORY,
                    owner=match.group(1),
                    repo=repo,
                )

        if url.startswith(("http://", "https://")):
            return cls(url=url, kind=TargetKind.DEPLOYMENT)

        msg = f"Unsupported target URL: {url}"
        raise ValueError(msg)
