from __future__ import annotations

from typing import List

from .base import CapabilityAdapter
from .models import DeploymentResult, RepoConfig, RepoInfo, dump

DEFAULT_COMMIT_MESSAGE = "Transformation complete: initial generated artifacts"

DEFAULT_WORKFLOW = """name: CI

on:
  push:
    branches: [ main ]
  pull_request:
    branches: [ main ]

jobs:
  build:
    runs-on: ubuntu-latest
    steps:
    - uses: actions/checkout@v4
    - name: Install dependencies
      run: npm install
    - name: Build
      run: npm run build --if-present
    - name: Test
      run: npm test --if-present
"""


class RepositoryAdapter(CapabilityAdapter):
    """Publishes generated artifacts to a version-control repository."""

    async def create_repository(self, config: RepoConfig) -> DeploymentResult:
        """Create the repository, then commit files, add topics and a CI workflow.

        Only the repository creation is fatal; follow-up failures are returned
        as warnings.

        Raises:
            CapabilityCallFailedError: The repository could not be created.
        """
        repo = await self._invoke(
            "createRepository",
            {
                "name": config.name,
                "description": config.description,
                "autoInit": True,
                "private": config.private,
            },
            RepoInfo,
        )
        warnings: List[str] = []

        follow_ups = [
            (
                "createOrUpdateFiles",
                {
                    "repo": repo.name,
                    "files": [dump(f) for f in config.files],
                    "message": DEFAULT_COMMIT_MESSAGE,
                },
            ),
            ("addTopics", {"repo": repo.name, "topics": config.topics}),
            ("createWorkflow", {"repo": repo.name, "workflow": config.workflow or DEFAULT_WORKFLOW}),
        ]
        for method, params in follow_ups:
            if method == "addTopics" and not config.topics:
                continue
            result = await self._call(method, params)
            if not result.success:
                reason = result.error.message if result.error else "unknown error"
                self._logger.warning("RepositoryAdapter: %s failed for %s: %s", method, repo.name, reason)
                warnings.append(f"{method}: {reason}")

        return DeploymentResult(repository=repo, warnings=warnings)
