"""GitHub API collaborators."""

from coderef.github.client import GitHubContentError, GitHubContentProvider

__all__ = ["GitHubContentProvider", "GitHubContentError"]
