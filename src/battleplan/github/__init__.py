"""GitHub REST crawl client and the records it decodes."""
from .client import ClientConfig, GitHubApiError, GitHubClient, RateLimitInfo, load_client_config
from .models import Comment, GitHubUser, Issue, Milestone, PullRequest

__all__ = [
    "ClientConfig",
    "Comment",
    "GitHubApiError",
    "GitHubClient",
    "GitHubUser",
    "Issue",
    "Milestone",
    "PullRequest",
    "RateLimitInfo",
    "load_client_config",
]
