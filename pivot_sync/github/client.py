"""Sets up the authenticated githubkit client."""

from githubkit import GitHub
from githubkit.auth import TokenAuthStrategy

from pivot_sync.configuration.env import settings


def get_github_client(
    token: str,
    github_api_url: str | None = None,
    timeout: float | None = None,
) -> GitHub[TokenAuthStrategy]:
    """Returns a GitHub client authenticated with a bearer token.

    The API URL and timeout default to the environment settings, which allows
    pointing at a GitHub Enterprise Server instance.
    """
    if not token:
        raise RuntimeError("GitHub token authentication requires a non-empty token.")
    # Disable HTTP caching to always get fresh data
    return GitHub(
        auth=TokenAuthStrategy(token),
        base_url=github_api_url or settings.GITHUB_API_URL,
        timeout=timeout if timeout is not None else settings.GITHUB_TIMEOUT,
        http_cache=False,
    )
