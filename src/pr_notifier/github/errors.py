"""
GitHub Error Classification

Maps GitHub API failures onto the CheckError taxonomy shown to users.
"""

from ..models.check import CheckError, ErrorKind
from .client import GitHubAPIError, RateLimitExceeded


def _unknown(error: GitHubAPIError, context: str) -> CheckError:
    return CheckError(
        kind=ErrorKind.UNKNOWN,
        message=error.message or f"GitHub API error for {context}",
        repo_name=context,
        details="An unexpected error occurred.",
    )


def _classify_unauthorized(message: str, context: str) -> CheckError:
    lower = message.lower()
    if "bad credentials" in lower:
        return CheckError(
            kind=ErrorKind.AUTH,
            message="Invalid GitHub token",
            repo_name=context,
            details="The token appears to be malformed or incorrect. Generate a new personal access token.",
        )
    if "token expired" in lower:
        return CheckError(
            kind=ErrorKind.AUTH,
            message="GitHub token has expired",
            repo_name=context,
            details="Please generate a new personal access token with the same permissions.",
        )
    return CheckError(
        kind=ErrorKind.AUTH,
        message="GitHub authentication failed",
        repo_name=context,
        details=(
            "Your authentication may be expired, invalid, or revoked. "
            "Try signing in again or updating your token in settings."
        ),
    )


def _classify_forbidden(error: GitHubAPIError, context: str) -> CheckError:
    if isinstance(error, RateLimitExceeded) or error.rate_limit_remaining == "0":
        return CheckError(
            kind=ErrorKind.RATE_LIMIT,
            message="GitHub API rate limit exceeded",
            repo_name=context,
            details="You've made too many requests. Consider increasing your check interval.",
        )

    lower = error.message.lower()
    if "saml" in lower or "sso" in lower:
        org = context.split('/')[0] if context else context
        return CheckError(
            kind=ErrorKind.AUTH,
            message=f"SSO authorization required for {org}",
            repo_name=context,
            details=(
                f"This organization requires SSO. Open github.com/orgs/{org}/sso "
                "in your browser to authorize, then try again."
            ),
        )

    return CheckError(
        kind=ErrorKind.AUTH,
        message="Access forbidden",
        repo_name=context,
        details=error.message or "Your token may not have the required permissions.",
    )


def classify_error(error: GitHubAPIError, context: str) -> CheckError:
    """
    Classify a failed request.

    Args:
        error: Error raised by GitHubClient
        context: ``owner/repo`` the request was made for

    Returns:
        CheckError with the repository attached
    """
    if error.is_network_error:
        return CheckError(
            kind=ErrorKind.NETWORK,
            message="Unable to connect to GitHub",
            repo_name=context,
            details="Check your internet connection and try again.",
        )

    if error.status_code is None:
        return _unknown(error, context)
    if error.status_code == 401:
        return _classify_unauthorized(error.message, context)
    if error.status_code == 403:
        return _classify_forbidden(error, context)
    if error.status_code == 404:
        return CheckError(
            kind=ErrorKind.REPO_ACCESS,
            message=f"Repository {context} not found",
            repo_name=context,
            details="The repository may be private, deleted, or the name is incorrect.",
        )
    return _unknown(error, context)
