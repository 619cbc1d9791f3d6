"""
GitHub API Client

Handles GitHub API authentication, pagination and error reporting.
Provides the read-only endpoints the notifier polls.
"""

import logging
from typing import Any, Dict, List, Optional
from datetime import datetime
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


logger = logging.getLogger(__name__)

PAGE_SIZE = 100
MAX_PULL_REQUEST_PAGES = 50
MAX_REVIEW_PAGES = 20


class GitHubAPIError(Exception):
    """GitHub API related errors"""
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Dict] = None,
        rate_limit_remaining: Optional[str] = None,
        is_network_error: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data
        self.rate_limit_remaining = rate_limit_remaining
        self.is_network_error = is_network_error


class RateLimitExceeded(GitHubAPIError):
    """GitHub API rate limit exceeded"""
    def __init__(self, reset_time: datetime, status_code: int = 403, message: str = ""):
        super().__init__(
            message or f"Rate limit exceeded. Resets at {reset_time}",
            status_code=status_code,
            rate_limit_remaining="0",
        )
        self.reset_time = reset_time


class GitHubClient:
    """
    GitHub API client with bearer authentication and error handling.

    Provides methods for:
    - Repository access checks
    - Open pull request listing (paginated)
    - Requested reviewers and submitted reviews of a pull request
    - The authenticated user
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: int = 30,
        user_agent: str = "PRNotifier/2.0",
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize GitHub client.

        Args:
            token: OAuth or personal access token
            base_url: GitHub API base URL (default: https://api.github.com)
            timeout: Per-request timeout in seconds
            user_agent: User-Agent header value
            session: Optional preconfigured session
        """
        if not token or not token.strip():
            raise ValueError("GitHub token is required")

        self.token = token
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.headers = {
            'Authorization': f'Bearer {token}',
            'Accept': 'application/vnd.github.v3+json',
            'User-Agent': user_agent,
        }
        self.session = session or self._create_session()
        self.rate_limit_remaining: Optional[int] = None
        self.rate_limit_reset: Optional[datetime] = None

    def _create_session(self) -> requests.Session:
        """Create requests session with retry strategy and authentication."""
        session = requests.Session()

        # Transient server errors only; 403/429 are classified, not retried
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update(self.headers)
        return session

    def _update_rate_limit(self, response: requests.Response) -> None:
        """Update rate limit information from response headers."""
        remaining = response.headers.get('X-RateLimit-Remaining')
        if remaining is not None and str(remaining).isdigit():
            self.rate_limit_remaining = int(remaining)
            if self.rate_limit_remaining <= 10:
                logger.warning(f"GitHub rate limit low: {self.rate_limit_remaining} requests remaining")

        reset = response.headers.get('X-RateLimit-Reset')
        if reset is not None and str(reset).isdigit():
            self.rate_limit_reset = datetime.fromtimestamp(int(reset))

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        if not response.content:
            return ""
        try:
            body = response.json()
        except ValueError:
            return ""
        if isinstance(body, dict):
            return str(body.get('message', ''))
        return ""

    @staticmethod
    def _json(response: requests.Response, endpoint: str, expected: type) -> Any:
        """Decoded body of the expected JSON type; GitHubAPIError otherwise."""
        try:
            body = response.json()
        except ValueError as e:
            raise GitHubAPIError(f"Invalid JSON from {endpoint}", status_code=response.status_code) from e
        if not isinstance(body, expected):
            raise GitHubAPIError(
                f"Expected a {expected.__name__} from {endpoint}, got {type(body).__name__}",
                status_code=response.status_code,
            )
        return body

    def _make_request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """
        Make authenticated request to GitHub API.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint (without base URL)
            **kwargs: Additional arguments for requests

        Returns:
            Response object

        Raises:
            GitHubAPIError: For API and transport errors
            RateLimitExceeded: When the rate limit is exhausted
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        kwargs.setdefault('timeout', self.timeout)
        kwargs.setdefault('headers', self.headers)

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            logger.warning(f"Request to {endpoint} failed: {e}")
            raise GitHubAPIError(str(e), is_network_error=True) from e

        self._update_rate_limit(response)

        if not response.ok:
            message = self._error_message(response)
            remaining = response.headers.get('X-RateLimit-Remaining')

            if response.status_code == 403 and str(remaining) == "0":
                reset_header = response.headers.get('X-RateLimit-Reset')
                reset_time = (
                    datetime.fromtimestamp(int(reset_header))
                    if reset_header and str(reset_header).isdigit()
                    else datetime.now()
                )
                raise RateLimitExceeded(reset_time, status_code=response.status_code, message=message)

            raise GitHubAPIError(
                message,
                status_code=response.status_code,
                response_data={'message': message} if message else None,
                rate_limit_remaining=remaining,
            )

        return response

    def _paginate(self, endpoint: str, params: Dict[str, Any], max_pages: int) -> List[Dict]:
        """
        Collect all pages of a list endpoint.

        Stops at the first short page or after ``max_pages`` pages.
        """
        items: List[Dict] = []
        page = 1

        while page <= max_pages:
            response = self._make_request(
                'GET',
                endpoint,
                params={**params, 'per_page': PAGE_SIZE, 'page': page},
            )
            page_items = self._json(response, endpoint, list)
            if not all(isinstance(item, dict) for item in page_items):
                raise GitHubAPIError(f"Malformed response from {endpoint}", status_code=response.status_code)

            items.extend(page_items)

            if len(page_items) < PAGE_SIZE:
                break

            page += 1
        else:
            logger.warning(f"Stopped paginating {endpoint} after {max_pages} pages")

        return items

    def get_repository(self, owner: str, repo: str) -> Dict:
        """
        Get repository information; doubles as an access check.

        Args:
            owner: Repository owner
            repo: Repository name

        Returns:
            Repository data
        """
        logger.debug(f"Checking access to {owner}/{repo}")

        response = self._make_request('GET', f'/repos/{owner}/{repo}')
        return self._json(response, f'/repos/{owner}/{repo}', dict)

    def list_open_pull_requests(self, owner: str, repo: str) -> List[Dict]:
        """
        List open pull requests of a repository.

        Args:
            owner: Repository owner
            repo: Repository name

        Returns:
            List of pull request data
        """
        pulls = self._paginate(
            f'/repos/{owner}/{repo}/pulls',
            {'state': 'open'},
            MAX_PULL_REQUEST_PAGES,
        )
        logger.debug(f"Found {len(pulls)} open pull requests in {owner}/{repo}")
        return pulls

    def list_requested_reviewers(self, owner: str, repo: str, pr_number: int) -> List[Dict]:
        """
        Get users currently requested to review a pull request.

        Args:
            owner: Repository owner
            repo: Repository name
            pr_number: Pull request number

        Returns:
            List of user data
        """
        endpoint = f'/repos/{owner}/{repo}/pulls/{pr_number}/requested_reviewers'
        users = self._json(self._make_request('GET', endpoint), endpoint, dict).get('users') or []
        if not isinstance(users, list) or not all(isinstance(u, dict) for u in users):
            raise GitHubAPIError(f"Malformed response from {endpoint}")
        return users

    def list_reviews(self, owner: str, repo: str, pr_number: int) -> List[Dict]:
        """
        Get submitted reviews of a pull request in chronological order.

        Args:
            owner: Repository owner
            repo: Repository name
            pr_number: Pull request number

        Returns:
            List of review data
        """
        return self._paginate(
            f'/repos/{owner}/{repo}/pulls/{pr_number}/reviews',
            {},
            MAX_REVIEW_PAGES,
        )

    def get_authenticated_user(self) -> Dict:
        """
        Get the user the token belongs to.

        Returns:
            User data
        """
        response = self._make_request('GET', '/user')
        user_data = self._json(response, '/user', dict)
        logger.info(f"Authenticated as {user_data.get('login')}")
        return user_data
