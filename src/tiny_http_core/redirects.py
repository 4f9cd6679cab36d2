"""
Redirect handling for tiny_http_core.

RedirectController runs one transaction after another until a response
is final, following the Location header of redirect responses under the
strict method rules of HTTP/1.1.
"""

import logging
from enum import Enum
from typing import Callable, List
from urllib.parse import urljoin

from .exceptions import RedirectLimitError, RequestError
from .http_primitives import Request, Response
from .streams import ContentSource

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = frozenset([301, 302, 303, 307])

# Methods that may be re-issued unchanged on 301, 302 and 307
SAFE_REDIRECT_METHODS = frozenset(["GET", "HEAD"])


class RedirectState(Enum):
    """States of the redirect state machine."""
    ISSUE = "issue"         # Run one request/response transaction
    EVALUATE = "evaluate"   # Decide whether the response is final
    FOLLOW = "follow"       # Build the request for the next hop
    DONE = "done"           # Response is returned to the caller
    FAILED = "failed"       # Transaction aborted with an error


def is_followable(request: Request, response: Response) -> bool:
    """
    Check whether a response would be followed, ignoring the hop count.

    303 is always followed (as GET); 301, 302 and 307 only for GET and
    HEAD. A redirect without a Location header is final.
    """
    status = response.status_code
    if status not in REDIRECT_STATUSES:
        return False
    if not response.headers.get_value("location"):
        return False
    return status == 303 or request.method in SAFE_REDIRECT_METHODS


def redirect_request(original: Request, current: Request, response: Response) -> Request:
    """
    Build the request for the next hop.

    The next request starts again from the caller's original headers.
    A 303 turns it into a body-less GET; other redirects keep the method
    and resend the body, which only works for a fixed byte body.

    Args:
        original: The request as the caller made it (defaults merged)
        current: The request that produced ``response``
        response: The redirect response

    Returns:
        The request to issue next

    Raises:
        RequestError: If the body was streamed from a producer, which
                      cannot be read a second time
    """
    location = response.headers.get_value("location") or ""
    next_url = urljoin(str(current.url), location)

    if response.status_code == 303:
        return original.with_method("GET").with_url(next_url).with_content(None)
    if isinstance(original.content, ContentSource):
        raise RequestError(
            f"Cannot follow {response.status_code} to {next_url}: "
            "the streamed request body cannot be sent again"
        )
    return original.with_method(current.method).with_url(next_url)


class RedirectController:
    """
    State machine over repeated transactions.

    ``issue`` runs a single transaction and returns its response. Each hop
    gets a fresh call to ``issue``, so timeouts apply per hop.
    """

    def __init__(self, issue: Callable[[Request], Response], max_redirect: int) -> None:
        """
        Initialize the controller.

        Args:
            issue: Runs one request/response transaction
            max_redirect: Number of redirects that may be followed
        """
        self._issue = issue
        self._max_redirect = max_redirect
        self._state = RedirectState.ISSUE

    @property
    def state(self) -> RedirectState:
        return self._state

    def will_follow(self, request: Request, response: Response) -> bool:
        """Whether the body of ``response`` is going to be thrown away."""
        return self._max_redirect > 0 and is_followable(request, response)

    def run(self, request: Request) -> Response:
        """
        Drive the request through as many redirects as allowed.

        Args:
            request: The caller's request, defaults already merged

        Returns:
            The final response, with the followed responses in ``redirects``

        Raises:
            RedirectLimitError: If another hop would exceed max_redirect
            RequestError: If a streamed body would have to be sent again
        """
        self._state = RedirectState.ISSUE
        current = request
        history: List[Response] = []
        response = self._issue(current)
        self._state = RedirectState.EVALUATE

        while True:
            if self._state is RedirectState.ISSUE:
                response = self._issue(current)
                self._state = RedirectState.EVALUATE

            elif self._state is RedirectState.EVALUATE:
                self._state = self._evaluate(current, response, len(history))

            elif self._state is RedirectState.FOLLOW:
                history.append(response)
                try:
                    current = redirect_request(request, current, response)
                except RequestError:
                    self._state = RedirectState.FAILED
                    raise
                logger.debug(
                    f"Following {response.status_code} to {current.method} {current.url} "
                    f"(redirect {len(history)} of {self._max_redirect})"
                )
                self._state = RedirectState.ISSUE

            elif self._state is RedirectState.DONE:
                return response.with_redirects(history)

            else:
                raise RedirectLimitError(
                    f"Too many redirects while fetching {request.url}",
                    max_redirect=self._max_redirect,
                )

    def _evaluate(self, current: Request, response: Response, count: int) -> RedirectState:
        if not is_followable(current, response):
            return RedirectState.DONE
        if count >= self._max_redirect:
            return RedirectState.FAILED
        return RedirectState.FOLLOW
