"""
Basic HTTP/1.1 client example using tiny_http_core.

This example demonstrates GET, POST, form submission and redirect
handling with HTTPClient. Failures never raise: they come back as
599 responses carrying the error text.
"""

import logging

from tiny_http_core import HTTPClient

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def simple_get_request(client: HTTPClient) -> None:
    """Demonstrate a simple GET request."""
    logger.info("Making simple GET request...")

    response = client.get("http://httpbin.org/get", headers={"Accept": "application/json"})
    logger.info(f"Response status: {response.status_code} {response.reason}")
    logger.info(f"Response body length: {len(response.content)} bytes")
    logger.info(f"Content-Type: {response.get_header('content-type')}")


def post_request_with_body(client: HTTPClient) -> None:
    """Demonstrate a POST request with body."""
    logger.info("Making POST request with body...")

    response = client.post(
        "http://httpbin.org/post",
        headers={"Content-Type": "application/json"},
        content=b'{"message": "Hello, World!"}',
    )
    logger.info(f"Response status: {response.status_code}")

    if b"Hello, World!" in response.content:
        logger.info("Our data was received by the server")


def form_submission(client: HTTPClient) -> None:
    """Demonstrate posting form data."""
    logger.info("Submitting a form...")

    response = client.post_form("http://httpbin.org/post", {"name": "Jane Doe", "lang": ["en", "pt"]})
    logger.info(f"Response status: {response.status_code}")


def redirect_demo(client: HTTPClient) -> None:
    """Demonstrate redirect following."""
    logger.info("Following redirects...")

    response = client.get("http://httpbin.org/redirect/2")
    logger.info(f"Final URL: {response.url} ({response.status_code})")
    for hop in response.redirects:
        logger.info(f"  via {hop.url} ({hop.status_code} -> {hop.get_header('location')})")


def error_demo(client: HTTPClient) -> None:
    """Demonstrate how failures are reported."""
    logger.info("Connecting to a closed port...")

    response = client.get("http://127.0.0.1:1/")
    logger.info(f"Response status: {response.status_code} {response.reason}")
    logger.info(f"Error: {response.text}")


def main() -> None:
    """Run all examples."""
    logger.info("Starting HTTP/1.1 client examples...")

    client = HTTPClient(agent="basic-example/1.0 ", timeout=10.0)

    simple_get_request(client)
    post_request_with_body(client)
    form_submission(client)
    redirect_demo(client)
    error_demo(client)

    logger.info("All examples completed!")


if __name__ == "__main__":
    main()
