"""
Streaming example for tiny_http_core.

Demonstrates chunked uploads from a producer function, response bodies
delivered through a data callback, and mirroring a URL into a file.
"""

import logging
import os
import sys
import tempfile

from tiny_http_core import HTTPClient, Response

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def streaming_upload(client: HTTPClient) -> None:
    """Upload a body produced piece by piece, sent chunked."""
    logger.info("Streaming upload...")

    pieces = iter([b"first piece, ", b"second piece, ", b"last piece"])
    response = client.put(
        "http://httpbin.org/put",
        content=lambda: next(pieces, None),
        trailer_callback=lambda: {"X-Upload-Done": "yes"},
    )
    logger.info(f"Upload finished: {response.status_code}")


def streaming_download(client: HTTPClient) -> None:
    """Receive a body chunk by chunk without buffering it."""
    logger.info("Streaming download...")

    stats = {"chunks": 0, "bytes": 0}

    def on_data(data: bytes, response: Response) -> None:
        stats["chunks"] += 1
        stats["bytes"] += len(data)
        logger.info(f"Chunk {stats['chunks']}: {len(data)} bytes (status {response.status_code})")

    response = client.get("http://httpbin.org/stream-bytes/20000?chunk_size=4096", data_callback=on_data)
    logger.info(f"Download complete: {stats['bytes']} bytes in {stats['chunks']} chunks ({response.status_code})")


def mirror_demo(client: HTTPClient, url: str) -> None:
    """Mirror a URL twice; the second call should come back 304."""
    path = os.path.join(tempfile.gettempdir(), "tiny_http_core_mirror.html")
    for attempt in (1, 2):
        response = client.mirror(url, path)
        logger.info(f"Mirror attempt {attempt}: {response.status_code} success={response.success}")


def main() -> None:
    client = HTTPClient(timeout=15.0, max_size=1024 * 1024)
    streaming_upload(client)
    streaming_download(client)
    mirror_demo(client, sys.argv[1] if len(sys.argv) > 1 else "http://www.example.com/")


if __name__ == "__main__":
    main()
