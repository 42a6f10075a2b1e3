"""
Download installer scripts over HTTPS.

Replaces the ``curl -fsSL URL | bash`` idiom: the script is downloaded to a
file first so it can be inspected in dry-run mode and logged.
"""

import logging
import time
from pathlib import Path

import requests
from requests.exceptions import RequestException

from devstrap.core.exceptions import DownloadError

logger = logging.getLogger(__name__)


def download_file(
    url: str,
    destination: Path,
    timeout: int = 30,
    max_retries: int = 3,
) -> Path:
    """
    Download file from URL to destination with retry logic.

    Args:
        url: URL to download from
        destination: Local path to save file
        timeout: Request timeout in seconds
        max_retries: Maximum number of attempts

    Returns:
        Path to downloaded file

    Raises:
        DownloadError: If download fails after retries
        ValueError: If URL is empty
    """
    if not url:
        raise ValueError("URL cannot be empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    for attempt in range(max_retries):
        try:
            return _download(url, destination, timeout)
        except RequestException as e:
            if attempt == max_retries - 1:
                raise DownloadError(
                    f"Download failed after {max_retries} attempts: {e}"
                ) from e

            backoff_seconds = 2**attempt
            logger.warning(
                f"Download attempt {attempt + 1} failed: {e}. "
                f"Retrying in {backoff_seconds}s..."
            )
            time.sleep(backoff_seconds)

    raise DownloadError(f"Download failed: {url}")


def _download(url: str, destination: Path, timeout: int) -> Path:
    logger.info(f"Downloading {url}")

    response = requests.get(url, stream=True, timeout=timeout, allow_redirects=True)
    response.raise_for_status()

    with open(destination, "wb") as f:
        for chunk in response.iter_content(chunk_size=8192):
            if chunk:
                f.write(chunk)

    logger.debug(f"Download complete: {destination}")
    return destination
