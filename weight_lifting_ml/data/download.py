"""
Dataset download for the Weight Lifting ML Pipeline.

Files are fetched once and reused from the local dataset directory on later
runs. Network and HTTP errors are not retried; they abort the pipeline.
"""

from pathlib import Path
from typing import Optional, Tuple

import httpx

from ..config import CONFIG
from ..utils import get_logger


def download_file(
    url: str,
    destination: Path,
    timeout: float = 60.0,
    client: Optional[httpx.Client] = None,
    overwrite: bool = False
) -> Path:
    """
    Download a file unless it already exists locally.

    Args:
        url: Source URL
        destination: Local file path
        timeout: Request timeout in seconds
        client: Optional httpx client (a new one is created otherwise)
        overwrite: Download even if the file exists

    Returns:
        Path of the local file
    """
    logger = get_logger('data')
    destination = Path(destination)

    if destination.exists() and not overwrite:
        logger.info(f"Using local copy: {destination}")
        return destination

    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(destination.name + '.part')

    logger.info(f"Downloading {url} -> {destination}")

    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=timeout, follow_redirects=True)

    try:
        with client.stream('GET', url) as response:
            response.raise_for_status()
            with open(partial, 'wb') as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
    except httpx.HTTPError:
        partial.unlink(missing_ok=True)
        raise
    finally:
        if owns_client:
            client.close()

    partial.replace(destination)
    logger.info(f"Downloaded {destination.stat().st_size / 1e6:.1f} MB")

    return destination


def fetch_dataset(config=None, client: Optional[httpx.Client] = None) -> Tuple[Path, Path]:
    """
    Make sure both CSV files are available locally.

    Returns:
        Tuple of (training path, testing path)

    Raises:
        FileNotFoundError: If a file is missing and downloading is disabled
    """
    config = config or CONFIG
    data_cfg = config.data

    paths = []
    for url, path in [(data_cfg.training_url, data_cfg.training_path),
                      (data_cfg.testing_url, data_cfg.testing_path)]:
        if not path.exists() and not data_cfg.download_if_missing:
            raise FileNotFoundError(f"Dataset file not found: {path}")
        paths.append(download_file(url, path, timeout=data_cfg.download_timeout, client=client))

    return paths[0], paths[1]
