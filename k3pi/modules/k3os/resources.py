"""Local k3OS release artifacts.

Images are downloaded once per distinct filename into a per-run resource
directory and verified against the release checksum manifest before any node
is touched.
"""

import contextlib
import hashlib
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, Optional

import requests

from k3pi.config import ReleaseConfig

from .errors import VerificationError
from .models import Target

logger = logging.getLogger("k3pi.resources")

CHUNK_SIZE = 1024 * 1024


@dataclass
class FileDownload:
    """An image and its checksum manifest, with where to store them."""
    filename: Path
    checksum_filename: Path
    url: str
    checksum_url: str


def download_file(path: Path, url: str, timeout: float = 60) -> None:
    """Stream ``url`` to ``path``. The file only appears once complete."""
    tmp_path = Path(f"{path}.tmp")
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            if response.status_code != 200:
                raise VerificationError(f"{url} - {response.status_code} {response.reason}")

            total = 0
            with open(tmp_path, 'wb') as out:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    out.write(chunk)
                    total += len(chunk)
                    logger.debug("Downloading %s ... %d bytes", path.name, total)

        os.replace(tmp_path, path)
        logger.info("Downloaded %s (%d bytes)", path.name, total)
    except requests.RequestException as e:
        raise VerificationError(f"failed to download {url}: {e}") from e
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def calculate_sha256(path: Path) -> str:
    sha256 = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b''):
            sha256.update(chunk)
    return sha256.hexdigest()


def verify_checksum(path: Path, manifest: str) -> None:
    """Check ``path`` against a ``sha256sum`` style manifest.

    The manifest line naming the file wins. If no line names it, the digest
    only has to appear somewhere in the manifest.
    """
    digest = calculate_sha256(path)
    expected = None
    for line in manifest.splitlines():
        parts = line.split()
        if len(parts) >= 2 and os.path.basename(parts[-1].lstrip('*')) == path.name:
            expected = parts[0].lower()
            break

    if expected is not None:
        valid = digest == expected
    else:
        valid = digest in manifest.lower()

    if not valid:
        raise VerificationError(f"{digest} check sum is not valid for {path}")
    logger.debug("Checksum OK for %s", path.name)


def download_and_verify(download: FileDownload, timeout: float = 60) -> Path:
    """Fetch an image and its manifest, then verify the image."""
    download_file(download.filename, download.url, timeout)
    download_file(download.checksum_filename, download.checksum_url, timeout)

    try:
        manifest = download.checksum_filename.read_text()
    except OSError as e:
        raise VerificationError(f"failed to read {download.checksum_filename}: {e}") from e

    verify_checksum(download.filename, manifest)
    return download.filename


class ResourceProvisioner:
    """Makes sure every image the targets need is present and verified."""

    def __init__(
        self,
        release: ReleaseConfig,
        downloader: Optional[Callable[[FileDownload], Path]] = None,
    ):
        self.release = release
        self.downloader = downloader or (
            lambda download: download_and_verify(download, release.download_timeout)
        )

    def required_images(self, targets: Iterable[Target]) -> Dict[str, str]:
        """Map each distinct image filename to its checksum manifest filename."""
        images: Dict[str, str] = {}
        for target in targets:
            arch = target.node.get_arch()
            images[self.release.image_template.format(arch=arch)] = \
                self.release.checksum_template.format(arch=arch)
        return images

    def provision(self, targets: Iterable[Target], resource_dir: Path) -> Dict[str, Path]:
        """Download and verify each required image into ``resource_dir``.

        Raises:
            VerificationError: On the first download or checksum failure
        """
        paths: Dict[str, Path] = {}
        for image, checksum in self.required_images(targets).items():
            logger.info("Fetching %s", image)
            download = FileDownload(
                filename=resource_dir / image,
                checksum_filename=resource_dir / checksum,
                url=self.release.url_for(image),
                checksum_url=self.release.url_for(checksum),
            )
            paths[image] = self.downloader(download)
        return paths


@contextlib.contextmanager
def resource_directory(base: Optional[os.PathLike] = None) -> Iterator[Path]:
    """Create a private temporary resource directory and always remove it."""
    base = base or Path.home()
    path = Path(tempfile.mkdtemp(prefix=".k3pi-", dir=base))
    logger.debug("Created resource directory %s", path)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        logger.debug("Removed resource directory %s", path)
