"""
Artifact installer: download the engine and rootless-extras archives into a
scratch directory, then unpack both into the bin dir with the leading
``docker/`` or ``docker-rootless-extras/`` component stripped.

Both downloads finish before anything is extracted, so a network failure
leaves the bin dir untouched.  An extraction failure may leave it partially
populated; there is no rollback.
"""

import hashlib
import shutil
import tarfile
import urllib.error
import urllib.request
from pathlib import Path, PurePosixPath
from typing import List, Optional

from . import __version__
from .schema import InstallConfig
from ._util import debug as _debug_fn, scratch_dir

_DOWNLOAD_TIMEOUT = 300


class InstallError(RuntimeError):
    """Fatal download, verification, extraction or service registration failure."""


def _debug(msg: str) -> None:
    _debug_fn("install", msg)


def download(url: str, dest: Path) -> None:
    """Fetch *url* into *dest*.  No retries."""
    _debug(f"GET {url} -> {dest}")
    req = urllib.request.Request(url, headers={"User-Agent": f"homedock/{__version__}"})
    try:
        with urllib.request.urlopen(req, timeout=_DOWNLOAD_TIMEOUT) as resp, open(dest, "wb") as f:
            shutil.copyfileobj(resp, f)
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise InstallError(f"Failed to download {url}: {exc}") from exc


def sha256sum(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1 << 20), b""):
            h.update(chunk)
    return h.hexdigest()


def verify_sha256(path: Path, expected: str) -> None:
    actual = sha256sum(path)
    if actual.lower() != expected.strip().lower():
        raise InstallError(
            f"Checksum mismatch for {path.name}: expected {expected.strip()}, got {actual}"
        )
    _debug(f"{path.name}: sha256 ok")


def _strip(name: str, components: int) -> Optional[str]:
    parts = PurePosixPath(name).parts[components:]
    if not parts:
        return None
    return str(PurePosixPath(*parts))


def extract(archive: Path, target: Path, strip_components: int = 1) -> List[Path]:
    """Unpack *archive* into *target*, dropping leading path components.

    Entries that would land outside *target* are refused.  Returns the paths
    written, in archive order.
    """
    target.mkdir(parents=True, exist_ok=True)
    root = target.resolve()
    written: List[Path] = []
    # The extraction filters landed in 3.12 and a few 3.8 to 3.11 point releases.
    safe = {"filter": "data"} if hasattr(tarfile, "data_filter") else {}
    try:
        with tarfile.open(archive, "r:*") as tf:
            for member in tf.getmembers():
                name = _strip(member.name, strip_components)
                if name is None:
                    continue
                dest = (root / name).resolve()
                if dest != root and root not in dest.parents:
                    raise InstallError(f"Refusing to extract {member.name!r} outside {target}")
                member.name = name
                if member.islnk():
                    linkname = _strip(member.linkname, strip_components)
                    if linkname is None:
                        continue
                    member.linkname = linkname
                tf.extract(member, root, **safe)
                written.append(root / name)
    except (tarfile.TarError, OSError) as exc:
        raise InstallError(f"Failed to extract {archive.name} into {target}: {exc}") from exc
    _debug(f"{archive.name}: {len(written)} entries into {target}")
    return written


def install_artifacts(config: InstallConfig) -> List[Path]:
    """Download both archives, verify any configured digests, unpack into the bin dir."""
    sources = [
        (config.engine_url, "docker.tgz", config.engine_sha256),
        (config.extras_url, "rootless.tgz", config.extras_sha256),
    ]
    installed: List[Path] = []
    with scratch_dir(prefix="homedock-") as tmp:
        archives = []
        for url, filename, digest in sources:
            print(f"# Downloading {url}")
            dest = tmp / filename
            download(url, dest)
            if digest:
                verify_sha256(dest, digest)
            archives.append(dest)
        for archive in archives:
            installed += extract(archive, config.bin_dir)
    print(f"# Installed {len(installed)} files into {config.bin_dir}")
    return installed
