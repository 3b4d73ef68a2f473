# JSON Media Harvester - collect the media files referenced by JSON documents.
# Copyright (C) 2025 DragonsWho <dragonswho@gmail.com>
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as published by
# the Free Software Foundation; either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public License
# along with this program; if not, see <https://www.gnu.org/licenses/>.


# media_downloader.py

import sys
from pathlib import Path
from typing import Optional, NamedTuple, Dict, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from browser_emulator import DEFAULT_USER_AGENT, get_request_headers
from media_finder import MediaKind
from url_utils import HTTPS_PREFIX, HTTP_PREFIX

DEFAULT_CHUNK_SIZE = 8192 * 4
DEFAULT_POOL_SIZE = 10


class DownloadError(Exception):
    """A single URL could not be saved: non-200 status or transport failure."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code


class DownloadOutcome(NamedTuple):
    url: str
    path: Path
    success: bool
    reason: Optional[str] = None
    status_code: Optional[int] = None


def create_session(pool_size: int = DEFAULT_POOL_SIZE) -> requests.Session:
    """
    One adapter per transport prefix. Retries are switched off explicitly:
    every failure is reported once and never re-attempted.
    """
    session = requests.Session()
    no_retries = Retry(total=0, read=False)
    for prefix in (HTTPS_PREFIX, HTTP_PREFIX):
        adapter = HTTPAdapter(
            max_retries=no_retries,
            pool_connections=pool_size,
            pool_maxsize=pool_size,
            pool_block=False
        )
        session.mount(prefix, adapter)
    session.headers.update({
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept-Language": "en-US,en;q=0.9",
    })
    return session


def _remove_partial_file(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e_unlink:
        print(f"Could not remove partial file {path}: {e_unlink}", file=sys.stderr)


def fetch_to_file(url: str, path: Union[str, Path], session: requests.Session,
                  media_kind: Optional[MediaKind] = None,
                  timeout: Optional[float] = None,
                  chunk_size: int = DEFAULT_CHUNK_SIZE,
                  forced_headers: Optional[Dict[str, str]] = None) -> Path:
    """
    Streams url into path, chunk by chunk.

    Only HTTP 200 counts as success. On any other status nothing is written.
    On a transport or write error the partially written file is removed.
    Raises DownloadError in both failure cases.
    """
    path = Path(path)
    request_headers = forced_headers if forced_headers is not None else get_request_headers(url, media_kind)
    writing_started = False

    try:
        with session.get(url, stream=True, timeout=timeout, headers=request_headers) as response:
            if response.status_code != 200:
                raise DownloadError(url, f"HTTP {response.status_code}", status_code=response.status_code)

            writing_started = True
            with path.open('wb') as f:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    if chunk:
                        f.write(chunk)
    except requests.exceptions.RequestException as e_req:
        if writing_started:
            _remove_partial_file(path)
        raise DownloadError(url, f"{type(e_req).__name__}: {e_req}") from e_req
    except OSError as e_io:
        if writing_started:
            _remove_partial_file(path)
        raise DownloadError(url, f"{type(e_io).__name__}: {e_io}") from e_io

    return path


def download_file(url: str, path: Union[str, Path], session: requests.Session,
                  media_kind: Optional[MediaKind] = None,
                  timeout: Optional[float] = None,
                  chunk_size: int = DEFAULT_CHUNK_SIZE) -> DownloadOutcome:
    path = Path(path)
    try:
        fetch_to_file(url, path, session, media_kind=media_kind, timeout=timeout, chunk_size=chunk_size)
    except DownloadError as e_dl:
        return DownloadOutcome(url, path, False, reason=e_dl.reason, status_code=e_dl.status_code)
    return DownloadOutcome(url, path, True, status_code=200)
