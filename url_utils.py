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


# url_utils.py
import re
from typing import Optional

HTTPS_PREFIX = "https://"
HTTP_PREFIX = "http://"

# Both separators count, so Windows-style paths stored in JSON reduce the same way.
PATH_SEPARATORS_RE = re.compile(r"[/\\]")


def bare_filename(reference: str) -> str:
    """
    Returns the final path segment of a reference string.
    'images/cat.jpg' -> 'cat.jpg', 'cat.jpg' -> 'cat.jpg'.
    """
    return PATH_SEPARATORS_RE.split(reference)[-1]


def rewrite_reference(base_url: str, filename: str) -> str:
    """
    Joins a base URL and a bare filename with a single '/'.
    The base URL is used verbatim: an empty base gives '/filename'
    and a trailing slash on the base is not collapsed.
    """
    return f"{base_url}/{filename}"


def clean_base_url(raw_url: Optional[str]) -> str:
    """Normalizes operator input for a base URL. Only surrounding whitespace is removed."""
    if not raw_url:
        return ""
    return raw_url.strip()
