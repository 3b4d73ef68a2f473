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


# media_finder.py

import re
import json
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Set, Tuple, Union

import chardet

from url_utils import bare_filename, rewrite_reference

# --- Global variables and settings ---
IMAGE_EXTENSIONS: Tuple[str, ...] = ('.jpg', '.jpeg', '.png', '.gif', '.webp')
VIDEO_EXTENSIONS: Tuple[str, ...] = ('.mp4', '.mov')

# Textual removal only: a '/*' inside a JSON string value is stripped as well.
REGEX_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class JsonKind(Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


class MediaScanError(Exception):
    """Scanning a single JSON file failed. Carries the offending path."""

    def __init__(self, path: Union[str, Path], message: str):
        super().__init__(f"{path}: {message}")
        self.path = Path(path)
        self.message = message


class FileReadError(MediaScanError):
    pass


class JsonParseError(MediaScanError):
    pass


# --- Helper Functions ---

def detect_encoding(content: bytes) -> str:
    result = chardet.detect(content)
    return result['encoding'] if result['encoding'] else 'utf-8'


def decode_json_bytes(content: bytes) -> str:
    try:
        return content.decode('utf-8-sig')
    except UnicodeDecodeError:
        return content.decode(detect_encoding(content), errors='replace')


def strip_block_comments(text: str) -> str:
    return REGEX_BLOCK_COMMENT.sub('', text)


def read_json_text(path: Union[str, Path]) -> str:
    path = Path(path)
    try:
        content = path.read_bytes()
    except OSError as e_read:
        raise FileReadError(path, f"Error reading file: {e_read.strerror or e_read}") from e_read
    return decode_json_bytes(content)


def load_json_file(path: Union[str, Path]) -> Any:
    """
    Reads a JSON document, tolerating /* ... */ comments.
    Raises FileReadError when the file cannot be read and
    JsonParseError when the remaining text is not valid JSON.
    """
    text = strip_block_comments(read_json_text(path))
    try:
        return json.loads(text)
    except json.JSONDecodeError as e_json:
        raise JsonParseError(path, f"Error parsing JSON: {e_json}") from e_json
    except RecursionError as e_depth:
        raise JsonParseError(path, f"Error parsing JSON: nesting too deep ({e_depth})") from e_depth


def json_kind(node: Any) -> JsonKind:
    # bool is a subclass of int, so it has to be checked first.
    if node is None:
        return JsonKind.NULL
    if isinstance(node, bool):
        return JsonKind.BOOL
    if isinstance(node, (int, float)):
        return JsonKind.NUMBER
    if isinstance(node, str):
        return JsonKind.STRING
    if isinstance(node, (list, tuple)):
        return JsonKind.ARRAY
    if isinstance(node, dict):
        return JsonKind.OBJECT
    raise TypeError(f"Not a JSON value: {type(node).__name__}")


def classify_reference(value: str,
                       image_extensions: Tuple[str, ...] = IMAGE_EXTENSIONS,
                       video_extensions: Tuple[str, ...] = VIDEO_EXTENSIONS) -> Optional[MediaKind]:
    """
    Decides whether a string names an image, a video or neither, by suffix.
    Images are checked first, so a suffix present in both lists counts as an image.
    """
    lowered = value.lower()
    if lowered.endswith(tuple(ext.lower() for ext in image_extensions)):
        return MediaKind.IMAGE
    if lowered.endswith(tuple(ext.lower() for ext in video_extensions)):
        return MediaKind.VIDEO
    return None


def find_media_references(data: Any,
                          image_base_url: str = "",
                          video_base_url: str = "",
                          image_extensions: Tuple[str, ...] = IMAGE_EXTENSIONS,
                          video_extensions: Tuple[str, ...] = VIDEO_EXTENSIONS) -> Set[str]:
    """
    Walks a parsed JSON tree depth-first and returns the rewritten media references.

    Every string leaf whose suffix matches a media extension is reduced to its
    bare filename and prefixed with the base URL of its kind. Object keys are
    not inspected; object and array values are recursed into whatever their key.
    """
    found: Set[str] = set()
    base_urls = {MediaKind.IMAGE: image_base_url, MediaKind.VIDEO: video_base_url}

    # Explicit stack, so nesting depth is not bounded by the interpreter's recursion limit.
    pending: List[Any] = [data]
    while pending:
        node = pending.pop()
        kind = json_kind(node)
        if kind is JsonKind.OBJECT:
            pending.extend(reversed(list(node.values())))
        elif kind is JsonKind.ARRAY:
            pending.extend(reversed(node))
        elif kind is JsonKind.STRING:
            media_kind = classify_reference(node, image_extensions, video_extensions)
            if media_kind is not None:
                found.add(rewrite_reference(base_urls[media_kind], bare_filename(node)))

    return found


def scan_json_file(path: Union[str, Path],
                   image_base_url: str = "",
                   video_base_url: str = "") -> Set[str]:
    data = load_json_file(path)
    return find_media_references(data, image_base_url, video_base_url)
