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


#!/usr/bin/env python3
# media_harvester.py

import argparse
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional, List, Callable, Dict, Any, Set, Tuple, NamedTuple, Union

import requests

from media_finder import MediaScanError, FileReadError, classify_reference, scan_json_file
from media_downloader import DownloadOutcome, create_session, download_file
from url_utils import bare_filename, clean_base_url

# --- Global variables and settings ---
DOWNLOADS_DIR_NAME = "downloads"
DEFAULT_MAX_WORKERS = 4

ProgressCallback = Callable[[str, Dict[str, Any]], None]


class HarvestReport(NamedTuple):
    scanned_files: List[Path]
    failed_files: Dict[Path, str]
    references: Set[str]
    outcomes: List[DownloadOutcome]

    @property
    def downloaded_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed_download_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.success)


def _notify(progress_callback: Optional[ProgressCallback], type_str: str, data: Dict[str, Any]) -> None:
    if progress_callback:
        try:
            progress_callback(type_str, data)
        except Exception as e_prog:
            print(f"Error in progress_callback {type_str}: {e_prog}", file=sys.stderr)


def list_json_files(folder: Union[str, Path]) -> List[Path]:
    """
    Immediate regular files of folder whose name ends with '.json' (any case).
    Subdirectories are not entered. Raises FileReadError if folder cannot be listed.
    """
    folder = Path(folder)
    try:
        entries = sorted(folder.iterdir(), key=lambda p: p.name)
    except OSError as e_list:
        raise FileReadError(folder, f"Error processing folder: {e_list.strerror or e_list}") from e_list
    return [entry for entry in entries if entry.name.lower().endswith('.json') and entry.is_file()]


def scan_folder(folder: Union[str, Path],
                image_base_url: str = "",
                video_base_url: str = "",
                progress_callback: Optional[ProgressCallback] = None) -> Tuple[Set[str], List[Path], Dict[Path, str]]:
    """
    Scans every JSON file of folder and unions the references they contain.
    A file that cannot be read or parsed is reported and skipped.

    Returns (references, scanned_files, failed_files).
    """
    all_references: Set[str] = set()
    scanned_files: List[Path] = []
    failed_files: Dict[Path, str] = {}

    for json_path in list_json_files(folder):
        _notify(progress_callback, "status", {"message": f"Processing file: {json_path}"})
        try:
            file_references = scan_json_file(json_path, image_base_url, video_base_url)
        except MediaScanError as e_scan:
            failed_files[json_path] = e_scan.message
            _notify(progress_callback, "file_failed", {"path": str(json_path), "message": e_scan.message})
            continue
        scanned_files.append(json_path)
        all_references.update(file_references)
        _notify(progress_callback, "file_scanned", {"path": str(json_path), "found": len(file_references)})

    return all_references, scanned_files, failed_files


def local_filename(reference: str) -> str:
    return bare_filename(reference)


def download_references(references: Set[str],
                        target_dir: Union[str, Path],
                        session: Optional[requests.Session] = None,
                        max_workers: int = DEFAULT_MAX_WORKERS,
                        timeout: Optional[float] = None,
                        progress_callback: Optional[ProgressCallback] = None) -> List[DownloadOutcome]:
    """
    Downloads every reference into target_dir, named by its bare filename.
    Failures are reported per reference and never stop the remaining downloads.
    Outcomes come back in completion order.
    """
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    own_session = session is None
    if own_session:
        session = create_session(pool_size=max(max_workers, 1))

    outcomes: List[DownloadOutcome] = []
    total = len(references)

    def _record(outcome: DownloadOutcome) -> None:
        outcomes.append(outcome)
        if outcome.success:
            _notify(progress_callback, "downloaded", {"url": outcome.url, "path": str(outcome.path),
                                                      "processed": len(outcomes), "total_expected": total})
        else:
            _notify(progress_callback, "download_failed", {"url": outcome.url, "path": str(outcome.path),
                                                           "reason": outcome.reason, "status_code": outcome.status_code,
                                                           "processed": len(outcomes), "total_expected": total})

    def _download_one(reference: str) -> DownloadOutcome:
        destination = target_dir / local_filename(reference)
        try:
            return download_file(reference, destination, session,
                                 media_kind=classify_reference(reference), timeout=timeout)
        except Exception as e_dl:
            # Anything download_file did not turn into an outcome still fails only this reference.
            return DownloadOutcome(reference, destination, False, reason=f"{type(e_dl).__name__}: {e_dl}")

    try:
        ordered_references = sorted(references)
        if max_workers <= 1:
            for reference in ordered_references:
                _notify(progress_callback, "status", {"message": f"Downloading: {reference}"})
                _record(_download_one(reference))
        else:
            with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="MediaDownloader") as executor:
                futures_map = {executor.submit(_download_one, reference): reference for reference in ordered_references}
                for future_task in as_completed(futures_map):
                    _record(future_task.result())
    finally:
        if own_session:
            session.close()

    return outcomes


def harvest(folder: Union[str, Path],
            image_base_url: str = "",
            video_base_url: str = "",
            download_dir: Optional[Union[str, Path]] = None,
            max_workers: int = DEFAULT_MAX_WORKERS,
            timeout: Optional[float] = None,
            list_only: bool = False,
            session: Optional[requests.Session] = None,
            progress_callback: Optional[ProgressCallback] = None) -> HarvestReport:
    """
    Full run: scan every JSON file in folder, merge the references into one
    unique set, then download that set into download_dir
    ('downloads' under the working directory by default).

    Only a folder that cannot be listed aborts the run (FileReadError).
    """
    references, scanned_files, failed_files = scan_folder(
        folder, image_base_url, video_base_url, progress_callback=progress_callback
    )
    _notify(progress_callback, "status", {"message": f"Found {len(references)} unique media references "
                                                     f"in {len(scanned_files)} file(s)."})

    outcomes: List[DownloadOutcome] = []
    if not list_only:
        # The output directory is created even when nothing was found.
        target_dir = Path(download_dir) if download_dir is not None else Path.cwd() / DOWNLOADS_DIR_NAME
        outcomes = download_references(references, target_dir, session=session, max_workers=max_workers,
                                       timeout=timeout, progress_callback=progress_callback)

    report = HarvestReport(scanned_files, failed_files, references, outcomes)
    _notify(progress_callback, "finished", {
        "references": sorted(references),
        "unique_count": len(references),
        "downloaded": report.downloaded_count,
        "failed_downloads": report.failed_download_count,
        "failed_files": len(failed_files),
    })
    return report


# --- Console front end ---

def print_progress(type_str: str, data: Dict[str, Any]) -> None:
    if type_str == "status":
        print(data["message"])
    elif type_str == "file_scanned":
        print(f"  found {data['found']} media reference(s) in {data['path']}")
    elif type_str == "file_failed":
        print(f"Error in file {data['path']}: {data['message']}", file=sys.stderr)
    elif type_str == "downloaded":
        print(f"[{data['processed']}/{data['total_expected']}] Downloaded: {data['path']}")
    elif type_str == "download_failed":
        print(f"[{data['processed']}/{data['total_expected']}] Failed: {data['url']} ({data['reason']})", file=sys.stderr)
    elif type_str == "finished":
        print("Found file paths:\n")
        for reference in data["references"]:
            print(reference)
        print(f"\nTotal unique files found: {data['unique_count']}")
        if data["downloaded"] or data["failed_downloads"]:
            print(f"Downloaded: {data['downloaded']}, failed: {data['failed_downloads']}")
        if data["failed_files"]:
            print(f"JSON files skipped because of errors: {data['failed_files']}", file=sys.stderr)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="json-media-harvester",
        description="Find image and video references in a folder of JSON files and download them."
    )
    parser.add_argument("folder", nargs="?", help="folder with .json files (prompted for if omitted)")
    parser.add_argument("--image-base-url", help="base URL for image files (prompted for if omitted)")
    parser.add_argument("--video-base-url", help="base URL for video files (prompted for if omitted)")
    parser.add_argument("--output", default=DOWNLOADS_DIR_NAME,
                        help=f"download directory, relative to the working directory (default: {DOWNLOADS_DIR_NAME})")
    parser.add_argument("--workers", type=int, default=DEFAULT_MAX_WORKERS,
                        help=f"parallel downloads, 1 downloads one file at a time (default: {DEFAULT_MAX_WORKERS})")
    parser.add_argument("--timeout", type=float, default=None, help="per-request timeout in seconds (default: none)")
    parser.add_argument("--list-only", action="store_true", help="only list the found references, download nothing")
    return parser


def _prompt(question: str) -> str:
    try:
        return input(question)
    except EOFError:
        return ""


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    folder_arg = args.folder or _prompt("Folder with JSON files: ").strip()
    if not folder_arg:
        print("No folder given.", file=sys.stderr)
        return 1
    image_base_url = clean_base_url(args.image_base_url if args.image_base_url is not None
                                    else _prompt("Base URL for images (empty for none): "))
    video_base_url = clean_base_url(args.video_base_url if args.video_base_url is not None
                                    else _prompt("Base URL for videos (empty for none): "))

    folder = Path.cwd() / folder_arg
    try:
        harvest(
            folder,
            image_base_url,
            video_base_url,
            download_dir=Path.cwd() / args.output,
            max_workers=args.workers,
            timeout=args.timeout,
            list_only=args.list_only,
            progress_callback=print_progress,
        )
    except FileReadError as e_folder:
        print(e_folder.message, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
