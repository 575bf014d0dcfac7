import argparse
import os
import sys
from collections import namedtuple

import requests

from github_url import ParseError, contents_api_url, parse_github_url, raw_file_url

MAX_DEPTH = 64
MAX_ENTRIES = 10000
CHUNK_SIZE = 64 * 1024
TIMEOUT = None

ContentEntry = namedtuple("ContentEntry", ["name", "path", "kind", "download_url"])
DownloadStats = namedtuple("DownloadStats", ["files", "directories", "skipped"])


class FetchError(Exception):
    pass


class HTTPStatusError(FetchError):
    def __init__(self, url, status_code, reason=""):
        self.url = url
        self.status_code = status_code
        status = f"{status_code} {reason}" if reason else str(status_code)
        super().__init__(f"HTTP status {status} at URL {url}")


class DecodeError(FetchError):
    pass


class WriteError(FetchError):
    def __init__(self, path, error):
        self.path = path
        super().__init__(f"cannot write {path}: {error}")


class TraversalLimitError(FetchError):
    pass


def get_headers():
    return {"Accept": "application/vnd.github.v3+json"}


def _get(url, headers=None, stream=False):
    try:
        response = requests.get(url, headers=headers, stream=stream, timeout=TIMEOUT)
    except requests.RequestException as e:
        raise FetchError(f"request to {url} failed: {e}") from e
    if not 200 <= response.status_code < 300:
        response.close()
        raise HTTPStatusError(url, response.status_code, response.reason or "")
    return response


def make_directory(path):
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise WriteError(path, e) from e


def download_file(file_url, output_path):
    print(f"Downloading {file_url}...")
    with _get(file_url, stream=True) as response:
        parent = os.path.dirname(output_path)
        if parent:
            make_directory(parent)
        try:
            with open(output_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
        # RequestException is an OSError subclass, so it has to come first
        except requests.RequestException as e:
            raise FetchError(f"download of {file_url} failed: {e}") from e
        except OSError as e:
            raise WriteError(output_path, e) from e
    print(f"Saved {file_url} to {output_path}")


def decode_listing(data, url):
    """Turn a contents API response body into ContentEntry values, keeping API order."""
    if not isinstance(data, list):
        raise DecodeError(f"expected a list of entries from {url}, got {type(data).__name__}")
    entries = []
    for item in data:
        if not isinstance(item, dict):
            raise DecodeError(f"unexpected entry {item!r} from {url}")
        name, path, kind = item.get("name"), item.get("path"), item.get("type")
        if not all(isinstance(value, str) for value in (name, path, kind)):
            raise DecodeError(f"entry without name/path/type from {url}: {item!r}")
        # names become local path components
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise DecodeError(f"invalid entry name {name!r} from {url}")
        download_url = item.get("download_url")
        if kind == "file" and not (isinstance(download_url, str) and download_url):
            raise DecodeError(f"file entry {path} without download_url from {url}")
        entries.append(ContentEntry(name, path, kind, download_url))
    return entries


def fetch_listing(owner, repo, branch, path):
    api_url = contents_api_url(owner, repo, path, branch)
    with _get(api_url, headers=get_headers()) as response:
        try:
            data = response.json()
        except ValueError as e:
            raise DecodeError(f"invalid JSON from {api_url}: {e}") from e
    return decode_listing(data, api_url)


def download_directory(owner, repo, branch, dir_path, output_dir,
                       max_depth=MAX_DEPTH, max_entries=MAX_ENTRIES):
    """
    Download every file below dir_path into output_dir.

    Local paths are built from entry names only, so output_dir ends up holding
    the contents of dir_path and nothing of the repository path above it.
    The walk is depth-first in API order: a subdirectory is finished before
    its next sibling is looked at. The first failure aborts the whole walk.
    """
    files = directories = skipped = 0
    seen = 0

    def listing(path):
        nonlocal seen
        entries = fetch_listing(owner, repo, branch, path)
        seen += len(entries)
        if max_entries is not None and seen > max_entries:
            raise TraversalLimitError(f"more than {max_entries} entries below {dir_path or '/'}")
        return iter(entries)

    # (pending entries, local directory, depth)
    stack = [(listing(dir_path), output_dir, 0)]
    while stack:
        entries, local_dir, depth = stack[-1]
        entry = next(entries, None)
        if entry is None:
            stack.pop()
            continue

        local_path = os.path.join(local_dir, entry.name)
        if entry.kind == "file":
            download_file(entry.download_url, local_path)
            files += 1
        elif entry.kind == "dir":
            if max_depth is not None and depth + 1 > max_depth:
                raise TraversalLimitError(f"{entry.path} is nested deeper than {max_depth} levels")
            print(f"Creating directory {local_path}")
            make_directory(local_path)
            directories += 1
            stack.append((listing(entry.path), local_path, depth + 1))
        else:
            print(f"Skipping {entry.path} (unsupported type '{entry.kind}')")
            skipped += 1

    return DownloadStats(files, directories, skipped)


def pull_github(url, dest=".", max_depth=MAX_DEPTH, max_entries=MAX_ENTRIES):
    request = parse_github_url(url)
    if request.is_file:
        output_path = os.path.join(dest, request.local_name)
        download_file(raw_file_url(request), output_path)
        return output_path

    output_dir = os.path.join(dest, request.local_name or request.repository)
    print(f"Creating directory {output_dir}")
    make_directory(output_dir)
    print(f"Downloading directory: {request.path or '/'}...")
    stats = download_directory(request.owner, request.repository, request.branch,
                               request.path, output_dir, max_depth, max_entries)
    print(f"Total files: {stats.files}")
    print(f"Total folders: {stats.directories}")
    if stats.skipped:
        print(f"Skipped entries: {stats.skipped}")
    return output_dir


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Download a single file or a whole directory from a GitHub blob/tree URL"
    )
    parser.add_argument("url", help="GitHub URL, e.g. https://github.com/<owner>/<repo>/tree/<branch>/<path>")
    parser.add_argument("--dest", default=".", help="local directory to download into (default: current directory)")
    parser.add_argument("--max-depth", type=int, default=MAX_DEPTH,
                        help=f"deepest directory level to descend into (default: {MAX_DEPTH})")
    parser.add_argument("--max-entries", type=int, default=MAX_ENTRIES,
                        help=f"maximum number of listed entries to visit (default: {MAX_ENTRIES})")
    args = parser.parse_args(argv)

    try:
        output_path = pull_github(args.url, args.dest, args.max_depth, args.max_entries)
    except (ParseError, FetchError) as e:
        print(f"Error: {e}")
        return 1
    print(f"Successfully downloaded to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
