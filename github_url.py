from collections import namedtuple
from urllib.parse import urlparse

DEFAULT_BRANCH = "main"
FALLBACK_FILE_NAME = "downloaded_file"

RAW_URL = "https://raw.githubusercontent.com/{owner}/{repository}/{branch}/{path}"
API_URL = "https://api.github.com/repos/{owner}/{repository}/contents/{path}?ref={branch}"

RequestDescriptor = namedtuple(
    "RequestDescriptor",
    ["owner", "repository", "branch", "path", "is_file", "local_name"],
)


class ParseError(ValueError):
    pass


def parse_github_url(url):
    """
    Split a browser URL such as https://github.com/<owner>/<repo>/blob/<branch>/<path>
    or https://github.com/<owner>/<repo>/tree/[<branch>/]<path> into a RequestDescriptor.

    A tree URL with a single segment after the marker is read as a path on the
    default branch. Blob URLs always need the branch and a path.
    """
    segments = urlparse(url).path.split("/")[1:]
    if len(segments) < 3 or not segments[0] or not segments[1]:
        raise ParseError(f"malformed URL: {url}")

    owner, repository, marker = segments[:3]
    rest = segments[3:]

    if marker == "blob":
        if len(rest) < 2 or not rest[0]:
            raise ParseError(f"malformed file URL: {url}")
        branch = rest[0]
        path = "/".join(rest[1:]).strip("/")
        local_name = path.split("/")[-1] or FALLBACK_FILE_NAME
        return RequestDescriptor(owner, repository, branch, path, True, local_name)

    if marker == "tree":
        if len(rest) >= 2:
            branch = rest[0] or DEFAULT_BRANCH
            path = "/".join(rest[1:])
        else:
            branch = DEFAULT_BRANCH
            path = "/".join(rest)
        path = path.strip("/")
        return RequestDescriptor(owner, repository, branch, path, False, path.split("/")[-1])

    raise ParseError(f"missing blob/tree marker: {url}")


def raw_file_url(descriptor):
    return RAW_URL.format(
        owner=descriptor.owner,
        repository=descriptor.repository,
        branch=descriptor.branch,
        path=descriptor.path,
    )


def contents_api_url(owner, repository, path, branch):
    return API_URL.format(owner=owner, repository=repository, path=path, branch=branch)
