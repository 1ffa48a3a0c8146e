"""
Repository Content Fetcher — Hackathon Judging Agent

PURPOSE:
    Turn a GitHub repository into a single text "code pack" that the code
    review and prize review stages send to Gemini as evidence.

    1. List every blob of the default branch tree (one recursive tree call).
    2. Drop build output, dependency folders, lockfiles and binaries.
    3. Drop files over the size cap (200KB by default).
    4. Download the rest with a fixed pool of 4 workers.
    5. Concatenate "## File: <path>\\n<content>\\n\\n" blocks in tree order.

    This stage does NOT clone or execute anything. It only reads file
    contents through the GitHub API.

CALLED BY:
    stage_1_validate_repository.py, after the repository is known to be
    public.

NOTES:
    - A file whose download fails contributes an empty block; the rest of
      the pack is still returned.
    - Workers finish in any order. The pack is assembled from the
      enumeration order, so the same tree always produces the same pack.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

from .cancellation import CancellationToken
from .github_client import GitHubAPI, GitHubError
from .models import RepositoryInfo

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4
DEFAULT_MAX_FILE_BYTES = 200_000

# Directory names; matched as "/<name>/" anywhere in the path.
EXCLUDED_DIRS = (
    ".git", "node_modules", "__pycache__", ".venv", "venv", "env",
    "dist", "build", "out", ".next", ".nuxt", ".output", ".cache", ".tox",
    ".mypy_cache", ".pytest_cache", "target", "vendor", "Pods",
    ".gradle", ".idea", ".vscode", "coverage", "htmlcov", ".turbo",
    ".vercel", ".expo", "DerivedData",
)

# Lockfiles and other generated junk; matched as substrings of the path.
EXCLUDED_NAMES = (
    "package-lock.json", "yarn.lock", "pnpm-lock.yaml", "bun.lockb",
    "poetry.lock", "pipfile.lock", "uv.lock", "cargo.lock", "gemfile.lock",
    "composer.lock", "go.sum", ".ds_store", ".min.js", ".min.css",
)

# Binary, media and archive extensions; matched against the end of the path.
EXCLUDED_EXTENSIONS = (
    ".pyc", ".pyo", ".class", ".o", ".obj", ".a", ".lib", ".so", ".dylib",
    ".dll", ".exe", ".bin", ".dat", ".db", ".sqlite", ".lock", ".jar", ".war",
    ".png", ".jpg", ".jpeg", ".gif", ".ico", ".svg", ".webp", ".bmp", ".tiff",
    ".psd", ".mp3", ".mp4", ".wav", ".mov", ".avi", ".webm", ".ogg",
    ".woff", ".woff2", ".ttf", ".otf", ".eot", ".pdf",
    ".zip", ".tar", ".gz", ".tgz", ".bz2", ".xz", ".rar", ".7z",
    ".pkl", ".pt", ".onnx", ".h5", ".npy", ".parquet", ".map",
)


def is_excluded_path(path: str) -> bool:
    """Case-insensitive check against the directory, junk-file and extension blocklists."""
    lowered = "/" + path.lower()
    if any(f"/{name.lower()}/" in lowered for name in EXCLUDED_DIRS):
        return True
    if any(name in lowered for name in EXCLUDED_NAMES):
        return True
    return lowered.endswith(EXCLUDED_EXTENSIONS)


def select_files(tree: Iterable[dict], max_file_bytes: int = DEFAULT_MAX_FILE_BYTES) -> list:
    """Paths of the tree entries worth reading, in enumeration order."""
    selected = []
    for entry in tree:
        path = entry.get("path", "")
        if not path or is_excluded_path(path):
            continue
        if entry.get("size", 0) > max_file_bytes:
            logger.debug("Skipping %s (%s bytes)", path, entry.get("size"))
            continue
        selected.append(path)
    return selected


def format_code_pack(files: Iterable[tuple]) -> str:
    return "".join(f"## File: {path}\n{content}\n\n" for path, content in files)


def fetch_repo_content(
    github: GitHubAPI,
    repo_info: RepositoryInfo,
    ref: str,
    cancel: CancellationToken,
    concurrency: int = DEFAULT_CONCURRENCY,
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
) -> str:
    """
    Build the code pack for ``repo_info`` at ``ref``.

    Returns an empty string when the repository has no eligible files.
    Raises GitHubError if the tree itself cannot be listed, and
    ReviewCancelled if the run is cancelled while downloading.
    """
    tree = github.get_tree(repo_info.owner, repo_info.repo, ref, cancel)
    paths = select_files(tree, max_file_bytes)
    logger.debug(
        "Repository %s: %d tree entries, %d eligible files",
        repo_info.full_name, len(tree), len(paths),
    )
    if not paths:
        return ""

    def fetch_one(path: str) -> str:
        cancel.check()
        try:
            return github.get_file_text(repo_info.owner, repo_info.repo, path, ref, cancel)
        except GitHubError as e:
            logger.warning("Failed to fetch %s from %s: %s", path, repo_info.full_name, e)
            return ""

    executor = ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="repo-fetch")
    try:
        contents = list(executor.map(fetch_one, paths))
    finally:
        executor.shutdown(wait=True, cancel_futures=True)

    return format_code_pack(zip(paths, contents))
