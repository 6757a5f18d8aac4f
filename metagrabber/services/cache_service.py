"""
Cache service module for per-job temporary workspaces.

This module provides utilities for:
- Creating a workspace directory namespaced by job ID
- Deleting a job's workspace when the job ends, success or failure
- Sweeping workspaces orphaned by a killed process
"""

import os
import shutil
import time
import uuid
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from metagrabber.config import get_settings

logger = logging.getLogger(__name__)


def new_job_id() -> str:
    """Generate a unique job identifier used to namespace temporary files."""
    return uuid.uuid4().hex[:12]


def get_jobs_dir(cache_dir: Optional[str] = None) -> str:
    return os.path.join(cache_dir or get_settings().cache_dir, "jobs")


@contextmanager
def job_workspace(job_id: str, cache_dir: Optional[str] = None) -> Iterator[str]:
    """
    Create <cache_dir>/jobs/<job_id>/ and delete it on exit.

    Cleanup runs in a finally block, so the directory is removed on success,
    on error, and when the surrounding request is cancelled.

    Example:
        >>> with job_workspace("3f9a1c2b7d4e") as workspace:
        ...     audio_path = os.path.join(workspace, "audio.mp3")
    """
    workspace = os.path.join(get_jobs_dir(cache_dir), job_id)
    os.makedirs(workspace, exist_ok=True)
    try:
        yield workspace
    finally:
        shutil.rmtree(workspace, ignore_errors=True)
        logger.debug("Removed workspace %s", workspace)


def cleanup_cache(cache_dir: Optional[str] = None, ttl_hours: Optional[int] = None) -> dict:
    """
    Delete job workspaces older than TTL.

    Workspaces are normally removed by job_workspace(); anything older than the
    TTL was left behind by a process that died mid-job.

    Returns:
        Summary dict with deleted workspace count and freed bytes
    """
    settings = get_settings()
    ttl = settings.cache_ttl_hours if ttl_hours is None else ttl_hours
    jobs_dir = get_jobs_dir(cache_dir)
    cutoff = time.time() - (ttl * 3600)
    deleted = 0
    freed_bytes = 0

    if not os.path.exists(jobs_dir):
        return {"deleted": 0, "freed_bytes": 0}

    for name in os.listdir(jobs_dir):
        path = os.path.join(jobs_dir, name)
        if not os.path.isdir(path) or os.path.getmtime(path) >= cutoff:
            continue
        for root, _, files in os.walk(path):
            for filename in files:
                try:
                    freed_bytes += os.path.getsize(os.path.join(root, filename))
                except OSError:
                    pass
        shutil.rmtree(path, ignore_errors=True)
        deleted += 1

    if deleted:
        logger.info("Swept %d stale workspace(s), freed %d bytes", deleted, freed_bytes)

    return {"deleted": deleted, "freed_bytes": freed_bytes}
