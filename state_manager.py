import asyncio
from typing import Dict, List, Optional

from models import Job

class JobStateManager:
    """In-memory job store. Nothing survives a process restart."""

    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def add(self, job: Job) -> Job:
        if job.id in self._jobs:
            raise KeyError(f"Job {job.id} already exists")
        self._jobs[job.id] = job
        self._locks[job.id] = asyncio.Lock()
        return job

    def get(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    def list(self) -> List[Job]:
        return sorted(self._jobs.values(), key = lambda job: job.created_at, reverse = True)

    def exists(self, job_id: str) -> bool:
        return job_id in self._jobs

    def lock(self, job_id: str) -> asyncio.Lock:
        # ジョブ単位の排他。Webhook ハンドラーは入口で取得し出口で解放する
        lock = self._locks.get(job_id)
        if lock is None:
            lock = self._locks.setdefault(job_id, asyncio.Lock())
        return lock
