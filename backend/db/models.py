"""Generation job status stores.

The orchestrator only talks to a ``JobStore``. Records are created on
submit and never expire. Writes are last-writer-wins; each job only ever
touches its own row, so no cross-job locking is needed.
"""
from __future__ import annotations

import os
import threading
from typing import Any, Protocol

from db.connection import get_conn
from demo.workflow import GenerationJob

_JOB_COLUMNS = (
    "id",
    "status",
    "progress",
    "message",
    "raw_video_path",
    "events_path",
    "output_path",
    "error",
    "started_at",
    "completed_at",
)


class JobStore(Protocol):
    def create_job(self, job: GenerationJob) -> None: ...

    def update_job(self, job_id: str, **fields: Any) -> GenerationJob | None: ...

    def get_job(self, job_id: str) -> GenerationJob | None: ...

    def list_jobs(self) -> list[GenerationJob]: ...


# ── IN-MEMORY ─────────────────────────────


class InMemoryJobStore:
    """Process-local store. Jobs live until the process exits."""

    def __init__(self) -> None:
        self._jobs: dict[str, GenerationJob] = {}
        self._lock = threading.Lock()

    def create_job(self, job: GenerationJob) -> None:
        with self._lock:
            self._jobs[job.id] = job

    def update_job(self, job_id: str, **fields: Any) -> GenerationJob | None:
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                return None
            updated = current.model_copy(update=fields)
            self._jobs[job_id] = updated
            return updated

    def get_job(self, job_id: str) -> GenerationJob | None:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> list[GenerationJob]:
        with self._lock:
            jobs = list(self._jobs.values())
        return sorted(jobs, key=lambda j: j.started_at, reverse=True)


# ── POSTGRES ──────────────────────────────

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS generation_jobs (
    id             TEXT PRIMARY KEY,
    status         TEXT NOT NULL,
    progress       INTEGER NOT NULL DEFAULT 0,
    message        TEXT,
    raw_video_path TEXT,
    events_path    TEXT,
    output_path    TEXT,
    error          TEXT,
    started_at     TEXT NOT NULL,
    completed_at   TEXT
)
"""


class PostgresJobStore:
    """Shared store so Celery workers and the API see the same records."""

    def __init__(self, ensure_schema: bool = True) -> None:
        if ensure_schema:
            self.ensure_schema()

    def ensure_schema(self) -> None:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)

    def create_job(self, job: GenerationJob) -> None:
        row = job.model_dump()
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO generation_jobs ({", ".join(_JOB_COLUMNS)})
                    VALUES ({", ".join(["%s"] * len(_JOB_COLUMNS))})
                    """,
                    tuple(row[c] for c in _JOB_COLUMNS),
                )

    def update_job(self, job_id: str, **fields: Any) -> GenerationJob | None:
        unknown = set(fields) - set(_JOB_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown job fields: {sorted(unknown)}")
        if not fields:
            return self.get_job(job_id)
        assignments = ", ".join(f"{name}=%s" for name in fields)
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"UPDATE generation_jobs SET {assignments} WHERE id=%s RETURNING *",
                    (*fields.values(), job_id),
                )
                row = cur.fetchone()
        return GenerationJob(**row) if row else None

    def get_job(self, job_id: str) -> GenerationJob | None:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT * FROM generation_jobs WHERE id=%s", (job_id,))
                row = cur.fetchone()
        return GenerationJob(**row) if row else None

    def list_jobs(self) -> list[GenerationJob]:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT * FROM generation_jobs ORDER BY started_at DESC")
                rows = cur.fetchall()
        return [GenerationJob(**r) for r in rows]


def get_job_store() -> JobStore:
    """Build the store selected by the JOB_STORE env var (memory | postgres)."""
    kind = os.getenv("JOB_STORE", "memory").lower()
    if kind == "postgres":
        return PostgresJobStore()
    if kind == "memory":
        return InMemoryJobStore()
    raise ValueError(f"Unknown JOB_STORE: {kind}")
