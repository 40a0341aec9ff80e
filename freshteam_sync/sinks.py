from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, List, Optional, TextIO

from freshteam_sync.models import JobSummary


def _record(posting: JobSummary) -> Dict[str, Any]:
    return posting.as_dict()


class JobPostingSink:
    """Caller-owned destination for synced postings; written in traversal order."""

    def write(self, posting: JobSummary) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return None


class InMemorySink(JobPostingSink):
    def __init__(self) -> None:
        self.items: List[JobSummary] = []

    def write(self, posting: JobSummary) -> None:
        self.items.append(posting)


class JsonlSink(JobPostingSink):
    """Writes one JSON object per posting; the file is replaced atomically on close."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._tmp_path = f"{path}.tmp"
        os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
        self._fh: TextIO = open(self._tmp_path, "w", encoding="utf-8")
        self.count = 0

    @property
    def path(self) -> str:
        return self._path

    def write(self, posting: JobSummary) -> None:
        self._fh.write(json.dumps(_record(posting), ensure_ascii=True, sort_keys=True, default=str))
        self._fh.write("\n")
        self.count += 1

    def close(self) -> None:
        if self._fh.closed:
            return
        self._fh.close()
        os.replace(self._tmp_path, self._path)


class StdoutSink(JobPostingSink):
    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream or sys.stdout
        self.count = 0

    def write(self, posting: JobSummary) -> None:
        print(json.dumps(_record(posting), ensure_ascii=True, sort_keys=True, default=str), file=self._stream)
        self.count += 1
