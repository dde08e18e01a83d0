"""
Output Manager — Run folders, CSV writing, and retention cleanup.

Every export gets its own folder under OUTPUT_DIR named after the minute the
run started and the provider, e.g. "20261019_1430_GitHub_Enterprise_Users".
The orchestrator puts two files in it:
  - enterprise-users-export[-basic].csv   the member rows
  - export_results.json                   counts, timings and errors

The folder is created at the save step, after every page has been fetched
and mapped. The CSV goes to a temporary file next to its final name and is
renamed into place, so the final path never holds a half-written file.

Before an export, run folders older than OUTPUT_RETENTION_DAYS are removed.
Folders whose names do not start with a run timestamp are left alone.
retention_days=0 disables cleanup.
"""

import csv
import json
import os
import re
import shutil
import tempfile
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

RUN_FOLDER_FORMAT = "%Y%m%d_%H%M"
RUN_FOLDER_RE = re.compile(r"^(\d{8}_\d{4})_")


def _csv_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return value


def _safe_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]", "_", name)


def run_folder_time(folder_name: str) -> Optional[datetime]:
    """Start time encoded in a run folder name, or None for other folders."""
    match = RUN_FOLDER_RE.match(folder_name)
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), RUN_FOLDER_FORMAT)
    except ValueError:
        return None


class OutputManager:
    """Owns the output folder of one export run.

    Attributes:
        base_dir: OUTPUT_DIR, parent of all run folders.
        provider_name: Folder name suffix; anything but letters, digits,
                       "-" and "_" becomes "_".
        retention_days: Age in days after which run folders are removed.
        current_dir: This run's folder, None until create_timestamped_dir().
    """

    def __init__(self, base_dir: str, provider_name: str, retention_days: int = 30):
        self.base_dir = base_dir
        self.provider_name = provider_name
        self.retention_days = retention_days
        self.current_dir = None
        self.started = datetime.now()

    def create_timestamped_dir(self) -> str:
        """Create (or reuse) this run's folder and return its path."""
        folder = f"{self.started.strftime(RUN_FOLDER_FORMAT)}_{_safe_name(self.provider_name)}"
        self.current_dir = os.path.join(self.base_dir, folder)
        os.makedirs(self.current_dir, exist_ok=True)
        return self.current_dir

    def cleanup_old_folders(self, debug: bool = False) -> int:
        """Delete run folders older than retention_days.

        Returns:
            How many folders were deleted.
        """
        if self.retention_days <= 0 or not os.path.isdir(self.base_dir):
            return 0

        cutoff = datetime.now() - timedelta(days=self.retention_days)
        removed = 0
        with os.scandir(self.base_dir) as entries:
            for entry in entries:
                started = run_folder_time(entry.name)
                if not entry.is_dir() or started is None or started >= cutoff:
                    continue
                try:
                    shutil.rmtree(entry.path)
                except OSError as e:
                    print(f"  Warning: could not remove old output folder {entry.name}: {e}")
                    continue
                removed += 1
                if debug:
                    print(f"  Removed old output folder: {entry.name}")
        return removed

    def get_output_path(self, filename: str) -> str:
        """Path of `filename` inside this run's folder.

        Raises:
            RuntimeError: If create_timestamped_dir() has not been called yet.
        """
        if self.current_dir is None:
            raise RuntimeError("No run folder yet; call create_timestamped_dir() first")
        return os.path.join(self.current_dir, filename)

    def write_csv(self, rows: Iterable[Dict[str, Any]], filename: str,
                  columns: Sequence[Tuple[str, str]]) -> str:
        """Write rows to a CSV file in the current output directory.

        Args:
            rows: Row dicts keyed by column id. Unknown keys are ignored,
                  missing keys are written as empty cells.
            filename: Target filename (e.g., "enterprise-users-export.csv").
            columns: (column id, header title) pairs in output order.

        Returns:
            The full path of the written file.

        Raises:
            OSError: If the directory is not writable or the disk is full.
        """
        path = self.get_output_path(filename)
        keys = [key for key, _ in columns]
        header = {key: title for key, title in columns}

        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{filename}.", suffix=".tmp", dir=os.path.dirname(path)
        )
        try:
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=keys, extrasaction="ignore", restval="")
                writer.writerow(header)
                for row in rows:
                    writer.writerow({k: _csv_value(v) for k, v in row.items()})
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        return path

    def write_json(self, data: Dict[str, Any], filename: str) -> str:
        """Write a JSON document to the current output directory."""
        path = self.get_output_path(filename)
        with open(path, "w") as f:
            json.dump(data, f, indent=2, default=str)
        return path

