"""
Writing monitoring exports and reports to disk.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ..models.config import StorageConfig
from ..models.snapshots import EventLoopSnapshot
from ..reporting.export import snapshot_history_frame
from .factory import create_storage, format_for_path

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def metadata_path_for(path: PathLike) -> Path:
    """Sidecar holding the non-tabular part of a Parquet export."""
    path = Path(path)
    return path.with_name(f"{path.stem}.meta.json")


class MonitoringDataWriter:
    """
    Persists export payloads in the format implied by the target path.

    ``.json`` targets receive the complete payload. ``.parquet`` targets
    receive the snapshot time series as a table, and everything else in the
    payload goes to a ``<stem>.meta.json`` sidecar. A path without a suffix
    uses the configured default format.

    Args:
        storage_config: Export storage settings; defaults to built-in settings
    """

    def __init__(self, storage_config: Optional[StorageConfig] = None):
        self.storage_config = storage_config or StorageConfig()

    def resolve_path(self, path: PathLike) -> Path:
        path = Path(path)
        if not path.suffix:
            path = path.with_suffix(f".{self.storage_config.format}")
        return path

    def export(
        self,
        payload: Dict[str, Any],
        snapshots: Sequence[EventLoopSnapshot],
        path: PathLike,
    ) -> List[Path]:
        """
        Write an export payload.

        Args:
            payload: Output of `build_export_payload`
            snapshots: Snapshot objects the payload's ``snapshots`` came from
            path: Target file

        Returns:
            Paths of every file written
        """
        path = self.resolve_path(path)
        format_type = format_for_path(path, default=self.storage_config.format)
        storage = create_storage(format_type, self.storage_config.compression)

        if format_type == "parquet":
            frame = snapshot_history_frame(snapshots)
            storage.save_dataframe(frame, str(path))

            meta_path = metadata_path_for(path)
            metadata = {key: value for key, value in payload.items() if key != "snapshots"}
            metadata["snapshot_file"] = path.name
            metadata["snapshot_rows"] = len(frame)
            storage.save_dict(metadata, str(meta_path))
            logger.info(f"Exported {len(frame)} snapshots to {path} (metadata: {meta_path})")
            return [path, meta_path]

        storage.save_dict(payload, str(path))
        logger.info(f"Exported monitoring data to {path}")
        return [path]

    def load_payload(self, path: PathLike) -> Dict[str, Any]:
        """
        Read back an export written by `export`.

        For Parquet exports the sidecar is returned with the table rows under
        ``snapshot_rows_data``; ``snapshots`` is empty since call lists are
        not stored in the table.
        """
        path = Path(path)
        format_type = format_for_path(path, default=self.storage_config.format)
        storage = create_storage(format_type, self.storage_config.compression)

        if format_type == "parquet":
            payload = storage.load_dict(str(metadata_path_for(path)))
            payload["snapshot_rows_data"] = storage.load_dataframe(str(path)).to_dicts()
            payload["snapshots"] = []
            return payload
        return storage.load_dict(str(path))

    def write_report(self, report: str, path: PathLike) -> Path:
        """Write a Markdown report, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(report, encoding="utf-8")
        logger.info(f"Report written to {path}")
        return path
