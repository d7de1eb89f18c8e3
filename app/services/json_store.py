"""
JSON File Stores

The movie catalog, per-channel ingestion progress and the monitoring
config are flat JSON files shared with the rest of the site. Every write
goes through atomic_write_json: temp file in the same directory, fsync,
then os.replace, so readers never see a half-written file.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from pydantic import ValidationError

from ..config import get_settings
from ..core.exceptions import PersistenceError
from ..core.logging import get_logger
from ..models.movie import MovieRecord
from ..models.progress import ChannelProgress, MonitoringConfig

logger = get_logger(__name__)

PathLike = Union[str, Path]


def atomic_write_json(path: PathLike, data: Any) -> None:
    """
    Durably replace `path` with the JSON encoding of `data`.

    Raises:
        PersistenceError: the prior file is left untouched and the
        temporary file is removed.
    """
    target = Path(path)
    tmp_name: Optional[str] = None

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(data, indent=2, ensure_ascii=False, default=str)

        fd, tmp_name = tempfile.mkstemp(
            dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
        )
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())

        os.replace(tmp_name, target)
        tmp_name = None

    except (OSError, TypeError, ValueError) as e:
        logger.error("atomic_write_failed", path=str(target), error=str(e))
        raise PersistenceError(str(target), str(e)) from e

    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("atomic_write_cleanup_failed", path=tmp_name, error=str(e))


def read_json(path: PathLike, default: Any, strict: bool = False) -> Any:
    """
    Read a JSON file, returning `default` when it is missing.

    An existing file that cannot be read or parsed also yields `default`,
    unless `strict` is set: writers read strictly so a damaged shared
    file is never replaced by a rebuilt one.

    Raises:
        PersistenceError: strict read of an unreadable file
    """
    target = Path(path)
    if not target.exists():
        return default

    try:
        return json.loads(target.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        if strict:
            logger.error("json_read_refused", path=str(target), error=str(e))
            raise PersistenceError(str(target), f"existing file is unreadable ({e})") from e
        logger.warning("json_read_failed", path=str(target), error=str(e))
        return default


class CatalogStore:
    """
    Append-only access to movies.json for the ingestion pipeline.

    Entries are kept as raw dicts: other parts of the site edit them and
    may add keys this service does not model.
    """

    def __init__(self, path: Optional[PathLike] = None):
        self.path = Path(path) if path else get_settings().movies_path

    def load(self) -> List[dict]:
        movies = read_json(self.path, [])
        if not isinstance(movies, list):
            logger.warning("catalog_not_a_list", path=str(self.path))
            return []
        return [m for m in movies if isinstance(m, dict)]

    def _load_for_write(self) -> list:
        movies = read_json(self.path, [], strict=True)
        if not isinstance(movies, list):
            raise PersistenceError(str(self.path), "existing catalog is not a JSON list")
        return movies

    def append(self, records: Iterable[MovieRecord]) -> List[MovieRecord]:
        """
        Append records in a single atomic write.

        The catalog is re-read first and records whose title or id now
        collides are dropped. Returns the records actually written.
        Entries already in the file are written back untouched.

        Raises:
            PersistenceError: the write failed, or the existing file is
            unreadable or not a list (it is then left as it is)
        """
        records = list(records)
        if not records:
            return []

        movies = self._load_for_write()
        entries = [m for m in movies if isinstance(m, dict)]
        titles = {str(m.get("title", "")).lower() for m in entries}
        ids = {str(m.get("id")) for m in entries}

        accepted = []
        for record in records:
            if record.title.lower() in titles or record.id in ids:
                logger.info("catalog_append_collision", title=record.title, id=record.id)
                continue
            titles.add(record.title.lower())
            ids.add(record.id)
            accepted.append(record)

        if not accepted:
            return []

        movies.extend(record.to_catalog_dict() for record in accepted)
        atomic_write_json(self.path, movies)
        logger.info("catalog_appended", count=len(accepted), total=len(movies))
        return accepted


class ProgressStore:
    """Per-channel ChannelProgress persisted as one JSON mapping."""

    def __init__(self, path: Optional[PathLike] = None):
        self.path = Path(path) if path else get_settings().progress_path

    def _load_all(self, strict: bool = False) -> dict:
        data = read_json(self.path, {}, strict=strict)
        if not isinstance(data, dict):
            if strict:
                raise PersistenceError(str(self.path), "existing progress file is not a JSON object")
            logger.warning("progress_not_a_mapping", path=str(self.path))
            return {}
        return data

    def load(self, channel_id: str) -> ChannelProgress:
        """Progress for a channel; an empty record if none exists or it is unreadable."""
        entry = self._load_all().get(channel_id)
        if not entry:
            return ChannelProgress()

        try:
            return ChannelProgress.model_validate(entry)
        except ValidationError as e:
            logger.warning("progress_entry_invalid", channel_id=channel_id, error=str(e))
            return ChannelProgress()

    def save(self, channel_id: str, progress: ChannelProgress) -> None:
        """
        Rewrite this channel's entry, leaving other channels as they are.

        Raises:
            PersistenceError: the write failed, or the existing file is
            unreadable and was left as it is
        """
        data = self._load_all(strict=True)
        data[channel_id] = progress.to_store_dict()
        atomic_write_json(self.path, data)
        logger.debug(
            "progress_saved",
            channel_id=channel_id,
            processed=len(progress.processed_video_ids),
            has_cursor=progress.last_page_token is not None,
        )


class MonitoringConfigStore:
    """Operator-managed automation settings."""

    def __init__(self, path: Optional[PathLike] = None):
        self.path = Path(path) if path else get_settings().monitoring_config_path

    def load(self) -> MonitoringConfig:
        data = read_json(self.path, None)
        if data is None:
            return MonitoringConfig()

        try:
            return MonitoringConfig.model_validate(data)
        except ValidationError as e:
            logger.warning("monitoring_config_invalid", error=str(e))
            return MonitoringConfig()

    def save(self, config: MonitoringConfig) -> None:
        atomic_write_json(self.path, config.model_dump(by_alias=True))

    def update(self, changes: MonitoringConfig) -> MonitoringConfig:
        """
        Apply the fields explicitly set on `changes` over the stored config.

        Keys the caller did not send (including ones this service does
        not model) keep their stored values.
        """
        merged = self.load().model_dump(by_alias=True)
        merged.update(changes.model_dump(by_alias=True, exclude_unset=True))
        config = MonitoringConfig.model_validate(merged)
        self.save(config)
        return config
