"""
Content-hash cache for the normalized device data.

The cached envelope is reused only when its hash matches the hash of the
freshly fetched upstream input; there is no expiry at this layer.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional, Union

from crosupdates.constants import INNER_HASH_LENGTH
from crosupdates.exceptions import CacheError
from crosupdates.log_utils import logger
from crosupdates.models import CacheEnvelope
from crosupdates.utils import compact_json, md5_hex

Pathish = Union[str, Path]


def generate_data_hash(serving_builds: Any, recovery_data: Any) -> str:
    """
    Hash the upstream input of one build cycle.

    The outer MD5 covers the build count, the recovery count, and the first
    eight hex digits of the MD5 of each payload.

    Parameters:
        serving_builds (Any): The serving-builds response (an object with `builds`).
        recovery_data (Any): The recovery feed list.

    Returns:
        str: 32-character hex digest.
    """
    builds = serving_builds.get("builds") if isinstance(serving_builds, dict) else None
    combined = compact_json(
        {
            "buildCount": len(builds) if isinstance(builds, dict) else 0,
            "recoveryCount": len(recovery_data) if recovery_data is not None else 0,
            "servingHash": md5_hex(compact_json(serving_builds))[:INNER_HASH_LENGTH],
            "recoveryHash": md5_hex(compact_json(recovery_data))[:INNER_HASH_LENGTH],
        }
    )
    return md5_hex(combined)


def _atomic_write(
    file_path: Pathish, writer_func: Callable[[Any], None], suffix: str = ".tmp"
) -> bool:
    """
    Write through a temporary file in the target directory, then replace the target.

    Returns:
        bool: `True` if the file was written and moved into place, `False` on any error.
    """
    try:
        temp_fd, temp_path = tempfile.mkstemp(
            dir=os.path.dirname(os.fspath(file_path)) or ".", prefix="tmp-", suffix=suffix
        )
    except OSError as e:
        logger.error(f"Could not create temporary file for {file_path}: {e}")
        return False

    try:
        with os.fdopen(temp_fd, "w", encoding="utf-8") as temp_f:
            writer_func(temp_f)
        os.replace(temp_path, file_path)
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Could not write to {file_path}: {e}")
        return False
    finally:
        if os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError:
                pass
    return True


def atomic_write_json(file_path: Pathish, data: Any) -> bool:
    """Atomically write `data` to `file_path` as pretty-printed JSON."""
    return _atomic_write(
        file_path, lambda f: json.dump(data, f, indent=2), suffix=".json"
    )


class DataCache:
    """
    Persists the pipeline result keyed by the hash of its input.

    Reads and writes never raise: a missing or corrupt file is a cache miss
    and a failed write only costs a rebuild next time.
    """

    def __init__(self, cache_file: Pathish):
        self.cache_file = Path(cache_file)

    def load(self) -> Optional[CacheEnvelope]:
        """
        Read the stored envelope.

        Returns:
            Optional[CacheEnvelope]: The envelope, or None if the file is missing, unreadable or malformed.
        """
        if not self.cache_file.exists():
            return None
        try:
            with open(self.cache_file, "r", encoding="utf-8") as f:
                raw = json.load(f)
            return CacheEnvelope.from_dict(raw)
        except (OSError, ValueError, CacheError) as e:
            logger.warning(f"Cache file corrupted, will rebuild: {e}")
            return None

    def save(self, envelope: CacheEnvelope) -> bool:
        """
        Store the envelope, creating the cache directory if needed.

        Returns:
            bool: True if the envelope was written.
        """
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to save cache: {e}")
            return False
        if not atomic_write_json(self.cache_file, envelope.to_dict()):
            logger.error(f"Failed to save cache to {self.cache_file}")
            return False
        return True

    @staticmethod
    def is_valid_for(envelope: Optional[CacheEnvelope], data_hash: str) -> bool:
        return envelope is not None and envelope.data_hash == data_hash

    def clear(self) -> bool:
        """Delete the cache file. Returns False only when removal failed."""
        try:
            self.cache_file.unlink()
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.warning(f"Failed to clear cache {self.cache_file}: {e}")
            return False
        logger.info(f"Cleared cache {self.cache_file}")
        return True
