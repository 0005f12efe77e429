"""
Recovery image matching.

Attaches entries from the recovery feed to devices. A record belongs to a
device when the device's main board name appears, case-insensitively, in the
record's file name or URL. This is a substring heuristic, so a board whose
name is contained in another board's name can pick up that board's images.

Stable recoveries come only from each device's legacy `pushRecoveries` map;
stable entries in the feed are not merged.
"""

from typing import Any, Dict, Iterable, List, Mapping

from crosupdates.log_utils import logger
from crosupdates.models import Device, RecoveryChannel, RecoveryEntry
from crosupdates.utils import parse_float_version, parse_int_key

FEED_CHANNELS = frozenset(
    {RecoveryChannel.BETA, RecoveryChannel.LTC, RecoveryChannel.LTR}
)


def _lower(value: Any) -> str:
    return value.lower() if isinstance(value, str) else ""


def matches_device(recovery: Mapping[str, Any], device: Device) -> bool:
    """Return True when the device's main board name occurs in the record's file or URL."""
    board = _lower(device.main_board)
    if not board:
        return False
    return board in _lower(recovery.get("file")) or board in _lower(
        recovery.get("url")
    )


def initialize_recoveries(device: Device) -> Dict[RecoveryChannel, List[RecoveryEntry]]:
    """
    Create the empty channel buckets, seeding `stable` from push recoveries.

    Push recoveries are ordered by their numeric version key, highest first.
    """
    recoveries: Dict[RecoveryChannel, List[RecoveryEntry]] = {
        channel: [] for channel in RecoveryChannel
    }
    ordered = sorted(
        device.push_recoveries.items(),
        key=lambda item: parse_int_key(item[0]),
        reverse=True,
    )
    recoveries[RecoveryChannel.STABLE] = [
        RecoveryEntry.from_push_recovery(device.key, version, url)
        for version, url in ordered
    ]
    return recoveries


def deduplicate_and_sort(entries: Iterable[RecoveryEntry]) -> List[RecoveryEntry]:
    """
    Drop repeated (version, url) entries and order by version, highest first.

    The first occurrence of a key wins. Ordering uses the leading number of
    `version` (not `chrome_version`); ties keep their relative order.
    """
    seen = set()
    deduplicated = []
    for entry in entries:
        key = entry.dedupe_key
        if key in seen:
            continue
        seen.add(key)
        deduplicated.append(entry)

    deduplicated.sort(key=lambda entry: parse_float_version(entry.version), reverse=True)
    return deduplicated


def process_recovery_data(
    devices: Dict[str, Device], recovery_records: Iterable[Any]
) -> Dict[str, Device]:
    """
    Attach matching recovery images to every device.

    Parameters:
        devices (Dict[str, Device]): Device map from the normalizer; updated in place.
        recovery_records (Iterable[Any]): The recovery feed; non-object items are ignored.

    Returns:
        Dict[str, Device]: The same device map.
    """
    records = [record for record in recovery_records if isinstance(record, Mapping)]
    skipped = 0

    for device in devices.values():
        if not device.recoveries:
            device.recoveries = initialize_recoveries(device)

        for record in records:
            if not matches_device(record, device):
                continue
            channel = RecoveryChannel.from_feed(record.get("channel"))
            if channel not in FEED_CHANNELS:
                skipped += 1
                continue
            device.recoveries.setdefault(channel, []).append(
                RecoveryEntry.from_feed(record, channel)
            )

        for channel, entries in device.recoveries.items():
            device.recoveries[channel] = deduplicate_and_sort(entries)

    if skipped:
        logger.debug(f"Ignored {skipped} matched recovery records outside beta/ltc/ltr")
    return devices
